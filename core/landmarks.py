"""
Landmark schemes and 2D head offset geometry
"""
from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence, Tuple


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class LandmarkScheme:
    """Indices of the points used for head-turn tracking in one landmark layout"""
    name: str
    num_points: int
    left_eye_outer: int
    right_eye_outer: int
    nose_tip: int


# 68-point iBUG layout (dlib, face-api.js)
IBUG_68 = LandmarkScheme('ibug_68', 68, left_eye_outer=36, right_eye_outer=45, nose_tip=30)

# MediaPipe Face Mesh (468 points, 478 with refined iris)
MEDIAPIPE_468 = LandmarkScheme('mediapipe_468', 468, left_eye_outer=33, right_eye_outer=263, nose_tip=1)

SCHEMES = {scheme.name: scheme for scheme in (IBUG_68, MEDIAPIPE_468)}


def get_scheme(name):
    if isinstance(name, LandmarkScheme):
        return name
    try:
        return SCHEMES[name]
    except KeyError:
        raise ValueError(f"Unknown landmark scheme: {name!r}") from None


@dataclass
class FaceResult:
    """Single face returned by the face/landmark model"""
    bbox: Tuple[int, int, int, int]
    score: float
    landmarks: List[Point] = field(default_factory=list)


def key_points(landmarks: Sequence, scheme: LandmarkScheme):
    """
    Extract the points used for head-turn tracking

    Returns: (left_eye_outer, right_eye_outer, nose_tip) as Points
    """
    if landmarks is None or len(landmarks) < scheme.num_points:
        count = 0 if landmarks is None else len(landmarks)
        raise ValueError(
            f"Expected at least {scheme.num_points} landmarks for {scheme.name}, got {count}"
        )

    left_eye = Point(*landmarks[scheme.left_eye_outer][:2])
    right_eye = Point(*landmarks[scheme.right_eye_outer][:2])
    nose = Point(*landmarks[scheme.nose_tip][:2])
    return left_eye, right_eye, nose


def head_offset(landmarks: Sequence, scheme: LandmarkScheme) -> float:
    """
    Signed horizontal offset of the nose tip from the eye midline.
    Positive means the nose is right of the midline in frame coordinates.
    """
    left_eye, right_eye, nose = key_points(landmarks, scheme)
    eye_center_x = (left_eye.x + right_eye.x) / 2
    return float(nose.x - eye_center_x)
