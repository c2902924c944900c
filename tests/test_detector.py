import numpy as np
import pytest

pytest.importorskip("mediapipe")

from core.detector import FaceLandmarkDetector, load_face_model
from tests.helpers import make_landmarks


@pytest.fixture
def detector():
    # Matching/resizing helpers do not need the MediaPipe graphs
    instance = FaceLandmarkDetector.__new__(FaceLandmarkDetector)
    instance.face_detection = None
    instance.face_mesh = None
    return instance


def test_unknown_model_source():
    with pytest.raises(ValueError):
        load_face_model('face-api-tiny')


def test_prepare_downscales_longer_side_and_converts_to_rgb(detector):
    image = np.zeros((480, 640, 3), np.uint8)
    image[..., 0] = 255  # blue in BGR

    prepared = detector._prepare(image, 320)

    assert prepared.shape == (240, 320, 3)
    assert prepared[0, 0].tolist() == [0, 0, 255]


def test_prepare_keeps_small_frames(detector):
    image = np.zeros((200, 300, 3), np.uint8)
    assert detector._prepare(image, 320).shape == (200, 300, 3)


def test_match_landmarks_picks_mesh_with_nose_inside_box(detector):
    inside = make_landmarks(0.0)       # nose at (150, 150)
    outside = [(x + 400, y) for x, y in make_landmarks(0.0)]

    assert detector.match_landmarks_to_bbox((100, 80, 100, 140), [outside, inside]) is inside
    assert detector.match_landmarks_to_bbox((100, 80, 100, 140), [outside]) is None
    assert detector.match_landmarks_to_bbox((100, 80, 100, 140), []) is None


def test_close_is_safe_without_graphs(detector):
    detector.close()
    assert detector.face_mesh is None
