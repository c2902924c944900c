import numpy as np

from core.landmarks import FaceResult, MEDIAPIPE_468, Point


def make_landmarks(offset, scheme=MEDIAPIPE_468):
    """Landmarks whose nose sits `offset` pixels right of the eye midline (x=150)"""
    points = [Point(0.0, 0.0)] * scheme.num_points
    points[scheme.left_eye_outer] = Point(100.0, 100.0)
    points[scheme.right_eye_outer] = Point(200.0, 100.0)
    points[scheme.nose_tip] = Point(150.0 + offset, 150.0)
    return points


def make_face(offset=0.0, scheme=MEDIAPIPE_468):
    return FaceResult(bbox=(80, 40, 140, 160), score=0.9, landmarks=make_landmarks(offset, scheme))


class FakeModel:
    """Scripted face model: yields results in order, then `default`"""

    def __init__(self, results=(), default=None):
        self._results = iter(results)
        self.default = default
        self.calls = []
        self.closed = False

    def detect_single_face(self, frame, input_size=320, score_threshold=0.5):
        self.calls.append({'input_size': input_size, 'score_threshold': score_threshold})
        result = next(self._results, self.default)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


def loader_for(model):
    return lambda source, score_threshold: model


class FakeSource:
    def __init__(self, frame=None):
        self.paused = False
        self.ended = False
        self.frame = np.zeros((480, 640, 3), np.uint8) if frame is None else frame
        self.reads = 0

    @property
    def width(self):
        return 0 if self.frame is None else self.frame.shape[1]

    @property
    def height(self):
        return 0 if self.frame is None else self.frame.shape[0]

    def read(self):
        self.reads += 1
        return self.frame
