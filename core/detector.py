"""
Face + landmark detector used by the liveness check
"""
import cv2
import numpy as np
import mediapipe as mp

from core.landmarks import FaceResult, MEDIAPIPE_468, Point


class FaceLandmarkDetector:
    """MediaPipe-based face detector returning a single face with mesh landmarks"""

    scheme = MEDIAPIPE_468

    def __init__(self, score_threshold=0.5):
        self.mp_face_detection = mp.solutions.face_detection
        self.mp_face_mesh = mp.solutions.face_mesh

        # Short-range model: subject sits within ~2m of the check-in camera
        self.face_detection = self.mp_face_detection.FaceDetection(
            model_selection=0,
            min_detection_confidence=score_threshold
        )

        # Check-in is one person at a time
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=score_threshold,
            min_tracking_confidence=0.5
        )

    @staticmethod
    def _prepare(image, input_size):
        """Scale longer side to input_size and convert to RGB"""
        h, w = image.shape[:2]
        scale = input_size / float(max(h, w))
        if scale < 1.0:
            image = cv2.resize(image, (int(round(w * scale)), int(round(h * scale))),
                               interpolation=cv2.INTER_AREA)
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    def detect(self, image, input_size=320, score_threshold=0.5):
        """Detect faces and return [(bbox, score), ...] in original frame pixels"""
        results = self.face_detection.process(self._prepare(image, input_size))

        faces = []
        if results.detections:
            h, w = image.shape[:2]
            for detection in results.detections:
                score = float(detection.score[0]) if detection.score else 0.0
                if score < score_threshold:
                    continue

                bbox = detection.location_data.relative_bounding_box
                x = int(bbox.xmin * w)
                y = int(bbox.ymin * h)
                width = int(bbox.width * w)
                height = int(bbox.height * h)

                # Clamp to image boundaries
                x = max(0, x)
                y = max(0, y)
                width = min(width, w - x)
                height = min(height, h - y)

                faces.append(((x, y, width, height), score))

        return faces

    def get_landmarks(self, image, input_size=320):
        """Get facial landmarks (468/478 points per face) in original frame pixels"""
        results = self.face_mesh.process(self._prepare(image, input_size))

        landmarks_list = []
        if results.multi_face_landmarks:
            h, w = image.shape[:2]
            for face_landmarks in results.multi_face_landmarks:
                landmarks = [Point(landmark.x * w, landmark.y * h)
                             for landmark in face_landmarks.landmark]
                landmarks_list.append(landmarks)

        return landmarks_list

    def match_landmarks_to_bbox(self, bbox, landmarks_list):
        """
        Match landmarks to bbox using nose tip distance
        Returns: best matching landmarks or None
        """
        if not landmarks_list:
            return None

        x, y, w, h = bbox
        bbox_center = np.array([x + w / 2, y + h / 2])
        nose_index = self.scheme.nose_tip

        best_landmarks = None
        min_distance = float('inf')

        for landmarks in landmarks_list:
            if len(landmarks) < self.scheme.num_points:
                continue

            nose_tip = np.array(landmarks[nose_index])
            distance = np.linalg.norm(nose_tip - bbox_center)

            # Nose must fall inside the box (with margin)
            margin = max(w, h) * 0.3
            if (x - margin < nose_tip[0] < x + w + margin and
                    y - margin < nose_tip[1] < y + h + margin):
                if distance < min_distance:
                    min_distance = distance
                    best_landmarks = landmarks

        return best_landmarks

    def detect_single_face(self, image, input_size=320, score_threshold=0.5):
        """
        Detect the best-scoring face and its landmarks
        Args:
            image: BGR frame
            input_size: Inference size of the longer frame side
            score_threshold: Minimum detection score
        Returns:
            FaceResult or None when no face with landmarks is found
        """
        if image is None or image.size == 0:
            return None

        faces = self.detect(image, input_size, score_threshold)
        if not faces:
            return None

        landmarks_list = self.get_landmarks(image, input_size)
        for bbox, score in sorted(faces, key=lambda f: f[1], reverse=True):
            landmarks = self.match_landmarks_to_bbox(bbox, landmarks_list)
            if landmarks is not None:
                return FaceResult(bbox=bbox, score=score, landmarks=landmarks)

        return None

    def close(self):
        if self.face_detection is not None:
            self.face_detection.close()
            self.face_detection = None
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None


MODEL_FACTORIES = {
    'mediapipe': FaceLandmarkDetector,
}


def load_face_model(source='mediapipe', score_threshold=0.5):
    """Build the face/landmark model for a model source name"""
    try:
        factory = MODEL_FACTORIES[source]
    except KeyError:
        raise ValueError(f"Unknown face model source: {source!r}") from None
    return factory(score_threshold=score_threshold)
