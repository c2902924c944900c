"""
Head-turn liveness tracking
Debounces face presence across ticks and tracks nose offset over a sliding window
"""
from collections import deque

from core.landmarks import MEDIAPIPE_468, get_scheme, head_offset


NO_FACE = 'no_face'
FACE_UNSTABLE = 'face_unstable'
FACE_STABLE = 'face_stable'
VERIFIED = 'verified'


class DetectionSession:
    """
    State of one detection run: presence counter, offset history and flags
    """

    def __init__(self,
                 stability_hits=3,
                 history_size=20,
                 min_samples=10,
                 turn_range=15,
                 scheme=MEDIAPIPE_468):
        """
        Args:
            stability_hits: Consecutive detections before a face counts as present
            history_size: Number of nose offsets kept (oldest evicted first)
            min_samples: Offsets needed before the range is evaluated
            turn_range: Offset range (pixels) that counts as a head turn
            scheme: LandmarkScheme (or its name) of the model's landmarks
        """
        self.stability_hits = stability_hits
        self.min_samples = min_samples
        self.turn_range = turn_range
        self.scheme = get_scheme(scheme)

        self.head_positions = deque(maxlen=history_size)
        self.consecutive_hits = 0
        self.face_detected = False
        self.head_turn_detected = False

    def record_face(self, landmarks):
        """Register a tick where a face with landmarks was found"""
        self.consecutive_hits += 1

        if self.consecutive_hits >= self.stability_hits:
            self.face_detected = True

            # Only track head turn once the face is confirmed
            if not self.head_turn_detected:
                self.add_head_position(head_offset(landmarks, self.scheme))

    def record_miss(self):
        """Register a tick without a face"""
        self.consecutive_hits = max(0, self.consecutive_hits - 1)
        if self.consecutive_hits == 0:
            self.face_detected = False

    def add_head_position(self, offset):
        """
        Append a nose offset and evaluate the left-right range
        Returns: True when the head turn is (now) detected
        """
        if self.head_turn_detected:
            return True

        self.head_positions.append(float(offset))

        if len(self.head_positions) >= self.min_samples:
            if self.head_range > self.turn_range:
                self.head_turn_detected = True

        return self.head_turn_detected

    @property
    def head_range(self):
        if not self.head_positions:
            return 0.0
        return max(self.head_positions) - min(self.head_positions)

    @property
    def status(self):
        if self.head_turn_detected:
            return VERIFIED
        if self.face_detected:
            return FACE_STABLE
        if self.consecutive_hits > 0:
            return FACE_UNSTABLE
        return NO_FACE

    def reset(self):
        self.head_positions.clear()
        self.consecutive_hits = 0
        self.face_detected = False
        self.head_turn_detected = False

    def snapshot(self):
        """Detailed session info for display/debugging"""
        return {
            'status': self.status,
            'consecutive_hits': self.consecutive_hits,
            'face_detected': self.face_detected,
            'head_turn_detected': self.head_turn_detected,
            'samples': len(self.head_positions),
            'head_range': self.head_range,
            'last_offset': self.head_positions[-1] if self.head_positions else None,
        }
