"""
Core modules for Face Check-in System
"""

from .frame_source import CameraSource, PushFrameSource
from .landmarks import FaceResult, IBUG_68, MEDIAPIPE_468, get_scheme, head_offset
from .liveness import (
    DetectorNotReady,
    DetectorState,
    LivenessDetector,
    LivenessError,
    ModelLoadFailure,
)
from .liveness_tracker import DetectionSession
from .checkin import (
    AlreadyCheckedIn,
    AttendanceService,
    CheckInError,
    CheckInWindow,
    LivenessNotVerified,
    OutsideCheckInWindow,
)

__all__ = [
    'CameraSource',
    'PushFrameSource',
    'FaceResult',
    'IBUG_68',
    'MEDIAPIPE_468',
    'get_scheme',
    'head_offset',
    'DetectionSession',
    'DetectorNotReady',
    'DetectorState',
    'LivenessDetector',
    'LivenessError',
    'ModelLoadFailure',
    'AlreadyCheckedIn',
    'AttendanceService',
    'CheckInError',
    'CheckInWindow',
    'LivenessNotVerified',
    'OutsideCheckInWindow',
]
