"""
Configuration package for Face Check-in System
"""
import logging

from .settings import *
from .liveness import *

__all__ = [
    # Camera
    'CAMERA_DEFAULT',
    'CAMERA_WIDTH',
    'CAMERA_HEIGHT',
    'CAMERA_MIRROR',

    # Server
    'SERVER_HOST',
    'SERVER_PORT',
    'ENV_FILE',

    # Check-in
    'CHECKIN_WINDOWS',
    'ATTENDANCE_LOG_FILE',
    'ATTENDANCE_IMAGE_DIR',

    # UI
    'WINDOW_WIDTH',
    'WINDOW_HEIGHT',
    'VIDEO_WIDTH',
    'VIDEO_HEIGHT',

    # Liveness
    'FACE_MODEL_SOURCE',
    'LANDMARK_SCHEME',
    'DETECTION_INTERVAL_MS',
    'DETECTION_INPUT_SIZE',
    'DETECTION_SCORE_THRESHOLD',
    'STABILITY_HITS',
    'HEAD_HISTORY_SIZE',
    'HEAD_MIN_SAMPLES',
    'HEAD_TURN_RANGE',

    # Logging
    'LOG_LEVEL',
    'LOG_FORMAT',
    'setup_logging',
]


def setup_logging(level=None):
    """Configure root logging with the project format"""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
