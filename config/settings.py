"""
Global settings for Face Check-in System
"""

# ============================================================================
# CAMERA SETTINGS
# ============================================================================
CAMERA_DEFAULT = 0
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
CAMERA_MIRROR = True  # Selfie view, same as the browser front camera

# ============================================================================
# SERVER
# ============================================================================
SERVER_HOST = "0.0.0.0"
SERVER_PORT = 8000
ENV_FILE = '.env.local'

# ============================================================================
# CHECK-IN WINDOWS (inclusive, local time)
# ============================================================================
CHECKIN_WINDOWS = {
    'teacher': ('06:50', '07:30'),
    'student': ('07:00', '08:00'),
}

# ============================================================================
# ATTENDANCE STORAGE
# ============================================================================
ATTENDANCE_LOG_FILE = 'data/attendance.csv'
ATTENDANCE_IMAGE_DIR = 'data/attendance_images'

# ============================================================================
# UI SETTINGS
# ============================================================================
WINDOW_WIDTH = 1200
WINDOW_HEIGHT = 700
VIDEO_WIDTH = 800
VIDEO_HEIGHT = 600

# ============================================================================
# LOGGING
# ============================================================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
