"""
Database modules for Face Check-in System
"""

from .attendance_log import AttendanceLogger

__all__ = [
    'AttendanceLogger',
]
