"""
Daily check-in rules: per-role time window, one record per day, verified photo
"""
import logging
import os
from datetime import datetime, time as dtime

from config import settings

logger = logging.getLogger(__name__)


ROLES = ('teacher', 'student')
PRESENT = 'present'
PERMIT = 'permit'
STATUSES = (PRESENT, PERMIT)


class CheckInError(Exception):
    pass


class OutsideCheckInWindow(CheckInError):
    pass


class AlreadyCheckedIn(CheckInError):
    pass


class LivenessNotVerified(CheckInError):
    pass


def _parse_hhmm(value):
    hours, minutes = value.split(':')
    return dtime(int(hours), int(minutes))


class CheckInWindow:
    """Inclusive [start, end] time-of-day window, minute resolution"""

    def __init__(self, start, end):
        self.start = _parse_hhmm(start) if isinstance(start, str) else start
        self.end = _parse_hhmm(end) if isinstance(end, str) else end
        if self.end < self.start:
            raise ValueError(f"Window end {end} is before start {start}")

    def contains(self, moment):
        t = moment.time() if isinstance(moment, datetime) else moment
        t = t.replace(second=0, microsecond=0)
        return self.start <= t <= self.end

    def __str__(self):
        return f"{self.start:%H:%M} - {self.end:%H:%M}"

    def to_dict(self):
        return {'start': f"{self.start:%H:%M}", 'end': f"{self.end:%H:%M}"}


class AttendanceService:
    def __init__(self, attendance_log=None, windows=None, clock=datetime.now):
        """
        Args:
            attendance_log: AttendanceLogger (defaults to the configured CSV log)
            windows: {role: (start, end)} in 'HH:MM'
            clock: callable returning the current local datetime
        """
        if attendance_log is None:
            from database.attendance_log import AttendanceLogger
            attendance_log = AttendanceLogger(settings.ATTENDANCE_LOG_FILE, settings.ATTENDANCE_IMAGE_DIR)
        self.attendance_log = attendance_log
        self.windows = {
            role: CheckInWindow(start, end)
            for role, (start, end) in (windows or settings.CHECKIN_WINDOWS).items()
        }
        self.clock = clock

    def window_for(self, role):
        if role not in self.windows:
            raise ValueError(f"Unknown role: {role!r}")
        return self.windows[role]

    def is_open(self, role):
        return self.window_for(role).contains(self.clock())

    def today(self):
        return self.clock().strftime('%Y-%m-%d')

    def check_in(self, user_id, role, status, notes=None, photo=None, permit_file=None):
        """
        Record today's attendance for user_id
        Raises:
            ValueError: unknown role or status
            OutsideCheckInWindow, AlreadyCheckedIn, LivenessNotVerified
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status!r}")

        window = self.window_for(role)
        now = self.clock()
        if not window.contains(now):
            raise OutsideCheckInWindow(f"Check-in for {role} is only open {window}")

        date = now.strftime('%Y-%m-%d')
        if self.attendance_log.has_checked_in(user_id, date):
            raise AlreadyCheckedIn(f"{user_id} already checked in on {date}")

        if status == PRESENT and photo is None:
            raise LivenessNotVerified("Face verification is required before checking in")

        permit_ref = None
        if status == PERMIT and permit_file:
            ext = os.path.splitext(permit_file)[1].lstrip('.') or 'bin'
            permit_ref = f"{user_id}/{int(now.timestamp() * 1000)}.{ext}"

        record = {
            'date': date,
            'time': now.strftime('%H:%M:%S'),
            'user_id': user_id,
            'role': role,
            'status': status,
            'notes': notes or None,
            'permit_file': permit_ref,
        }
        stored = self.attendance_log.log(record, photo if status == PRESENT else None)
        logger.info("Attendance recorded: %s (%s, %s)", user_id, role, status)
        return stored
