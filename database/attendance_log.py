import csv
import os
from datetime import datetime
import cv2


FIELDS = ['date', 'time', 'user_id', 'role', 'status', 'notes', 'photo', 'permit_file']
HEADER = ['Date', 'Time', 'UserId', 'Role', 'Status', 'Notes', 'Photo', 'PermitFile']


class AttendanceLogger:
    def __init__(self, log_file='data/attendance.csv', img_dir='data/attendance_images'):
        self.log_file = log_file
        self.img_dir = img_dir
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        os.makedirs(img_dir, exist_ok=True)

        if not os.path.exists(log_file):
            with open(log_file, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(HEADER)

    def log(self, record, photo=None):
        """
        Append one attendance record
        Args:
            record: dict with date, time, user_id, role, status, notes, permit_file
            photo: BGR check-in photo (optional)
        Returns:
            Stored record including the photo filename
        """
        record = dict(record)

        img_filename = None
        if photo is not None:
            stamp = f"{record['date']}_{record['time']}".replace('-', '').replace(':', '')
            img_filename = f"{record['user_id']}_{stamp}.jpg"
            img_path = os.path.join(self.img_dir, img_filename)
            if not cv2.imwrite(img_path, photo):
                raise IOError(f"Could not write check-in photo {img_path}")
        record['photo'] = img_filename

        with open(self.log_file, 'a', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow([record.get(field) or '' for field in FIELDS])

        return record

    def _rows(self):
        if not os.path.exists(self.log_file):
            return []

        with open(self.log_file, 'r', encoding='utf-8') as f:
            reader = csv.reader(f)
            next(reader, None)
            return [dict(zip(FIELDS, row)) for row in reader if len(row) >= len(FIELDS)]

    def get_day(self, date):
        return [row for row in self._rows() if row['date'] == date]

    def has_checked_in(self, user_id, date):
        return any(row['user_id'] == user_id for row in self.get_day(date))

    def get_recent(self, n=10):
        return self._rows()[-n:]

    def get_today_count(self, today=None):
        today = today or datetime.now().strftime('%Y-%m-%d')
        counts = {}
        for row in self.get_day(today):
            status = row['status']
            counts[status] = counts.get(status, 0) + 1
        return counts
