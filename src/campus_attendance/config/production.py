import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "campus_attendance"),
}

COLLECTIONS = {
    "attendance": os.getenv("ATTENDANCE_COLLECTION", "studentAttendance"),
    "batches": os.getenv("BATCH_COLLECTION", "batches"),
    "holidays": os.getenv("HOLIDAY_COLLECTION", "holidays"),
}

BULK_MARK_WORKERS = int(os.getenv("BULK_MARK_WORKERS", "16"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
