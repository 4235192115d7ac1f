import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

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

BULK_MARK_WORKERS = int(os.getenv("BULK_MARK_WORKERS", "8"))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
