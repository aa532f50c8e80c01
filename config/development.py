import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_attendance"),
}

# Organisation time zone used for shift templates and local-day reports
TIMEZONE = os.getenv("TIMEZONE", "Australia/Brisbane")

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

SCHEDULE_LOCK_TIMEOUT_SECONDS = int(os.getenv("SCHEDULE_LOCK_TIMEOUT_SECONDS", "10"))

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo users on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
