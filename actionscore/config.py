import os
from dotenv import load_dotenv

load_dotenv()

# --- JWT Configuration (tokens are issued by the external auth provider) ---
JWT_SECRET = os.getenv("JWT_SECRET", "change-this-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", "72"))

# --- Scheduler ---
CRON_SECRET = os.getenv("CRON_SECRET", "")

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/actionscore.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Scoring ---
DEFAULT_WEEKDAY_PASS_THRESHOLD = float(os.getenv("DEFAULT_WEEKDAY_PASS_THRESHOLD", "70"))
DEFAULT_WEEKEND_PASS_THRESHOLD = float(os.getenv("DEFAULT_WEEKEND_PASS_THRESHOLD", "70"))

# Weekday index (0=Sunday ... 6=Saturday) used for weekly tasks with no
# weekly_day and no creation timestamp.
WEEKLY_DEFAULT_DAY = int(os.getenv("WEEKLY_DEFAULT_DAY", "1"))

# How far back a carryover task looks for an unfinished occurrence.
CARRYOVER_LOOKBACK_DAYS = int(os.getenv("CARRYOVER_LOOKBACK_DAYS", "60"))

# Completions for a closed day can no longer be changed.
LOCK_CLOSED_DAYS = os.getenv("LOCK_CLOSED_DAYS", "true").lower() in ("1", "true", "yes")

# --- CORS ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
