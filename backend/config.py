import os
from dotenv import load_dotenv

load_dotenv()

# --- Supabase Configuration ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "change-this-secret-key")
SUPABASE_JWT_AUDIENCE = "authenticated"

# --- Database ---
# Local SQLite is used whenever Supabase is not configured
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/habitsync.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- Challenge ---
CHALLENGE_TIMEZONE = os.getenv("CHALLENGE_TIMEZONE", "UTC")
DEFAULT_CHALLENGE_NAME = "The Challenge"
DEFAULT_CHALLENGE_DAYS = 30
DEFAULT_RULES = "1. Log your habits daily.\n2. Be honest!"
DEFAULT_STAKE_AMOUNT = 200
HABIT_SELECTION_SIZE = 5

# --- Snapshot / fetching ---
LOG_FETCH_LIMIT = int(os.getenv("LOG_FETCH_LIMIT", "20000"))
SNAPSHOT_TTL_SECONDS = float(os.getenv("SNAPSHOT_TTL_SECONDS", "30"))
TIMELINE_TICK_SECONDS = float(os.getenv("TIMELINE_TICK_SECONDS", "1"))

# Write name/habit-ids and rules/stake in the old packed format as well
LEGACY_FIELD_ENCODING = os.getenv("LEGACY_FIELD_ENCODING", "false").lower() in ("1", "true", "yes")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
