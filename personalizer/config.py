import os
from dotenv import load_dotenv
from pathlib import Path

# Go up one level from personalizer/ to root/
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DB_URL = os.getenv("DB_URL", "sqlite:///personalizer.db")

# Score cache entries live this long unless a pattern change deletes them first
SCORE_CACHE_TTL = int(os.getenv("SCORE_CACHE_TTL", str(60 * 60)))

DEFAULT_BOUNCE_THRESHOLD = float(os.getenv("DEFAULT_BOUNCE_THRESHOLD", "0.25"))
MAX_PATTERNS = int(os.getenv("MAX_PATTERNS", "100"))
PATTERN_WRITE_WORKERS = int(os.getenv("PATTERN_WRITE_WORKERS", "4"))

# Daily decay/cleanup sweep
TIMEZONE = os.getenv("TIMEZONE", "UTC")
DECAY_JOB_HOUR = int(os.getenv("DECAY_JOB_HOUR", "3"))
SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", "true")
