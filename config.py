"""
Configuration for the artwork aggregator.
Values come from the environment, optionally loaded from a .env file.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int_env(name, default):
    value = os.getenv(name, "")
    try:
        return int(value) if value.strip() else default
    except ValueError:
        return default


def _bool_env(name, default):
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


# Per-source deadlines (milliseconds)
FAST_DEADLINE_MS = _int_env("FAST_DEADLINE_MS", 6000)
SLOW_DEADLINE_MS = _int_env("SLOW_DEADLINE_MS", 12000)

# Fast tier is enough on its own when it returns at least this many artworks
MIN_FAST_RESULTS = _int_env("MIN_FAST_RESULTS", 10)

# Seconds; bounds every HTTP call, including ones a timeout has abandoned
REQUEST_TIMEOUT = _int_env("REQUEST_TIMEOUT", 15)

SOURCE_WORKERS = _int_env("SOURCE_WORKERS", 32)

DEFAULT_COUNT = _int_env("DEFAULT_COUNT", 30)
MAX_COUNT = _int_env("MAX_COUNT", 100)

# Keep results from slow calls that finish after the response went out,
# and hand them to the next "more" request
KEEP_BACKGROUND_RESULTS = _bool_env("KEEP_BACKGROUND_RESULTS", True)
# Oldest kept artworks are dropped past this many
MAX_BACKGROUND_RESULTS = _int_env("MAX_BACKGROUND_RESULTS", 500)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = _int_env("PORT", 5001)


def api_key(name):
    """Return the credential stored under `name`, or "" when it is not set.

    Read on every call so keys added to the environment are picked up
    without a restart.
    """
    return os.getenv(name, "").strip()
