import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPKEEP_DATA_DIR", Path.home() / ".local" / "share" / "clipkeep"))
DB_PATH = DATA_DIR / "clipkeep.db"
IMAGE_DIR = DATA_DIR / "images"
LOG_PATH = DATA_DIR / "clipkeep.log"

POLL_INTERVAL = 0.5  # seconds between clipboard checks
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown per entry in listings
THUMBNAIL_SIZE = 200  # pixels, longest edge of a generated preview


def _parse_max_entries() -> int:
    raw = os.environ.get("CLIPKEEP_MAX_ENTRIES")
    if raw is None:
        return 500
    try:
        value = int(raw)
    except ValueError:
        return 500
    return max(10, min(10_000, value))


def _parse_max_age_days() -> int:
    raw = os.environ.get("CLIPKEEP_MAX_AGE_DAYS")
    if raw is None:
        return 30
    try:
        value = int(raw)
    except ValueError:
        return 30
    return value if value > 0 else 30


MAX_ENTRIES = _parse_max_entries()  # auto-purge threshold, favorites excluded
MAX_AGE_SECONDS = _parse_max_age_days() * 24 * 60 * 60  # default retention window
