import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.environ.get("EVENTS_DATA_DIR", REPO_ROOT / "data"))
ACTIVE_DIR = DATA_DIR / "active"
LEGACY_DIR = DATA_DIR / "scraped-events"
OUTPUT_DIR = Path(os.environ.get("EVENTS_OUTPUT_DIR", DATA_DIR / "merged-events"))

EVENTS_FILENAME = "events.json"
REVIEW_FILENAME = "events-to-review.json"
REPORT_FILENAME = "merge-report.json"
DUPLICATE_REPORT_FILENAME = "duplicate-report.json"
LOG_FILENAME = "merge-log.txt"
ERROR_LOG_FILENAME = "merge-error.log"

TABLES_PATH = os.environ.get("EVENT_TABLES_PATH")

WINDOW_DAYS = int(os.environ.get("EVENT_WINDOW_DAYS", "60"))
LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "14"))

TITLE_SIMILARITY = 0.8
VENUE_SIMILARITY = 0.7

MIN_TITLE_LENGTH = 3
MAX_RAW_TITLE_LENGTH = 200
MAX_TITLE_LENGTH = 150
MAX_DESCRIPTION_LENGTH = 500
MIN_DESCRIPTION_LENGTH = 20

AUTO_ID_PREFIX = "auto-"
STABLE_ID_PREFIX = "stable-"

DEFAULT_CITY = "Sandpoint"
DEFAULT_STATE = "ID"
DEFAULT_LOCATION = "Sandpoint, ID"

URL_FIELDS = ["url", "referenceUrl", "ticketUrl", "tickets", "image", "imageUrl"]
COMPLETENESS_FIELDS = [
    "startTime",
    "endTime",
    "venue",
    "locationNote",
    "referenceUrl",
    "ticketUrl",
    "image",
    "price",
    "description",
    "tags",
]
