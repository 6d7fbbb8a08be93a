# geostats/settings.py
"""Runtime settings, table names and game constants."""

import os
from pathlib import Path

# ─── Paths ──────────────────────────────────────────────────────

PROJECT_DIR = Path(__file__).resolve().parent.parent


def _resolve_dir(raw: str) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    return PROJECT_DIR / path


DATA_DIR = _resolve_dir(os.environ.get("GEOSTATS_DATA_DIR", "data"))
USERS_FOLDER = os.environ.get("GEOSTATS_USERS_FOLDER", "GeoGuessr Stats Users")
WORKBOOK_PREFIX = "GeoGuessr Stats"
DEFAULT_WORKBOOK = os.environ.get("GEOSTATS_DEFAULT_WORKBOOK", WORKBOOK_PREFIX)
WORKBOOK_SUFFIX = ".db"

# ─── Geocoding ──────────────────────────────────────────────────

GOOGLE_MAPS_API_KEY = os.environ.get("GOOGLE_MAPS_API_KEY", "")
GEOCODER_BACKEND = os.environ.get("GEOSTATS_GEOCODER", "auto").lower()
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
GEOCODER_TIMEOUT = float(os.environ.get("GEOSTATS_GEOCODER_TIMEOUT", "10"))

# ─── Game constants ─────────────────────────────────────────────

MAX_SCORE = 25000
UNKNOWN_COUNTRY = "unknown"
UNKNOWN_MAP = "Unknown Map"

# ─── Table names ────────────────────────────────────────────────

GAMES_SHEET = "Games"
ROUNDS_SHEET = "Rounds"
COUNTRY_SHEET = "Country Recognition"
STATS_SHEET = "Statistics"

MAX_SHEET_NAME_LENGTH = 95

# ─── Display links ──────────────────────────────────────────────

MAP_URL = "https://www.geoguessr.com/maps/{map_id}"
PANO_URL = (
    "https://www.google.com/maps/@?api=1&map_action=pano"
    "&viewpoint={lat},{lng}&heading=0&pitch=0"
)
