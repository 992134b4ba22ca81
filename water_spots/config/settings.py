"""
Configuration Settings for the Water Spot Discovery Engine
Data locations, cache lifetimes, search limits and timezone helpers
"""

import logging
import os
from dotenv import load_dotenv
from pathlib import Path
import pytz
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# ============================================
# LOAD .ENV FROM PROJECT ROOT
# ============================================

# water_spots/config/ -> water_spots/ -> project root
config_dir = Path(__file__).parent
project_root = config_dir.parent.parent

env_path = project_root / '.env'
load_dotenv(dotenv_path=env_path)

if not env_path.exists():
    logger.debug(".env file not found at %s, using environment variables or defaults", env_path)
else:
    logger.debug("Loaded .env from: %s", env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# ============================================
# DATA SOURCE
# ============================================
# One static JSON document per ward: {"updated": "...", "spots": [...]}
DATA_DIR = Path(os.getenv("WATER_SPOTS_DATA_DIR", project_root / "data" / "water_spots"))

WARD_DATA_FILES = {
    '川崎区': 'kawasaki_ku_water_spots.json',
    '中原区': 'nakahara_water_spots.json',
    '高津区': 'takatsu_ku_water_spots.json',
    '宮前区': 'miyamae_ku_water_spots.json',
    '多摩区': 'tama_ku_water_spots.json',
    '麻生区': 'asao_ku_water_spots.json',
    '幸区': 'saiwai_ku_water_spots.json',
}


# ============================================
# TIMEZONE CONFIGURATION
# ============================================
TIMEZONE = os.getenv("WATER_SPOTS_TIMEZONE", "Asia/Tokyo")
JST_TZ = pytz.timezone(TIMEZONE)

def get_jst_now():
    """Get current time in Japan timezone - works in Docker too"""
    utc_now = datetime.now(timezone.utc)
    return utc_now.astimezone(JST_TZ)


# ============================================
# CACHE CONFIGURATION
# ============================================
CACHE_ENABLED = _env_bool("CACHE_ENABLED", True)
DEFAULT_CACHE_TTL_SECONDS = 300       # 5 minutes
LIST_CACHE_TTL_SECONDS = int(os.getenv("LIST_CACHE_TTL_SECONDS", 3600))      # 1 hour
DETAIL_CACHE_TTL_SECONDS = int(os.getenv("DETAIL_CACHE_TTL_SECONDS", 1800))  # 30 minutes


# ============================================
# SEARCH PARAMETERS
# ============================================
DEFAULT_NEARBY_RADIUS_KM = float(os.getenv("DEFAULT_NEARBY_RADIUS_KM", 5.0))
MIN_SEARCH_TERM_LENGTH = 2


# ============================================
# LOGGING
# ============================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FILE = os.getenv("LOG_FILE", "water_spots.log")
LOG_TO_FILE = _env_bool("LOG_TO_FILE", False)
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", 5 * 1024 * 1024))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", 3))


# ============================================
# TRACING (Phoenix)
# ============================================
PHOENIX_PROJECT_NAME = os.getenv("PHOENIX_PROJECT_NAME", "kawasaki-water-spots")
PHOENIX_API_KEY = os.getenv("PHOENIX_API_KEY")
