"""Configuration constants and environment overrides."""

import os
import logging

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in ("0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer")
        return default


# ── Projection ──────────────────────────────────────────────────────────
EARTH_RADIUS_M = 6371008.8  # mean earth radius, matches turf/rhumb helpers

# Set BUILDINGMESH_FLIP_X=0 to keep the raw x sign (mirrored by default)
FLIP_X = _env_flag("BUILDINGMESH_FLIP_X", True)

# ── Height resolution ──────────────────────────────────────────────────
# (whole building, building:part)
DEFAULT_HEIGHT = {'whole': 4.0, 'part': 2.0}
LEVEL_HEIGHT = {'whole': 4.0, 'part': 2.0}

# ── Auxiliary structures ────────────────────────────────────────────────
PART_WALL_HEIGHT = 1.0
TOWER_RADIUS = 1.0
TOWER_DEFAULT_HEIGHT = 10.0
TOWER_SECTIONS = 16
TOWER_TAGS = {
    'amenity': 'place_of_worship',
    'building': 'church',
    'building:part': 'tower',
}

# ── Ground / clipping ───────────────────────────────────────────────────
GROUND_THICKNESS = 2.0
CIRCLE_STEPS = 64

# ── Runtime ─────────────────────────────────────────────────────────────
WORKERS = _env_int("BUILDINGMESH_WORKERS", 1)
LOG_LEVEL = os.environ.get("BUILDINGMESH_LOG_LEVEL", "INFO").strip().upper() or "INFO"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
