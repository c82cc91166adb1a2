"""Height resolution from OSM-style length tags."""

import math
import re
import numbers

from .constants import DEFAULT_HEIGHT, LEVEL_HEIGHT
from .models import BuildingTags, HeightSpec, Tag

# Leading decimal literal, the way browsers' parseFloat reads "12.5m"
_LEADING_NUMBER = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def parse_length(value) -> float:
    """Normalize a length tag to metres.

    Accepts bare numbers, numeral strings and strings with a ``" m"``
    suffix. Anything unparsable yields NaN.
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, numbers.Real):
        return float(value)
    if not isinstance(value, str):
        return math.nan
    text = value.strip()
    if text.endswith(' m'):
        text = text[:-2].strip()
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return math.nan
    return float(match.group(0))


def _positive(value: float) -> bool:
    return math.isfinite(value) and value > 0


def resolve_total_height(tags: BuildingTags, is_part: bool) -> float:
    """Explicit height, else levels x level height, else the default.

    Only the first present height tag is read: an unparsable
    ``building:height`` does not fall back to ``height``.
    """
    kind = 'part' if is_part else 'whole'
    raw = tags.get(Tag.BUILDING_HEIGHT)
    if raw is None or raw == 0:
        raw = tags.get(Tag.HEIGHT)
    height = parse_length(raw)
    if _positive(height):
        return height
    levels = parse_length(tags.get(Tag.BUILDING_LEVELS))
    if _positive(levels):
        return levels * LEVEL_HEIGHT[kind]
    return DEFAULT_HEIGHT[kind]


def resolve_roof_height(tags: BuildingTags) -> float:
    roof_height = parse_length(tags.get(Tag.ROOF_HEIGHT))
    if not math.isfinite(roof_height) or roof_height < 0:
        return 0.0
    return roof_height


def resolve_heights(tags: BuildingTags, is_part: bool) -> HeightSpec:
    """Resolve the (wall, roof) split for one feature.

    When the roof would take up the whole height the roof is dropped
    and the walls keep the full height.
    """
    return HeightSpec.split(resolve_total_height(tags, is_part),
                            resolve_roof_height(tags))
