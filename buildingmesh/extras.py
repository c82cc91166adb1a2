"""Auxiliary solids: freestanding building parts and church towers."""

import math
import logging
from typing import List, Optional

from .constants import PART_WALL_HEIGHT, TOWER_DEFAULT_HEIGHT, TOWER_TAGS
from .errors import BuildingMeshError, Diagnostics
from .geometry import generate_tower, generate_walls
from .heights import parse_length
from .models import Feature, SolidMesh, SolidRole, Tag
from .projection import RhumbProjector
from .shapes import feature_outline

logger = logging.getLogger(__name__)


def wants_part_wall(feature: Feature) -> bool:
    """``building:part=yes`` without a ``building`` tag."""
    tags = feature.tags
    return tags.text(Tag.BUILDING_PART) == 'yes' and not tags.has(Tag.BUILDING)


def wants_tower(feature: Feature) -> bool:
    tags = feature.tags
    return any(tags.text(Tag(key)) == value for key, value in TOWER_TAGS.items())


def tower_height(feature: Feature) -> float:
    height = parse_length(feature.tags.get(Tag.TOWER_HEIGHT))
    if not math.isfinite(height) or height <= 0:
        return TOWER_DEFAULT_HEIGHT
    return height


def generate_extra_parts(feature: Feature, projector: RhumbProjector,
                         diagnostics: Optional[Diagnostics] = None) -> List[SolidMesh]:
    """Synthesize zero, one or two auxiliary solids for a feature.

    Both rules are independent; a feature without a usable outline
    simply gets nothing.
    """
    extras = []
    part_wall = wants_part_wall(feature)
    tower = wants_tower(feature)
    if not (part_wall or tower):
        return extras

    outline = feature_outline(feature, projector)
    if outline is None:
        return extras

    builders = []
    if part_wall:
        builders.append(lambda: generate_walls(outline, PART_WALL_HEIGHT,
                                               name='BuildingPart',
                                               role=SolidRole.PART))
    if tower:
        builders.append(lambda: generate_tower(outline.centroid(),
                                               tower_height(feature)))
    for build in builders:
        try:
            extras.append(build())
        except BuildingMeshError as e:
            if diagnostics is None:
                logger.warning(f"Skipping auxiliary solid: {e}")
            else:
                diagnostics.report(e, feature.feature_id)
    return extras
