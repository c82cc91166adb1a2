"""Wall extrusion, roof and tower mesh generation.

Meshes are built in the footprint's local Z-up frame (x, y in metres,
z up) and carry a transform into the Y-up world frame used for export.
"""

import math
import logging
from typing import Optional, Tuple

import numpy as np
import trimesh
from trimesh import transformations as tf

from .constants import TOWER_RADIUS, TOWER_SECTIONS
from .errors import InsufficientPoints
from .models import PolygonShape, RoofKind, SolidMesh, SolidRole

logger = logging.getLogger(__name__)

# ── Frame conversion ────────────────────────────────────────────────────
# Rotate -90° about X, then 180° about Y: local (x, y, z) -> world (-x, z, y).
# A proper rotation, so face winding survives the change of frame.
UP_AXIS = tf.concatenate_matrices(
    tf.rotation_matrix(math.pi, [0, 1, 0]),
    tf.rotation_matrix(-math.pi / 2, [1, 0, 0]),
)


def lifted(solid: SolidMesh, dy: float) -> SolidMesh:
    """Move a solid up the world vertical by ``dy``."""
    solid.transform = tf.translation_matrix([0.0, dy, 0.0]) @ solid.transform
    return solid


def planar_uv(mesh: trimesh.Trimesh) -> np.ndarray:
    """Footprint-plane texture coordinates (u = local x, v = local y)."""
    return np.asarray(mesh.vertices[:, :2], dtype=float).copy()


# ── Extrusion ───────────────────────────────────────────────────────────

def extrude_shape(shape: PolygonShape, height: float) -> trimesh.Trimesh:
    """Extrude a footprint (with holes) straight up by ``height``.

    Uses ``trimesh.creation.extrude_polygon`` for constrained
    triangulation of concave outlines and holes.
    """
    if not height > 0:
        raise InsufficientPoints(f"cannot extrude to height {height}")
    try:
        return trimesh.creation.extrude_polygon(shape.polygon(), height=height)
    except Exception as e:
        raise InsufficientPoints(f"extrude_polygon failed: {e}") from e


def generate_walls(shape: PolygonShape, wall_height: float,
                   name: str = 'BuildingWalls',
                   role: SolidRole = SolidRole.WALLS) -> SolidMesh:
    """Prism of the footprint standing on the ground plane."""
    mesh = extrude_shape(shape, wall_height)
    return SolidMesh(name, role, mesh, transform=UP_AXIS.copy(),
                     uv=planar_uv(mesh))


# ── Roofs ───────────────────────────────────────────────────────────────

def _roof_flat(shape: PolygonShape, roof_height: float):
    mesh = extrude_shape(shape, roof_height)
    return mesh, planar_uv(mesh), False


def _roof_pyramidal(shape: PolygonShape, roof_height: float):
    """Triangle fan from every outline edge to an apex over the centroid.

    Holes are ignored. Fewer than three outline points degrade to flat.
    """
    points = shape.outline()
    n = len(points)
    if n < 3:
        logger.warning(f"Not enough points for pyramidal roof ({n}), "
                       f"using flat")
        return _roof_flat(shape, roof_height)

    cx, cy = points.mean(axis=0)
    verts = np.vstack([np.column_stack([points, np.zeros(n)]),
                       [[cx, cy, roof_height]]])
    apex = n
    faces = np.array([[i, (i + 1) % n, apex] for i in range(n)])
    mesh = trimesh.Trimesh(vertices=verts, faces=faces, process=False)
    return mesh, None, True


_ROOF_BUILDERS = {
    RoofKind.FLAT: _roof_flat,
    RoofKind.PYRAMIDAL: _roof_pyramidal,
}


def generate_roof(shape: PolygonShape, roof_height: float,
                  kind: RoofKind = RoofKind.FLAT) -> SolidMesh:
    """Roof solid sitting on z = 0 of its own frame.

    The caller lifts it onto the walls with :func:`lifted`.
    """
    mesh, uv, smooth = _ROOF_BUILDERS[kind](shape, roof_height)
    return SolidMesh('BuildingRoof', SolidRole.ROOF, mesh,
                     transform=UP_AXIS.copy(), uv=uv, smooth=smooth)


# ── Towers ──────────────────────────────────────────────────────────────

def generate_tower(center: Tuple[float, float], height: float,
                   radius: float = TOWER_RADIUS,
                   sections: int = TOWER_SECTIONS) -> SolidMesh:
    """Upright cylinder whose base sits on the ground at ``center``."""
    if not height > 0:
        raise InsufficientPoints(f"cannot build tower of height {height}")
    mesh = trimesh.creation.cylinder(radius=radius, height=height,
                                     sections=sections)
    mesh.apply_translation([center[0], center[1], height / 2.0])
    return SolidMesh('BuildingTower', SolidRole.TOWER, mesh,
                     transform=UP_AXIS.copy())


def solid_height(solid: SolidMesh) -> Optional[float]:
    """World-space vertical extent of a solid."""
    if solid.vertex_count == 0:
        return None
    ys = solid.world_vertices()[:, 1]
    return float(ys.max() - ys.min())
