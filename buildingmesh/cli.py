"""Click CLI commands for buildingmesh."""

import json
import logging
from typing import Optional

import click

from .builder import BuildingMeshBuilder
from .clip import ClipRegion
from .constants import FLIP_X, LOG_FORMAT, LOG_LEVEL, WORKERS

logger = logging.getLogger(__name__)


def load_geojson(path: str):
    with open(path) as f:
        return json.load(f)


def load_clip_polygon(path: str) -> ClipRegion:
    """Read a clip ring from a GeoJSON Polygon/Feature or a bare point list."""
    data = load_geojson(path)
    if isinstance(data, dict):
        if data.get('type') == 'Feature':
            data = data.get('geometry') or {}
        if data.get('type') != 'Polygon':
            raise click.ClickException(f"{path}: expected a Polygon clip region")
        data = data['coordinates'][0]
    return ClipRegion.from_polygon(data)


def _region(clip_circle, clip_polygon) -> Optional[ClipRegion]:
    if clip_circle and clip_polygon:
        raise click.UsageError("Use either --clip-circle or --clip-polygon, not both")
    if clip_circle:
        lng, lat, radius = clip_circle
        return ClipRegion.from_circle(lng, lat, radius)
    if clip_polygon:
        return load_clip_polygon(clip_polygon)
    return None


@click.group()
@click.option('--log-level', default=LOG_LEVEL, show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                                case_sensitive=False),
              help='Logging verbosity')
def cli(log_level: str):
    """Generate closed 3D building meshes from GeoJSON footprints."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


@cli.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--ref', nargs=2, type=float, required=True,
              metavar='LNG LAT', help='Reference point of the local frame')
@click.option('--output', '-o', default='scene.glb', show_default=True,
              help='Output file (.glb, .stl or .ply)')
@click.option('--clip-circle', nargs=3, type=float, default=None,
              metavar='LNG LAT RADIUS', help='Clip to a circle (radius in metres)')
@click.option('--clip-polygon', type=click.Path(exists=True, dir_okay=False),
              default=None, help='Clip to a polygon read from a JSON file')
@click.option('--workers', '-w', default=WORKERS, show_default=True,
              type=click.IntRange(min=1), help='Worker threads for assembly')
@click.option('--flip-x/--no-flip-x', default=FLIP_X, show_default=True,
              help='Mirror the projected x axis')
@click.option('--bundle', type=click.Path(dir_okay=False), default=None,
              help='Also write a zip with features, config and scene')
def build(input_path: str, ref, output: str, clip_circle, clip_polygon,
          workers: int, flip_x: bool, bundle: Optional[str]):
    """Build a merged building mesh from a GeoJSON feature collection."""
    try:
        region = _region(clip_circle, clip_polygon)
        builder = BuildingMeshBuilder(ref, flip_x=flip_x, workers=workers,
                                      region=region)
        path = builder.export(load_geojson(input_path), output,
                              bundle_path=bundle)
    except click.ClickException:
        raise
    except Exception as e:
        logger.error(f"Error building mesh: {e}")
        raise click.ClickException(str(e))

    click.echo(f"Wrote {path}")
    if bundle:
        click.echo(f"Wrote {bundle}")
    if builder.diagnostics:
        click.echo(f"{len(builder.diagnostics)} feature warning(s); "
                   f"see log for details")


@cli.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--ref', nargs=2, type=float, required=True,
              metavar='LNG LAT', help='Reference point of the local frame')
@click.option('--flip-x/--no-flip-x', default=FLIP_X, show_default=True)
def inspect(input_path: str, ref, flip_x: bool):
    """List the buildings that would be generated, one line each."""
    try:
        builder = BuildingMeshBuilder(ref, flip_x=flip_x, workers=1)
        scene = builder.build_scene(load_geojson(input_path))
    except Exception as e:
        logger.error(f"Error inspecting features: {e}")
        raise click.ClickException(str(e))

    for building in scene.buildings:
        heights = building.heights
        solids = ', '.join(f"{s.role.value}({s.vertex_count}v)"
                           for s in building.solids)
        click.echo(f"{building.name}: wall={heights.wall_height:g}m "
                   f"roof={heights.roof_height:g}m  {solids}")
    click.echo(f"{len(scene.buildings)} building(s), "
               f"{len(builder.diagnostics)} warning(s)")


if __name__ == '__main__':
    cli()
