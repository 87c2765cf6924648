"""
vianomaly CLI entrypoint: grid alignment and classified anomaly maps.
"""

import sys

import click  # type: ignore
from click import echo

from vianomaly.core.config import ConfigManager
from vianomaly.core.dekad import Dekad, dekad_range
from vianomaly.core.exceptions import VianomalyError
from vianomaly.core.logger import Logger
from vianomaly.geo.grid import Extent, GRID_PRESETS, GridSpec, align
from vianomaly.services.anomaly import compute_anomaly_map

logger = Logger.get_logger(__name__)


@click.group()
@click.option(
    "--log-file", type=click.Path(), default=None, help="Also log to this file."
)
def cli(log_file):
    """vianomaly: vegetation-index anomaly maps."""
    Logger.setup(log_file=log_file)


@cli.command(name="align")
@click.argument("west", type=float)
@click.argument("east", type=float)
@click.argument("south", type=float)
@click.argument("north", type=float)
@click.option(
    "--grid",
    "-g",
    "grid_name",
    type=click.Choice(list(GRID_PRESETS)),
    default=ConfigManager.DEFAULT_GRID,
    help="Reference grid to snap to.",
)
def align_cmd(west, east, south, north, grid_name):
    """Snap the extent WEST EAST SOUTH NORTH to the reference grid."""
    try:
        aligned = align(Extent(west, east, south, north), GridSpec.from_name(grid_name))
    except VianomalyError as e:
        echo(f"❌  Alignment failed: {e}", err=True)
        sys.exit(1)
    echo(" ".join(f"{v:.7f}" for v in aligned.as_tuple()))


@cli.command(name="dekads")
@click.argument("first")
@click.argument("last")
def dekads_cmd(first, last):
    """List dekads FIRST..LAST (YYYYMMDD) with their LTS keys."""
    try:
        dekads = dekad_range(first, last)
    except ValueError as e:
        echo(f"❌  Invalid dekad range: {e}", err=True)
        sys.exit(1)
    for d in dekads:
        echo(f"{d.label} {d.lts_key} {d.start:%Y-%m-%d} {d.end:%Y-%m-%d}")


@cli.command()
@click.option(
    "--current",
    "-c",
    multiple=True,
    required=True,
    type=click.Path(exists=True),
    help="Current index raster; repeat for several periods.",
)
@click.option(
    "--lts-mean",
    "-m",
    multiple=True,
    required=True,
    type=click.Path(exists=True),
    help="Long-term mean raster; one per period.",
)
@click.option(
    "--lts-sd",
    "-s",
    multiple=True,
    required=True,
    type=click.Path(exists=True),
    help="Long-term standard deviation raster; one per period.",
)
@click.option(
    "--output", "-o", type=click.Path(), required=True, help="Classified GeoTIFF."
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="YAML/TOML/JSON run configuration.",
)
@click.option(
    "--method",
    type=click.Choice(["simple", "zscore"], case_sensitive=False),
    default=None,
    help="Anomaly formula (overrides config).",
)
@click.option("--anom1", default=None, help="Inner threshold, e.g. 0.05 or '1*SD'.")
@click.option("--anom2", default=None, help="Outer threshold, e.g. 0.1 or '2*SD'.")
@click.option(
    "--aoi",
    nargs=4,
    type=float,
    default=None,
    help="AOI as WEST EAST SOUTH NORTH (overrides config).",
)
@click.option("--dekad", default=None, help="Dekad label (YYYYMMDD) for the plot title.")
@click.option(
    "--to-dekad",
    default=None,
    help="Last dekad of a multi-period run; needs one --current per dekad.",
)
@click.option("--mask", "mask_path", type=click.Path(exists=True), default=None)
@click.option("--mask-column", default=None, help="Attribute used to select polygons.")
@click.option("--mask-value", default=None, help="Attribute value to keep.")
@click.option("--anomaly-output", type=click.Path(), default=None)
@click.option("--plot", type=click.Path(), default=None, help="PNG class map.")
@click.option("--summary", type=click.Path(), default=None, help="CSV class counts.")
def run(
    current,
    lts_mean,
    lts_sd,
    output,
    config_path,
    method,
    anom1,
    anom2,
    aoi,
    dekad,
    to_dekad,
    mask_path,
    mask_column,
    mask_value,
    anomaly_output,
    plot,
    summary,
):
    """Compute a five-class anomaly map from current and LTS rasters."""
    try:
        cfg = ConfigManager(config_path)
        cfg.update(
            anomaly_method=method,
            anom1=anom1,
            anom2=anom2,
            aoi=list(aoi) if aoi else None,
            mask_path=mask_path,
            mask_column=mask_column,
            mask_value=mask_value,
        )
        title = "Vegetation index anomaly"
        if dekad and to_dekad:
            dekads = dekad_range(dekad, to_dekad)
            if len(dekads) != len(current):
                raise ValueError(
                    f"{len(dekads)} dekads from {dekad} to {to_dekad} "
                    f"but {len(current)} current rasters"
                )
            title = f"{title} - dekads {dekads[0]} to {dekads[-1]}"
        elif dekad:
            title = f"{title} - dekad {Dekad.parse(dekad)}"
        result = compute_anomaly_map(
            list(current),
            list(lts_mean),
            list(lts_sd),
            output,
            config=cfg,
            anomaly_output=anomaly_output,
            plot=plot,
            title=title,
            summary=summary,
            logger=logger,
        )
        counts = result.classified.class_counts().to_dataframe()
        echo(counts.to_string(index=False))
        echo(f"✅  Classified map written to {output}")
    # pylint: disable=broad-exception-caught
    except Exception as e:
        logger.error("Anomaly run failed", exc_info=True)
        echo(f"❌  Anomaly run failed: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    cli()
