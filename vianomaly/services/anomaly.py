from __future__ import annotations

"""Service for building classified anomaly maps from raster files."""

import logging
import os
from typing import Optional, Sequence

from vianomaly.core.config import ConfigManager
from vianomaly.core.logger import Logger
from vianomaly.core.pipeline import AnomalyPipeline, AnomalyResult
from vianomaly.geo.grid import Extent
from vianomaly.services.base import BaseService
from vianomaly.services.masking import load_mask_geometries, mask_layer
from vianomaly.services.raster_io import read_layer, write_layer


class AnomalyMapService(BaseService):
    """Read inputs, run :class:`AnomalyPipeline` and write the outputs."""

    def __init__(
        self,
        config: ConfigManager | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config, logger)
        self.pipeline = AnomalyPipeline(self.config.settings())

    def run(
        self,
        current_paths: Sequence[str],
        lts_mean_paths: Sequence[str],
        lts_sd_paths: Sequence[str],
        *,
        extent: Optional[Extent] = None,
    ) -> AnomalyResult:
        """Run the pipeline on the given files and apply the configured mask."""
        self.logger.info(
            "Running %s anomaly for %d period(s)",
            self.pipeline.settings.method.value,
            len(current_paths),
        )
        result = self.pipeline.run(
            [read_layer(p) for p in current_paths],
            [read_layer(p) for p in lts_mean_paths],
            [read_layer(p) for p in lts_sd_paths],
            extent=extent,
        )
        mask_path = self.config.get("mask_path")
        if not mask_path:
            return result
        geoms = load_mask_geometries(
            mask_path,
            column=self.config.get("mask_column"),
            value=self.config.get("mask_value"),
        )
        self.logger.info("Masking outputs with %s", mask_path)
        return AnomalyResult(
            extent=result.extent,
            current=result.current,
            ref_mean=result.ref_mean,
            ref_sd=result.ref_sd,
            anomaly=mask_layer(result.anomaly, geoms),
            classified=mask_layer(result.classified, geoms),
        )


def compute_anomaly_map(
    current: Sequence[str],
    lts_mean: Sequence[str],
    lts_sd: Sequence[str],
    output: str,
    *,
    config: ConfigManager | None = None,
    extent: Extent | None = None,
    anomaly_output: str | None = None,
    plot: str | None = None,
    title: str | None = None,
    summary: str | None = None,
    logger: logging.Logger | None = None,
) -> AnomalyResult:
    """Compute a classified anomaly map from raster files.

    Parameters
    ----------
    current, lts_mean, lts_sd:
        Raster paths, one per period; LTS lists must have equal length.
    output:
        GeoTIFF path for the classified map (uint8, 0 = no data).
    config:
        Run configuration; defaults to :class:`ConfigManager` defaults.
    extent:
        Optional AOI overriding the configured one.
    anomaly_output:
        Optional GeoTIFF path for the continuous anomaly values.
    plot:
        Optional PNG path for a rendered class map.
    title:
        Plot title.
    summary:
        Optional CSV path for per-class pixel counts.
    """
    log = logger or Logger.get_logger(__name__)
    svc = AnomalyMapService(config, logger=log)
    result = svc.run(current, lts_mean, lts_sd, extent=extent)

    os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
    write_layer(result.classified, output, dtype="uint8")
    if anomaly_output:
        write_layer(result.anomaly, anomaly_output)
    if plot:
        from vianomaly.visualization.classmap import plot_classified

        log.info("Rendering class map to %s", plot)
        plot_classified(result.classified, plot, title=title)
    if summary:
        log.info("Writing class summary to %s", summary)
        result.classified.class_counts().to_csv(summary)
    return result
