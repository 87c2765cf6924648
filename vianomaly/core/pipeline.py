from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from vianomaly.analytics.aggregate import aggregate
from vianomaly.analytics.anomaly import compute
from vianomaly.analytics.classify import classify
from vianomaly.analytics.sanitize import sanitize
from vianomaly.analytics.temporal import average_mean, average_pooled_sd
from vianomaly.core.config import AnomalySettings
from vianomaly.core.exceptions import EmptyStack, InvalidAggregationFactor
from vianomaly.core.logger import Logger
from vianomaly.geo.grid import COORD_DECIMALS, Extent, align, crop, same_coord
from vianomaly.raster.layer import ClassifiedLayer, RasterLayer

logger = Logger.get_logger(__name__)

Layers = Union[RasterLayer, Sequence[RasterLayer]]


@dataclass(frozen=True)
class AnomalyResult:
    """Outputs of one pipeline run, all on the reference grid."""

    extent: Extent
    current: RasterLayer
    ref_mean: RasterLayer
    ref_sd: RasterLayer
    anomaly: RasterLayer
    classified: ClassifiedLayer


def _as_list(layers: Layers, name: str) -> List[RasterLayer]:
    if isinstance(layers, RasterLayer):
        return [layers]
    out = list(layers)
    if not out:
        raise EmptyStack(f"no {name} layers supplied")
    return out


@dataclass
class AnomalyPipeline:
    """Encapsulate the anomaly workflow from raw layers to classes."""

    settings: AnomalySettings

    @property
    def grid(self):
        return self.settings.grid

    def working_extent(
        self, layers: Sequence[RasterLayer], extent: Optional[Extent] = None
    ) -> Extent:
        """Return the grid-aligned extent the run is cropped to.

        The overlap of all layers is snapped to the grid, moving edges inward
        by one cell where snapping pushed them outside the overlap. An
        explicit extent (or the configured AOI) is snapped too and clipped to
        that overlap; it only fails when the two do not intersect.
        """
        overlap = layers[0].extent
        for layer in layers[1:]:
            overlap = overlap.intersection(layer.extent)
        snapped = align(overlap, self.grid)
        cell = self.grid.cell_size
        r = COORD_DECIMALS
        west, east, south, north = snapped.as_tuple()
        if round(west, r) < round(overlap.west, r):
            west += cell
        if round(east, r) > round(overlap.east, r):
            east -= cell
        if round(south, r) < round(overlap.south, r):
            south += cell
        if round(north, r) > round(overlap.north, r):
            north -= cell
        inner = Extent(west, east, south, north).validate()

        requested = extent or self.settings.aoi
        if requested is None:
            return inner
        aoi = align(requested, self.grid)
        if inner.contains(aoi):
            return aoi
        clipped = aoi.intersection(inner)
        logger.warning(
            "AOI %s reaches past the input rasters; clipped to %s",
            aoi.as_tuple(),
            clipped.as_tuple(),
        )
        return clipped

    def _to_grid(self, layer: RasterLayer) -> RasterLayer:
        """Aggregate *layer* onto the reference grid when it is finer."""
        if same_coord(layer.cell_size, self.grid.cell_size):
            return layer
        ratio = self.grid.cell_size / layer.cell_size
        factor = self.settings.aggregation_factor
        if ratio < 1 or abs(ratio - factor) > 1e-6:
            raise InvalidAggregationFactor(
                f"cell size {layer.cell_size} cannot be aggregated by {factor} "
                f"onto {self.grid.cell_size} deg cells"
            )
        return aggregate(
            layer,
            factor,
            self.settings.min_valid_count,
            max_workers=self.settings.max_workers,
            chunk_rows=self.settings.chunk_rows,
        )

    def run(
        self,
        current: Layers,
        lts_mean: Layers,
        lts_sd: Layers,
        extent: Optional[Extent] = None,
    ) -> AnomalyResult:
        """Execute the full workflow and return every intermediate output.

        *current* holds one layer per period; *lts_mean* and *lts_sd* hold the
        matching long-term statistics, one pair per period.
        """
        s = self.settings
        current_l = _as_list(current, "current")
        mean_l = _as_list(lts_mean, "LTS mean")
        sd_l = _as_list(lts_sd, "LTS sd")
        if len(mean_l) != len(sd_l):
            raise ValueError(
                f"{len(mean_l)} LTS mean layers but {len(sd_l)} LTS sd layers"
            )
        for layer in mean_l + sd_l:
            if not same_coord(layer.cell_size, self.grid.cell_size):
                raise ValueError(
                    f"LTS layer cell size {layer.cell_size} does not match "
                    f"the {self.grid.cell_size} deg reference grid"
                )

        # 1. Sanitize saturated values
        current_l = [sanitize(layer, s.index_upper_bound) for layer in current_l]
        mean_l = [sanitize(layer, s.index_upper_bound) for layer in mean_l]
        sd_l = [sanitize(layer, s.sd_upper_bound) for layer in sd_l]

        # 2. Align extent and crop
        work = self.working_extent(current_l + mean_l + sd_l, extent)
        logger.info("Working extent %s", work.as_tuple())
        current_l = [crop(layer, work) for layer in current_l]
        mean_l = [crop(layer, work) for layer in mean_l]
        sd_l = [crop(layer, work) for layer in sd_l]

        # 3. Aggregate finer current layers onto the reference grid
        current_l = [self._to_grid(layer) for layer in current_l]

        # 4. Combine periods
        if len(current_l) > 1 or len(mean_l) > 1:
            logger.info("Combining %d periods", len(mean_l))
        cur = self._combine(current_l, average_mean)
        ref_mean = self._combine(mean_l, average_mean)
        ref_sd = self._combine(sd_l, average_pooled_sd)

        # 5. Anomaly and classes
        anomaly = compute(cur, ref_mean, s.method, ref_sd=ref_sd)
        classified = classify(anomaly, s.thresholds, method=s.method, ref_sd=ref_sd)
        return AnomalyResult(
            extent=work,
            current=cur,
            ref_mean=ref_mean,
            ref_sd=ref_sd,
            anomaly=anomaly,
            classified=classified,
        )

    def _combine(self, layers: List[RasterLayer], reducer) -> RasterLayer:
        if len(layers) == 1:
            return layers[0]
        return reducer(
            layers,
            max_workers=self.settings.max_workers,
            chunk_rows=self.settings.chunk_rows,
        )
