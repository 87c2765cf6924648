"""core.config
---------------

Configuration loader/manager for vianomaly. Loads settings from
YAML/TOML/JSON over built-in defaults and turns them into a validated
:class:`AnomalySettings` via :py:meth:`ConfigManager.settings`.
"""

from __future__ import annotations

import os
import json
from dataclasses import dataclass
from typing import Optional

import yaml
import toml

from vianomaly.analytics.anomaly import AnomalyMethod
from vianomaly.analytics.classify import ThresholdSpec
from vianomaly.geo.grid import Extent, GridSpec


class ConfigValidationError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class AnomalySettings:
    """Validated parameters of one anomaly run."""

    grid: GridSpec
    aggregation_factor: int
    min_valid_count: int
    method: AnomalyMethod
    thresholds: ThresholdSpec
    index_upper_bound: float
    sd_upper_bound: float
    aoi: Optional[Extent] = None
    max_workers: Optional[int] = None
    chunk_rows: Optional[int] = None


class ConfigManager:
    """
    Loads and manages configuration from file or defaults.
    """

    DEFAULT_GRID: str = "1km"
    # 333 m -> 1 km
    DEFAULT_AGGREGATION_FACTOR: int = 3
    # a block needs more than this many valid samples
    DEFAULT_MIN_VALID_COUNT: int = 4
    DEFAULT_METHOD: str = AnomalyMethod.ZSCORE.value
    DEFAULT_ANOM1: str = "1*SD"
    DEFAULT_ANOM2: str = "2*SD"
    # NDVI digital numbers above 250 (0.92 after rescaling) are flags
    DEFAULT_INDEX_UPPER_BOUND: float = 0.92
    DEFAULT_SD_UPPER_BOUND: float = 0.92
    DEFAULT_CHUNK_ROWS: int = 256

    SUPPORTED_CONFIG_FORMATS: tuple[str, ...] = (".yaml", ".yml", ".toml", ".json")

    def __init__(self, config_path=None):
        self.config = {
            "grid": self.DEFAULT_GRID,
            "aggregation_factor": self.DEFAULT_AGGREGATION_FACTOR,
            "min_valid_count": self.DEFAULT_MIN_VALID_COUNT,
            "anomaly_method": self.DEFAULT_METHOD,
            "anom1": self.DEFAULT_ANOM1,
            "anom2": self.DEFAULT_ANOM2,
            "index_upper_bound": self.DEFAULT_INDEX_UPPER_BOUND,
            "sd_upper_bound": self.DEFAULT_SD_UPPER_BOUND,
            "aoi": None,
            "max_workers": None,
            "chunk_rows": self.DEFAULT_CHUNK_ROWS,
            "mask_path": None,
            "mask_column": None,
            "mask_value": None,
        }
        if config_path:
            self.load(config_path)

    def load(self, path: str) -> None:
        """
        Load configuration from a file (YAML, TOML, or JSON).
        Overwrites existing keys in self.config.
        """
        ext = os.path.splitext(path)[1].lower()
        try:
            with open(path, "r", encoding="utf-8") as f:
                if ext in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                elif ext == ".toml":
                    data = toml.load(f)
                elif ext == ".json":
                    data = json.load(f)
                else:
                    raise ConfigValidationError(f"Unsupported config format: {ext}")
        except Exception as e:
            raise ConfigValidationError(
                f"Failed to load config from {path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Config file {path} did not produce a dict")
        self.config.update(data)

    def get(self, key, default=None):
        """
        Retrieve a configuration value by key, or return `default` if not present.

        Args:
            key (str): The configuration parameter to look up.
            default:  The value to return if `key` is not found.
        """
        return self.config.get(key, default)

    def update(self, **overrides) -> None:
        """Override keys whose value is not None (e.g. from CLI options)."""
        self.config.update({k: v for k, v in overrides.items() if v is not None})

    def merge(self, other: "ConfigManager") -> None:
        """
        Merge another ConfigManager into this one.
        Values in other.config override this.config.
        """
        if not isinstance(other, ConfigManager):
            raise TypeError("Can only merge ConfigManager instances")
        self.config.update(other.config)

    def get_aoi(self) -> Optional[Extent]:
        """Return the configured AOI ``[west, east, south, north]`` as an Extent."""
        aoi = self.get("aoi")
        if aoi is None:
            return None
        if isinstance(aoi, dict):
            aoi = [aoi.get(k) for k in ("west", "east", "south", "north")]
        try:
            west, east, south, north = (float(v) for v in aoi)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(
                f"aoi must be [west, east, south, north], got {aoi!r}"
            ) from e
        return Extent(west, east, south, north).validate()

    def get_thresholds(self) -> ThresholdSpec:
        return ThresholdSpec.parse(self.get("anom1"), self.get("anom2"))

    def settings(self) -> AnomalySettings:
        """Validate the current configuration and return it as settings.

        Bad method tokens or thresholds raise their own error kinds; other
        malformed values raise :class:`ConfigValidationError`.
        """
        method = AnomalyMethod.parse(self.get("anomaly_method"))
        thresholds = self.get_thresholds()
        try:
            grid = GridSpec.from_name(str(self.get("grid")))
            factor = _as_int(self.get("aggregation_factor"), "aggregation_factor")
            min_valid = _as_int(self.get("min_valid_count"), "min_valid_count")
            max_workers = _optional_int(self.get("max_workers"), "max_workers")
            chunk_rows = _optional_int(self.get("chunk_rows"), "chunk_rows")
            index_bound = float(self.get("index_upper_bound"))
            sd_bound = float(self.get("sd_upper_bound"))
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"Invalid configuration: {e}") from e
        return AnomalySettings(
            grid=grid,
            aggregation_factor=factor,
            min_valid_count=min_valid,
            method=method,
            thresholds=thresholds,
            index_upper_bound=index_bound,
            sd_upper_bound=sd_bound,
            aoi=self.get_aoi(),
            max_workers=max_workers,
            chunk_rows=chunk_rows,
        )


def _as_int(value, name: str) -> int:
    if isinstance(value, bool) or int(value) != float(value):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return int(value)


def _optional_int(value, name: str) -> Optional[int]:
    return None if value is None else _as_int(value, name)
