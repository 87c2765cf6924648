"""Service-layer helpers used by the CLI and tests."""

from importlib import import_module

__all__ = [
    "compute_anomaly_map",
    "AnomalyMapService",
    "read_layer",
    "write_layer",
    "mask_layer",
]


def __getattr__(name):
    if name in ("compute_anomaly_map", "AnomalyMapService"):
        return getattr(import_module(".anomaly", __name__), name)
    if name in ("read_layer", "write_layer"):
        return getattr(import_module(".raster_io", __name__), name)
    if name == "mask_layer":
        return import_module(".masking", __name__).mask_layer
    raise AttributeError(name)
