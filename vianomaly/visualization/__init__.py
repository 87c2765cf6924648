"""Visualization helpers."""

from .classmap import plot_classified, CLASS_COLORS

__all__ = ["plot_classified", "CLASS_COLORS"]
