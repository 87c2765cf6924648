import os
from typing import Optional

import matplotlib.pyplot as plt
from matplotlib.colors import BoundaryNorm, ListedColormap
from matplotlib.patches import Patch
import numpy as np

from vianomaly.analytics.classify import CLASS_LABELS
from vianomaly.raster.layer import ClassifiedLayer

# brown (strongly below) -> green (strongly above)
CLASS_COLORS = ("#a6611a", "#dfc27d", "#f5f5f5", "#80cdc1", "#018571")


def plot_classified(
    layer: ClassifiedLayer,
    output_path: str,
    title: Optional[str] = None,
) -> None:
    """
    Save a five-class anomaly map with a legend as PNG.

    Args:
        layer: classified anomaly layer
        output_path: file path for the output PNG
        title: optional plot title
    """
    classes = np.ma.masked_equal(layer.classes(), 0)
    cmap = ListedColormap(CLASS_COLORS)
    cmap.set_bad(alpha=0.0)
    norm = BoundaryNorm([0.5, 1.5, 2.5, 3.5, 4.5, 5.5], cmap.N)
    ext = layer.extent

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.imshow(
        classes,
        cmap=cmap,
        norm=norm,
        extent=(ext.west, ext.east, ext.south, ext.north),
        interpolation="nearest",
    )
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    if title:
        ax.set_title(title)
    handles = [
        Patch(facecolor=color, edgecolor="grey", label=CLASS_LABELS[value])
        for value, color in zip(sorted(CLASS_LABELS), CLASS_COLORS)
    ]
    ax.legend(handles=handles, loc="lower left", fontsize="small", framealpha=0.9)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
