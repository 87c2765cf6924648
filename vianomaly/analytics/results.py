from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

import numpy as np
import pandas as pd

from .classify import CLASS_LABELS


@dataclass
class ClassSummary:
    """Pixel counts per anomaly class."""

    rows: List[Dict]

    @classmethod
    def from_classes(cls, classes: np.ndarray) -> "ClassSummary":
        """Count classes 1..5 in an integer array where 0 marks no-data."""
        counts = np.bincount(classes.ravel().astype(np.int64), minlength=6)
        n_valid = int(counts[1:6].sum())
        rows = []
        for value, label in CLASS_LABELS.items():
            n = int(counts[value])
            rows.append(
                {
                    "class": value,
                    "label": label,
                    "pixels": n,
                    "percent": 100.0 * n / n_valid if n_valid else np.nan,
                }
            )
        return cls(rows)

    def to_dataframe(self) -> pd.DataFrame:
        """Return the class counts as a DataFrame."""
        return pd.DataFrame(self.rows)

    def to_csv(self, path: str) -> None:
        """Write the class counts to CSV."""
        self.to_dataframe().to_csv(path, index=False)
