"""
Module `core.dekad` handles dekads: the three 10-day compositing periods of
each month, starting on days 1, 11 and 21.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union

DEKAD_START_DAYS = (1, 11, 21)


@dataclass(frozen=True, order=True)
class Dekad:
    """Dekad *index* (1..3) of *month* in *year*."""

    year: int
    month: int
    index: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")
        if self.index not in (1, 2, 3):
            raise ValueError(f"dekad index must be 1, 2 or 3, got {self.index}")

    @classmethod
    def parse(cls, text: str) -> "Dekad":
        """Parse ``YYYYMMDD`` or ``YYYY-MM-DD`` where DD is 01, 11 or 21."""
        raw = text.strip()
        for fmt in ("%Y%m%d", "%Y-%m-%d"):
            try:
                day = datetime.strptime(raw, fmt).date()
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"Invalid dekad identifier '{text}'")
        if day.day not in DEKAD_START_DAYS:
            raise ValueError(
                f"Dekad identifier '{text}' must start on day 1, 11 or 21"
            )
        return cls.from_date(day)

    @classmethod
    def from_date(cls, day: Union[date, datetime]) -> "Dekad":
        """Return the dekad containing *day*."""
        index = 1 if day.day <= 10 else 2 if day.day <= 20 else 3
        return cls(day.year, day.month, index)

    @property
    def start(self) -> date:
        return date(self.year, self.month, DEKAD_START_DAYS[self.index - 1])

    @property
    def end(self) -> date:
        if self.index < 3:
            return date(self.year, self.month, DEKAD_START_DAYS[self.index] - 1)
        last = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last)

    @property
    def label(self) -> str:
        """Identifier as used in product names, e.g. ``20230521``."""
        return self.start.strftime("%Y%m%d")

    @property
    def lts_key(self) -> str:
        """Month/day key of the matching long-term statistics layer, e.g. ``0521``."""
        return self.start.strftime("%m%d")

    def next(self) -> "Dekad":
        return Dekad.from_date(self.end + timedelta(days=1))

    def __str__(self) -> str:
        return self.label


def dekad_range(first: Union[str, Dekad], last: Union[str, Dekad]) -> List[Dekad]:
    """Return all dekads from *first* to *last*, inclusive."""
    current = Dekad.parse(first) if isinstance(first, str) else first
    stop = Dekad.parse(last) if isinstance(last, str) else last
    if stop < current:
        raise ValueError(f"dekad range ends ({stop}) before it starts ({current})")
    out = []
    while current <= stop:
        out.append(current)
        current = current.next()
    return out
