# store.py
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import STORED_DURATION_S


class Series:
    """
    Growing (t, value) history for one column.
    Samples older than a cutoff can be dropped from the front with trim_before();
    the dropped space is reclaimed the next time the buffers grow.
    """
    def __init__(self, capacity: int = 1024):
        self._t = np.empty(capacity, dtype=np.float64)
        self._y = np.empty(capacity, dtype=np.float64)
        self.i0 = 0             # first valid index
        self.n = 0              # one past the last valid index

    def __len__(self) -> int:
        return self.n - self.i0

    def append(self, t: float, value: float) -> None:
        if self.n == self._t.size:
            self._grow()
        self._t[self.n] = t
        self._y[self.n] = value
        self.n += 1

    def _grow(self) -> None:
        live = self.n - self.i0
        cap = self._t.size
        if live * 2 > cap:
            cap *= 2
        t = np.empty(cap, dtype=np.float64)
        y = np.empty(cap, dtype=np.float64)
        t[:live] = self._t[self.i0:self.n]
        y[:live] = self._y[self.i0:self.n]
        self._t, self._y = t, y
        self.i0, self.n = 0, live

    def view(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (t, y) views in chronological order."""
        return self._t[self.i0:self.n], self._y[self.i0:self.n]

    def latest(self) -> Optional[Tuple[float, float]]:
        if self.n == self.i0:
            return None
        return float(self._t[self.n - 1]), float(self._y[self.n - 1])

    def trim_before(self, t_min: float) -> None:
        t = self._t[self.i0:self.n]
        self.i0 += int(np.searchsorted(t, t_min, side="left"))


class SampleStore:
    """One Series per parsed column, appended together."""

    def __init__(self, retention_s: Optional[float] = STORED_DURATION_S):
        self.series: List[Series] = []
        self.retention_s = retention_s   # None keeps everything

    def __len__(self) -> int:
        return len(self.series)

    def append(self, t: float, values: Sequence[float]) -> None:
        while len(self.series) < len(values):
            self.series.append(Series())
        for s, v in zip(self.series, values):
            s.append(t, v)
        if self.retention_s is not None:
            cutoff = t - self.retention_s
            for s in self.series:
                s.trim_before(cutoff)

    def latest_time(self) -> Optional[float]:
        times = [s.latest()[0] for s in self.series if len(s)]
        return max(times) if times else None

    def latest_values(self) -> List[float]:
        out = []
        for s in self.series:
            last = s.latest()
            out.append(last[1] if last is not None else 0.0)
        return out

    def clear(self) -> None:
        self.series = []
