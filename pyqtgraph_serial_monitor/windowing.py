"""
Visible-window and y-scale computation for the plots.

Continuous: trailing window, every sample with `t_now - t <= window`.
Cyclic:     oscilloscope sweep of period `window`. The current partial sweep
            (t > split) stays where it is; the part of the previous sweep that
            has not been overwritten yet ([start, split)) is shifted forward by
            one period so it continues to the right of `t_now`.

`t_now` is the latest timestamp of the series being windowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .models import PlotConfig, PlotMode, ScaleMode
from .store import SampleStore

Bounds = Tuple[float, float]


def continuous_window(t: np.ndarray, y: np.ndarray, window: float) -> Tuple[np.ndarray, np.ndarray]:
    if t.size == 0:
        return t, y
    mask = (t[-1] - t) <= window
    return t[mask], y[mask]


def cyclic_split(t_now: float, window: float) -> Tuple[float, float]:
    """Return (split, start): the current sweep boundary and where the kept part of the previous sweep begins."""
    sub = t_now % window
    split = t_now - sub
    return split, split - (window - sub)


def cyclic_window(t: np.ndarray, y: np.ndarray, window: float) -> Tuple[np.ndarray, np.ndarray]:
    if t.size == 0 or window <= 0:
        return t[:0], y[:0]
    split, start = cyclic_split(float(t[-1]), window)
    new = t > split
    old = (t >= start) & (t < split)
    # new sweep ends at t_now, the shifted old sweep starts at t_now
    return (np.concatenate((t[new], t[old] + window)),
            np.concatenate((y[new], y[old])))


def visible(t: np.ndarray, y: np.ndarray, config: PlotConfig) -> Tuple[np.ndarray, np.ndarray]:
    if config.mode is PlotMode.CYCLIC:
        return cyclic_window(t, y, config.window)
    return continuous_window(t, y, config.window)


class AutoMaxAccumulator:
    """Running (min, max) of one plot; only widens until reset()."""

    def __init__(self):
        self.bounds: Optional[Bounds] = None

    def merge(self, lo: float, hi: float) -> Bounds:
        if self.bounds is None:
            self.bounds = (lo, hi)
        else:
            self.bounds = (min(self.bounds[0], lo), max(self.bounds[1], hi))
        return self.bounds

    def reset(self) -> None:
        self.bounds = None


def value_range(ys: Iterable[np.ndarray]) -> Optional[Bounds]:
    """(min, max) over the finite values of all arrays, or None if there are none."""
    lo, hi = None, None
    for y in ys:
        y = y[np.isfinite(y)]
        if y.size == 0:
            continue
        ymin, ymax = float(y.min()), float(y.max())
        lo = ymin if lo is None else min(lo, ymin)
        hi = ymax if hi is None else max(hi, ymax)
    if lo is None:
        return None
    return lo, hi


@dataclass
class Curve:
    index: int
    t: np.ndarray
    y: np.ndarray
    hidden: bool = False


@dataclass
class PlotView:
    curves: List[Curve]
    y_bounds: Optional[Bounds]      # None: fit to the visible data
    marker_x: Optional[float]       # sweep position in Cyclic mode


def compute_view(
    store: SampleStore,
    config: PlotConfig,
    hidden: Iterable[int] = (),
    accumulator: Optional[AutoMaxAccumulator] = None,
) -> PlotView:
    hidden = set(hidden)
    curves = []
    for i, s in enumerate(store.series):
        t, y = visible(*s.view(), config)
        curves.append(Curve(index=i, t=t, y=y, hidden=i in hidden))

    y_bounds: Optional[Bounds] = None
    if config.scale_mode is ScaleMode.MANUAL:
        y_bounds = (config.y_min, config.y_max)
    elif config.scale_mode is ScaleMode.AUTO_MAX:
        if accumulator is None:
            accumulator = AutoMaxAccumulator()
        rng = value_range(c.y for c in curves if not c.hidden)
        if rng is not None:
            accumulator.merge(*rng)
        y_bounds = accumulator.bounds

    marker_x = None
    if config.mode is PlotMode.CYCLIC:
        marker_x = store.latest_time()

    return PlotView(curves=curves, y_bounds=y_bounds, marker_x=marker_x)
