import unittest

import numpy as np

from pyqtgraph_serial_monitor.models import PlotConfig, PlotMode, ScaleMode
from pyqtgraph_serial_monitor.store import SampleStore, Series
from pyqtgraph_serial_monitor.windowing import (
    AutoMaxAccumulator, compute_view, continuous_window, cyclic_split, cyclic_window, value_range,
)


class TestSeriesAndStore(unittest.TestCase):

    def test_series_grows_past_capacity(self):
        s = Series(capacity=4)
        for i in range(10):
            s.append(float(i), float(i * 10))
        t, y = s.view()
        self.assertEqual(len(s), 10)
        np.testing.assert_array_equal(t, np.arange(10.0))
        np.testing.assert_array_equal(y, np.arange(10.0) * 10)
        self.assertEqual(s.latest(), (9.0, 90.0))

    def test_trim_before_and_compaction(self):
        s = Series(capacity=4)
        for i in range(4):
            s.append(float(i), 0.0)
        s.trim_before(2.0)
        self.assertEqual(len(s), 2)
        s.append(4.0, 1.0)        # triggers a grow that drops the trimmed samples
        t, _ = s.view()
        np.testing.assert_array_equal(t, [2.0, 3.0, 4.0])

    def test_store_appends_per_column(self):
        store = SampleStore(retention_s=None)
        store.append(0.0, (1.0, 2.0))
        store.append(0.1, (3.0, 4.0, 5.0))
        store.append(0.2, (6.0,))
        self.assertEqual(len(store), 3)
        self.assertEqual([len(s) for s in store.series], [3, 2, 1])
        self.assertEqual(store.latest_values(), [6.0, 4.0, 5.0])
        self.assertEqual(store.latest_time(), 0.2)

    def test_store_retention(self):
        store = SampleStore(retention_s=10.0)
        for i in range(30):
            store.append(float(i), (float(i),))
        t, _ = store.series[0].view()
        self.assertEqual(t[0], 19.0)
        self.assertEqual(t[-1], 29.0)

    def test_clear(self):
        store = SampleStore()
        store.append(0.0, (1.0,))
        store.clear()
        self.assertEqual(len(store), 0)
        self.assertIsNone(store.latest_time())


class TestContinuousWindow(unittest.TestCase):

    def test_trailing_window(self):
        t = np.arange(0.0, 10.5, 0.5)
        y = t * 2
        vt, vy = continuous_window(t, y, 3.0)
        np.testing.assert_array_equal(vt, t[t >= 7.0])
        np.testing.assert_array_equal(vy, vt * 2)

    def test_shrinking_window_never_grows_the_view(self):
        t = np.linspace(0.0, 20.0, 201)
        y = np.sin(t)
        sizes = [continuous_window(t, y, w)[0].size for w in (20.0, 10.0, 5.0, 1.0, 0.0)]
        self.assertEqual(sizes, sorted(sizes, reverse=True))
        self.assertEqual(sizes[-1], 1)

    def test_empty(self):
        vt, vy = continuous_window(np.array([]), np.array([]), 5.0)
        self.assertEqual(vt.size, 0)


class TestCyclicWindow(unittest.TestCase):

    def test_split(self):
        split, start = cyclic_split(24.0, 10.0)
        self.assertEqual(split, 20.0)
        self.assertEqual(start, 14.0)

    def test_sweep_at_24s(self):
        t = np.arange(0.0, 24.5, 0.5)
        y = t.copy()          # value remembers the original time
        vt, vy = cyclic_window(t, y, 10.0)

        new = vy > 20.0
        np.testing.assert_array_equal(vt[new], vy[new])
        self.assertEqual(vy[new].min(), 20.5)
        self.assertEqual(vy[new].max(), 24.0)

        old = ~new
        np.testing.assert_array_equal(vt[old], vy[old] + 10.0)
        self.assertEqual(vy[old].min(), 14.0)
        self.assertEqual(vy[old].max(), 19.5)
        self.assertTrue((vt[old] >= 24.0).all() and (vt[old] < 30.0).all())

        # x is sorted: new sweep up to t_now, then the shifted old sweep
        self.assertTrue((np.diff(vt) >= 0).all())

    def test_first_sweep_has_no_old_part(self):
        t = np.array([0.5, 1.0, 2.0])
        vt, vy = cyclic_window(t, t, 10.0)
        np.testing.assert_array_equal(vt, t)

    def test_sample_at_split_is_in_neither_sweep(self):
        t = np.array([14.0, 20.0, 24.0])
        vt, vy = cyclic_window(t, t, 10.0)
        np.testing.assert_array_equal(vy, [24.0, 14.0])
        np.testing.assert_array_equal(vt, [24.0, 24.0])

    def test_t_now_on_a_sweep_boundary(self):
        # t_now == split: the new sweep is empty and the newest sample drops out
        t = np.array([10.0, 15.0, 20.0])
        self.assertEqual(cyclic_split(20.0, 10.0), (20.0, 10.0))
        vt, vy = cyclic_window(t, t, 10.0)
        np.testing.assert_array_equal(vy, [10.0, 15.0])
        np.testing.assert_array_equal(vt, [20.0, 25.0])

    def test_deterministic(self):
        t = np.linspace(0.0, 37.3, 500)
        y = np.cos(t)
        a = cyclic_window(t, y, 7.0)
        b = cyclic_window(t, y, 7.0)
        np.testing.assert_array_equal(a[0], b[0])
        np.testing.assert_array_equal(a[1], b[1])

    def test_empty_and_bad_window(self):
        self.assertEqual(cyclic_window(np.array([]), np.array([]), 5.0)[0].size, 0)
        self.assertEqual(cyclic_window(np.array([1.0]), np.array([1.0]), 0.0)[0].size, 0)


class TestScale(unittest.TestCase):

    def make_store(self, rows):
        store = SampleStore(retention_s=None)
        for t, vals in rows:
            store.append(t, vals)
        return store

    def test_value_range_ignores_nan(self):
        self.assertEqual(value_range([np.array([np.nan, 1.0, 3.0]), np.array([-2.0])]), (-2.0, 3.0))
        self.assertIsNone(value_range([np.array([np.nan])]))

    def test_auto_leaves_bounds_to_the_plot(self):
        store = self.make_store([(0.0, (1.0, 2.0))])
        view = compute_view(store, PlotConfig(scale_mode=ScaleMode.AUTO))
        self.assertIsNone(view.y_bounds)
        self.assertIsNone(view.marker_x)
        self.assertEqual(len(view.curves), 2)

    def test_manual_bounds_are_used_as_given(self):
        store = self.make_store([(0.0, (5.0,))])
        cfg = PlotConfig(scale_mode=ScaleMode.MANUAL, y_min=-1.0, y_max=2.0)
        self.assertEqual(compute_view(store, cfg).y_bounds, (-1.0, 2.0))

    def test_automax_only_widens(self):
        cfg = PlotConfig(window=1.0, scale_mode=ScaleMode.AUTO_MAX)
        acc = AutoMaxAccumulator()
        store = SampleStore(retention_s=None)

        store.append(0.0, (0.0,))
        store.append(0.5, (10.0,))
        self.assertEqual(compute_view(store, cfg, accumulator=acc).y_bounds, (0.0, 10.0))

        # old extremes leave the window; the bounds stay
        store.append(5.0, (3.0,))
        self.assertEqual(compute_view(store, cfg, accumulator=acc).y_bounds, (0.0, 10.0))

        store.append(5.5, (-4.0,))
        self.assertEqual(compute_view(store, cfg, accumulator=acc).y_bounds, (-4.0, 10.0))

        acc.reset()
        self.assertEqual(compute_view(store, cfg, accumulator=acc).y_bounds, (-4.0, 3.0))

    def test_automax_skips_hidden_series(self):
        store = self.make_store([(0.0, (1.0, 100.0)), (0.1, (2.0, -100.0))])
        cfg = PlotConfig(scale_mode=ScaleMode.AUTO_MAX)
        view = compute_view(store, cfg, hidden=[1], accumulator=AutoMaxAccumulator())
        self.assertEqual(view.y_bounds, (1.0, 2.0))
        self.assertTrue(view.curves[1].hidden)
        # hidden data is still there
        self.assertEqual(view.curves[1].y.size, 2)

    def test_cyclic_marker_at_latest_time(self):
        store = self.make_store([(0.0, (1.0,)), (12.5, (2.0,))])
        view = compute_view(store, PlotConfig(mode=PlotMode.CYCLIC, window=10.0))
        self.assertEqual(view.marker_x, 12.5)


if __name__ == "__main__":
    unittest.main()
