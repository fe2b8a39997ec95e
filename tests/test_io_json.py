import json
import os
import tempfile
import unittest

from pyqtgraph_serial_monitor.io_json import load_monitor_data, save_monitor_data, to_dict
from pyqtgraph_serial_monitor.models import (
    ConnectionConfig, FlowControl, InputSlot, MonitorData, Parity, PlotConfig, PlotData,
    PlotMode, ScaleMode, StartModeKind,
)


class TestMonitorDataFiles(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = os.path.join(self.tmp.name, "monitor.json")

    def test_save_then_load(self):
        slot = InputSlot.default(2)
        slot.name = "Pressure"
        slot.value = 42.0
        data = MonitorData(
            conn_config=ConnectionConfig(port="/dev/ttyACM0", baud_rate=57600, data_bits=7,
                                         parity=Parity.ODD, stop_bits=2,
                                         flow_ctrl=FlowControl.HARDWARE, dtr=False,
                                         start_kind=StartModeKind.MESSAGE, start_msg="GO"),
            plot_config=PlotConfig(mode=PlotMode.CYCLIC, window=2.5, scale_mode=ScaleMode.MANUAL,
                                   y_min=-5.0, y_max=5.0),
            inp_slots=[slot],
            plots=[PlotData(id=4, name="Main", hidden=[0, 2]),
                   PlotData(id=5, name="Console", height=192, console=True)],
        )
        save_monitor_data(self.path, data)
        loaded = load_monitor_data(self.path)

        self.assertEqual(loaded.conn_config, data.conn_config)
        self.assertEqual(loaded.plot_config, data.plot_config)
        self.assertEqual(loaded.plots, data.plots)
        self.assertEqual(loaded.inp_slots[0].name, "Pressure")
        self.assertEqual(loaded.inp_slots[0].color, slot.color)
        # live values are not persisted
        self.assertEqual(loaded.inp_slots[0].value, 0.0)

    def test_file_is_plain_json(self):
        save_monitor_data(self.path, MonitorData())
        with open(self.path, encoding="utf-8") as f:
            raw = json.load(f)
        self.assertEqual(raw["conn_config"]["parity"], "None")
        self.assertEqual(raw["conn_config"]["start_mode"], "Delay")
        self.assertEqual(raw["conn_config"]["start_delay"], 1000)
        self.assertEqual(raw["plot_config"]["mode"], "Continuous")

    def test_malformed_json(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertRaises(ValueError):
            load_monitor_data(self.path)

    def test_bad_content(self):
        d = to_dict(MonitorData())
        d["conn_config"]["parity"] = "Sometimes"
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(d, f)
        with self.assertRaises(ValueError):
            load_monitor_data(self.path)

        del d["plot_config"]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(d, f)
        with self.assertRaises(ValueError):
            load_monitor_data(self.path)

    def test_missing_file(self):
        with self.assertRaises(OSError):
            load_monitor_data(os.path.join(self.tmp.name, "nope.json"))


if __name__ == "__main__":
    unittest.main()
