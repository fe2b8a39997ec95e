from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from .models import (
    ConnectionConfig, FlowControl, InputSlot, MonitorData, Parity, PlotConfig,
    PlotData, PlotMode, ScaleMode, StartModeKind,
)


def to_dict(data: MonitorData) -> Dict[str, Any]:
    c = data.conn_config
    p = data.plot_config
    return {
        "conn_config": {
            "port": c.port,
            "baud_rate": c.baud_rate,
            "data_bits": c.data_bits,
            "parity": c.parity.value,
            "stop_bits": c.stop_bits,
            "flow_ctrl": c.flow_ctrl.value,
            "dtr": c.dtr,
            "start_mode": c.start_kind.value,
            "start_delay": c.start_delay_ms,
            "start_msg": c.start_msg,
        },
        "plot_config": {
            "mode": p.mode.value,
            "window": p.window,
            "scale_mode": p.scale_mode.value,
            "y_min": p.y_min,
            "y_max": p.y_max,
        },
        "inp_slots": [
            {"index": s.index, "name": s.name, "color": list(s.color)}
            for s in data.inp_slots
        ],
        "plots": [
            {"id": pl.id, "name": pl.name, "hidden": list(pl.hidden),
             "height": pl.height, "console": pl.console}
            for pl in data.plots
        ],
    }


def from_dict(d: Dict[str, Any]) -> MonitorData:
    """Build MonitorData from a parsed config; raises ValueError on bad content."""
    try:
        c = d["conn_config"]
        p = d["plot_config"]
        conn = ConnectionConfig(
            port=str(c["port"]),
            baud_rate=int(c["baud_rate"]),
            data_bits=int(c["data_bits"]),
            parity=Parity(c["parity"]),
            stop_bits=int(c["stop_bits"]),
            flow_ctrl=FlowControl(c["flow_ctrl"]),
            dtr=bool(c["dtr"]),
            start_kind=StartModeKind(c["start_mode"]),
            start_delay_ms=int(c["start_delay"]),
            start_msg=str(c["start_msg"]),
        )
        plot = PlotConfig(
            mode=PlotMode(p["mode"]),
            window=float(p["window"]),
            scale_mode=ScaleMode(p["scale_mode"]),
            y_min=float(p["y_min"]),
            y_max=float(p["y_max"]),
        )
        slots = [
            InputSlot(index=int(s["index"]), name=str(s["name"]),
                      color=tuple(float(v) for v in s["color"]))
            for s in d.get("inp_slots", [])
        ]
        plots = [
            PlotData(id=int(pl["id"]), name=str(pl["name"]),
                     hidden=[int(i) for i in pl.get("hidden", [])],
                     height=float(pl["height"]), console=bool(pl["console"]))
            for pl in d.get("plots", [])
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid config: {e}") from e

    for s in slots:
        if len(s.color) != 3:
            raise ValueError(f"Invalid config: slot {s.index} color must have 3 components")

    return MonitorData(conn_config=conn, plot_config=plot, inp_slots=slots, plots=plots)


def save_monitor_data(path: Union[str, Path], data: MonitorData) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_dict(data), f, indent=2)


def load_monitor_data(path: Union[str, Path]) -> MonitorData:
    """
    Read a config written by save_monitor_data().
    Raises ValueError on malformed JSON or content; OSError if the file can't be read.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            d = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to load config: {e}") from e
    if not isinstance(d, dict):
        raise ValueError("Config must be a JSON object")
    return from_dict(d)
