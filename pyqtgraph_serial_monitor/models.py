"""Plain data types: connection/plot configuration, start modes, slots and plots."""

from __future__ import annotations

import colorsys
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

from .config import (
    CONSOLE_HEIGHT, DEFAULT_BAUD, DEFAULT_START_DELAY_MS, DEFAULT_START_MESSAGE,
    DEFAULT_WINDOW_S, DEFAULT_Y_LIMITS, NO_PORT, PLOT_HEIGHT, READ_TIMEOUT_S,
    SLOT_HUE_STEP, SLOT_SATURATION, SLOT_VALUE,
)


class Parity(Enum):
    NONE = "None"
    ODD = "Odd"
    EVEN = "Even"


class FlowControl(Enum):
    NONE = "None"
    SOFTWARE = "Software"
    HARDWARE = "Hardware"


# ---------- start modes ----------
@dataclass(frozen=True)
class Immediate:
    def __str__(self):
        return "Immediate"


@dataclass(frozen=True)
class Delay:
    seconds: float

    def __str__(self):
        return f"Delay({self.seconds:g}s)"


@dataclass(frozen=True)
class Message:
    text: str

    def __str__(self):
        return f"Message({self.text!r})"


StartMode = Union[Immediate, Delay, Message]


class StartModeKind(Enum):
    IMMEDIATE = "Immediate"
    DELAY = "Delay"
    MESSAGE = "Message"


@dataclass(frozen=True)
class Line:
    t: float        # seconds since the reader started (or since the trigger, for Delay)
    content: str


@dataclass
class SerialConfig:
    """What the line reader needs to open a port."""
    port: str
    baud_rate: int = DEFAULT_BAUD
    data_bits: int = 8
    parity: Parity = Parity.NONE
    stop_bits: int = 1
    flow_ctrl: FlowControl = FlowControl.NONE
    timeout: float = READ_TIMEOUT_S


@dataclass
class ConnectionConfig:
    port: str = NO_PORT
    baud_rate: int = DEFAULT_BAUD
    data_bits: int = 8
    parity: Parity = Parity.NONE
    stop_bits: int = 1
    flow_ctrl: FlowControl = FlowControl.NONE
    dtr: bool = True
    start_kind: StartModeKind = StartModeKind.DELAY
    start_delay_ms: int = DEFAULT_START_DELAY_MS
    start_msg: str = DEFAULT_START_MESSAGE

    def serial_config(self) -> SerialConfig:
        return SerialConfig(
            port=self.port,
            baud_rate=self.baud_rate,
            data_bits=self.data_bits,
            parity=self.parity,
            stop_bits=self.stop_bits,
            flow_ctrl=self.flow_ctrl,
        )

    def start_mode(self) -> StartMode:
        if self.start_kind is StartModeKind.IMMEDIATE:
            return Immediate()
        if self.start_kind is StartModeKind.DELAY:
            return Delay(self.start_delay_ms / 1000.0)
        return Message(self.start_msg)


# ---------- plotting ----------
class PlotMode(Enum):
    CONTINUOUS = "Continuous"
    CYCLIC = "Cyclic"


class ScaleMode(Enum):
    AUTO = "Auto"
    AUTO_MAX = "AutoMax"
    MANUAL = "Manual"


@dataclass
class PlotConfig:
    mode: PlotMode = PlotMode.CONTINUOUS
    window: float = DEFAULT_WINDOW_S
    scale_mode: ScaleMode = ScaleMode.AUTO
    y_min: float = DEFAULT_Y_LIMITS[0]
    y_max: float = DEFAULT_Y_LIMITS[1]


def slot_color(index: int) -> Tuple[float, float, float]:
    """Deterministic RGB (0..1) color for an input slot."""
    return colorsys.hsv_to_rgb((index * SLOT_HUE_STEP) % 1.0, SLOT_SATURATION, SLOT_VALUE)


@dataclass
class InputSlot:
    index: int
    name: str
    color: Tuple[float, float, float]
    value: float = 0.0   # latest sample; not persisted

    @classmethod
    def default(cls, index: int) -> "InputSlot":
        return cls(index=index, name=f"Slot {index + 1}", color=slot_color(index))

    def rgb255(self) -> Tuple[int, int, int]:
        r, g, b = self.color
        return int(r * 255), int(g * 255), int(b * 255)


@dataclass
class PlotData:
    id: int
    name: str
    hidden: List[int] = field(default_factory=list)
    height: float = PLOT_HEIGHT
    console: bool = False


class PlotIdAllocator:
    """Hands out plot ids; owned by the session, reseeded after a config load."""

    def __init__(self, start: int = 1):
        self._next = start

    def next_id(self) -> int:
        i = self._next
        self._next += 1
        return i

    def reseed(self, plots: List[PlotData]) -> None:
        if plots:
            self._next = max(p.id for p in plots) + 1

    def new_plot(self, name: str) -> PlotData:
        return PlotData(id=self.next_id(), name=name)

    def new_console(self) -> PlotData:
        return PlotData(id=self.next_id(), name="Console", height=CONSOLE_HEIGHT, console=True)


@dataclass
class MonitorData:
    """Everything that is saved to / loaded from a config file."""
    conn_config: ConnectionConfig = field(default_factory=ConnectionConfig)
    plot_config: PlotConfig = field(default_factory=PlotConfig)
    inp_slots: List[InputSlot] = field(default_factory=list)
    plots: List[PlotData] = field(default_factory=list)
