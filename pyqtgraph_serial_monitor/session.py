"""
Session controller: Idle -> Open -> Reading -> Idle.

Owns the line reader, the schema parser and the sample store of the active
connection. poll() is called once per UI frame; it drains the reader,
parses each line into the store and returns notifications. A fatal read
error disconnects (and clears the session); a column mismatch is only a
warning.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional, Union

from .config import ERROR_SECONDS, NO_PORT, STORED_DURATION_S, STORED_LINES, WARNING_SECONDS
from .errors import AlreadyConnected, ColumnMismatch, NoDeviceSelected, NotConnected, ReadError, SerialError
from .io_json import load_monitor_data, save_monitor_data
from .models import InputSlot, Line, MonitorData, PlotData, PlotIdAllocator, SerialConfig
from .serial_parser import SchemaParser
from .serial_reader import LineReader, available_ports
from .store import SampleStore
from .windowing import AutoMaxAccumulator, PlotView, compute_view

LOG = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "Idle"
    OPEN = "Open"
    READING = "Reading"


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    severity: Severity
    duration_s: float

    @classmethod
    def warning(cls, message: str) -> "Notification":
        return cls(message, Severity.WARNING, WARNING_SECONDS)

    @classmethod
    def error(cls, message: str) -> "Notification":
        return cls(message, Severity.ERROR, ERROR_SECONDS)


class SessionController:
    def __init__(
        self,
        data: Optional[MonitorData] = None,
        reader_factory: Callable[[SerialConfig], LineReader] = LineReader,
        list_ports: Callable[[], List[str]] = available_ports,
    ):
        self._reader_factory = reader_factory
        self._list_ports = list_ports
        self._reader: Optional[LineReader] = None
        self._state = SessionState.IDLE

        self.parser = SchemaParser()
        self.store = SampleStore()
        self.console_lines: Deque[str] = deque(maxlen=STORED_LINES)
        self.paused = False
        self.devices: List[str] = []

        self._ids = PlotIdAllocator()
        self._accumulators: Dict[int, AutoMaxAccumulator] = {}
        self.data = MonitorData()
        if data is not None:
            self.data = data
            self._ids.reseed(data.plots)
        if not self.data.plots:
            self.data.plots.append(self._ids.new_plot("Plot 1"))

        self.refresh_devices()

    # ---------- state ----------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def input_slots(self) -> List[InputSlot]:
        return self.data.inp_slots

    @property
    def plots(self) -> List[PlotData]:
        return self.data.plots

    def is_connected(self) -> bool:
        return self._reader is not None and self._reader.is_open()

    def can_connect(self) -> bool:
        return self.data.conn_config.port != NO_PORT

    def has_input(self) -> bool:
        return self.parser.columns > 0

    # ---------- devices ----------
    def refresh_devices(self) -> List[str]:
        self.devices = list(self._list_ports())
        return self.devices

    def reset_port_if_missing(self) -> bool:
        conn = self.data.conn_config
        if conn.port != NO_PORT and conn.port not in self.devices:
            LOG.info("Port %s is gone", conn.port)
            conn.port = NO_PORT
            return True
        return False

    # ---------- connection ----------
    def connect(self) -> None:
        """Open the selected port and start reading; raises SerialError/SessionError on failure."""
        if self._state is not SessionState.IDLE:
            raise AlreadyConnected()
        if not self.can_connect():
            raise NoDeviceSelected()

        conn = self.data.conn_config
        reader = self._reader_factory(conn.serial_config())
        reader.open(conn.dtr)
        self._reader = reader
        self._state = SessionState.OPEN

        try:
            reader.begin_read(conn.start_mode())
        except SerialError:
            self._teardown()
            raise

        self._state = SessionState.READING
        self.paused = False
        LOG.info("Connected to %s", conn.port)

    def disconnect(self) -> None:
        if self._state is SessionState.IDLE:
            raise NotConnected()
        self._teardown()
        LOG.info("Disconnected")

    def _teardown(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None:
            reader.close()
        self.parser.reset()
        self.store.clear()
        self.data.inp_slots.clear()
        self.paused = False
        self._state = SessionState.IDLE

    def set_paused(self, paused: bool) -> None:
        self.paused = paused

    # ---------- polling ----------
    def poll(self) -> List[Notification]:
        notes: List[Notification] = []
        self.reset_port_if_missing()
        if self._reader is None:
            return notes

        self.store.retention_s = max(STORED_DURATION_S, 2 * self.data.plot_config.window)
        for rec in self._reader.drain():
            if isinstance(rec, ReadError):
                LOG.error("%s; disconnecting", rec)
                notes.append(Notification.error(str(rec)))
                self._teardown()
                return notes
            if not self.paused:
                self._handle_line(rec, notes)

        self.prep_input_slots()
        return notes

    def _handle_line(self, line: Line, notes: List[Notification]) -> None:
        try:
            values = self.parser.parse(line.content)
        except ColumnMismatch as e:
            LOG.warning("%s: %r", e, line.content)
            notes.append(Notification.warning(str(e)))
        else:
            self.store.append(line.t, values)
        self.console_lines.append(f"[{line.t:.2f}] > {line.content}")

    def prep_input_slots(self) -> None:
        slots = self.data.inp_slots
        for i in range(len(slots), self.parser.columns):
            slots.append(InputSlot.default(i))
        values = self.store.latest_values()
        for i, slot in enumerate(slots):
            if i < len(values):
                slot.value = values[i]

    # ---------- plots ----------
    def add_plot(self) -> PlotData:
        off = int(self.has_console())
        index = len(self.data.plots) - off
        plot = self._ids.new_plot(f"Plot {len(self.data.plots) + 1 - off}")
        self.data.plots.insert(index, plot)
        return plot

    def remove_plot(self, index: int) -> None:
        plot = self.data.plots.pop(index)
        self._accumulators.pop(plot.id, None)

    def reset_plot(self, index: int) -> None:
        plot = self.data.plots[index]
        if plot.console:
            self.console_lines.clear()
        elif plot.id in self._accumulators:
            self._accumulators[plot.id].reset()

    def add_console(self) -> None:
        if not self.has_console():
            self.data.plots.append(self._ids.new_console())

    def has_console(self) -> bool:
        return any(p.console for p in self.data.plots)

    def set_hidden(self, plot_index: int, slot_index: int, hidden: bool) -> None:
        plot = self.data.plots[plot_index]
        if hidden and slot_index not in plot.hidden:
            plot.hidden.append(slot_index)
        elif not hidden and slot_index in plot.hidden:
            plot.hidden.remove(slot_index)

    def plot_view(self, index: int) -> PlotView:
        plot = self.data.plots[index]
        acc = self._accumulators.setdefault(plot.id, AutoMaxAccumulator())
        return compute_view(self.store, self.data.plot_config, plot.hidden, acc)

    # ---------- config ----------
    def load_config(self, data: MonitorData) -> None:
        if self._state is not SessionState.IDLE:
            self.disconnect()
        self.data = data
        self._accumulators.clear()
        self._ids.reseed(self.data.plots)
        if not self.data.plots:
            self.data.plots.append(self._ids.new_plot("Plot 1"))

    def load_config_file(self, path: Union[str, Path]) -> None:
        self.load_config(load_monitor_data(path))
        LOG.info("Loaded config from %s", path)

    def save_config_file(self, path: Union[str, Path]) -> None:
        save_monitor_data(path, self.data)
        LOG.info("Saved config to %s", path)
