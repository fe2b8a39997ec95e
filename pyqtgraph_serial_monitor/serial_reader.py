"""
Background serial line reader.

- open() configures and opens the port (nothing is read yet).
- begin_read() hands the port to a worker thread which frames bytes into
  newline-terminated lines, applies the start trigger and timestamps them.
- The polling side pulls results with poll_next()/drain(); a fatal read
  error is queued as a ReadError and ends the worker.
- close() sets the stop flag and joins the worker, so nothing is queued
  after it returns.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Union

import serial
import serial.tools.list_ports

from .config import SUPPORTED_DATA_BITS
from .errors import (
    AlreadyOpen, AlreadyReading, OpenError, PortNotOpen, ReadError,
    UnsupportedDataBits, UnsupportedStopBits, WriteDtrError,
)
from .models import Delay, FlowControl, Immediate, Line, Message, Parity, SerialConfig, StartMode

LOG = logging.getLogger(__name__)

Record = Union[Line, ReadError]

_BYTESIZES = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}
_STOPBITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}
_PARITIES = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.ODD: serial.PARITY_ODD,
    Parity.EVEN: serial.PARITY_EVEN,
}


def available_ports() -> List[str]:
    """Device names of the serial ports currently present."""
    try:
        return [p.device for p in serial.tools.list_ports.comports()]
    except OSError as e:
        LOG.warning("Port enumeration failed: %s", e)
        return []


class StartTrigger:
    """
    Decides whether a line is reported, and with which timestamp.

    Immediate: everything is reported.
    Delay:     lines are reported once `elapsed >= delay`; timestamps are shifted
               so the trigger time is t=0.
    Message:   lines are reported after one ending with the message was seen;
               that line itself is dropped.
    Once started it stays started.
    """

    def __init__(self, mode: StartMode):
        self.mode = mode
        self.offset = mode.seconds if isinstance(mode, Delay) else 0.0
        self.started = isinstance(mode, Immediate)

    def advance(self, elapsed: float) -> bool:
        """Start a Delay trigger once its time has come; returns `started`."""
        if not self.started and isinstance(self.mode, Delay) and elapsed >= self.mode.seconds:
            self.started = True
            LOG.info("Start delay elapsed at %.3fs", elapsed)
        return self.started

    def accept(self, elapsed: float, content: str) -> Optional[float]:
        if not self.started and isinstance(self.mode, Message):
            if content.endswith(self.mode.text):
                self.started = True
                LOG.info("Start message %r received at %.3fs", self.mode.text, elapsed)
            return None
        if not self.advance(elapsed):
            return None
        return elapsed - self.offset


class LineReader:
    """Owns one serial port and, while reading, one worker thread."""

    def __init__(
        self,
        config: SerialConfig,
        clock: Callable[[], float] = time.perf_counter,
        port_factory: Callable[..., serial.Serial] = serial.Serial,
    ):
        self.config = config
        self._clock = clock
        self._port_factory = port_factory
        self._port: Optional[serial.Serial] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._records: "queue.Queue[Record]" = queue.Queue()

    # ---------- lifecycle ----------
    def open(self, dtr: bool) -> None:
        if self.is_open():
            raise AlreadyOpen()

        cfg = self.config
        if cfg.data_bits not in SUPPORTED_DATA_BITS:
            raise UnsupportedDataBits(cfg.data_bits)
        if cfg.stop_bits not in _STOPBITS:
            raise UnsupportedStopBits(cfg.stop_bits)

        try:
            port = self._port_factory(
                port=cfg.port,
                baudrate=cfg.baud_rate,
                bytesize=_BYTESIZES[cfg.data_bits],
                parity=_PARITIES[cfg.parity],
                stopbits=_STOPBITS[cfg.stop_bits],
                xonxoff=cfg.flow_ctrl is FlowControl.SOFTWARE,
                rtscts=cfg.flow_ctrl is FlowControl.HARDWARE,
                timeout=cfg.timeout,
            )
        except (serial.SerialException, ValueError, OSError) as e:
            raise OpenError(str(e)) from e

        try:
            port.dtr = dtr
        except (serial.SerialException, OSError) as e:
            _close_quietly(port)
            raise WriteDtrError() from e

        LOG.info("Opened %s @ %d baud (%d%s%d, flow=%s, dtr=%s)",
                 cfg.port, cfg.baud_rate, cfg.data_bits, cfg.parity.value[0],
                 cfg.stop_bits, cfg.flow_ctrl.value, dtr)
        self._port = port

    def begin_read(self, start_mode: StartMode) -> None:
        if self._thread is not None:
            raise AlreadyReading()
        if self._port is None:
            raise PortNotOpen()

        # the worker owns the port from here on
        port, self._port = self._port, None
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(port, StartTrigger(start_mode), self._stop),
            name=f"LineReader[{self.config.port}]",
            daemon=True,
        )
        LOG.info("Reading %s, start mode %s", self.config.port, start_mode)
        self._thread.start()

    def close(self) -> None:
        """Stop the worker (if any), wait for it, and release the port."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._port is not None:
            _close_quietly(self._port)
            self._port = None

    def __enter__(self) -> "LineReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- polling side ----------
    def is_open(self) -> bool:
        return self._port is not None or self._thread is not None

    def is_reading(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_next(self) -> Optional[Record]:
        try:
            return self._records.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[Record]:
        out: List[Record] = []
        while True:
            rec = self.poll_next()
            if rec is None:
                return out
            out.append(rec)

    # ---------- thread ----------
    def _run(self, port: serial.Serial, trigger: StartTrigger, stop: threading.Event) -> None:
        buf = bytearray()
        bad: Optional[str] = None
        start = self._clock()
        try:
            while not stop.is_set():
                try:
                    b = port.read(1)
                except (serial.SerialException, OSError) as e:
                    self._fail(str(e))
                    return

                if not b:
                    continue  # read timeout; keep the partial line

                if b != b"\n":
                    if b[0] > 0x7F:
                        reason = f"byte 0x{b[0]:02x} is not a valid ASCII character"
                        if trigger.started:
                            self._fail(reason)
                            return
                        # before the trigger the whole record is dropped at its newline
                        bad = bad or reason
                        continue
                    buf += b
                    continue

                elapsed = self._clock() - start
                if bad is not None:
                    reason, bad = bad, None
                    buf.clear()
                    if trigger.advance(elapsed):
                        self._fail(reason)
                        return
                    LOG.debug("Dropped unreadable line before start: %s", reason)
                    continue

                content = buf.decode("ascii").rstrip()
                buf.clear()
                if not content:
                    continue

                t = trigger.accept(elapsed, content)
                if t is not None:
                    self._records.put(Line(t=t, content=content))
        finally:
            _close_quietly(port)
            LOG.info("Serial port %s closed", self.config.port)

    def _fail(self, reason: str) -> None:
        LOG.error("Read error on %s: %s", self.config.port, reason)
        self._records.put(ReadError(reason))


def _close_quietly(port) -> None:
    try:
        if port.is_open:
            port.close()
    except (serial.SerialException, OSError) as e:
        LOG.warning("Error closing port: %s", e)
