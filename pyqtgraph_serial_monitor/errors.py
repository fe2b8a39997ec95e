"""Exception types shared by the reader, parser and session controller."""

from __future__ import annotations


class SerialMonitorError(Exception):
    """Base class for every error raised by this package."""


# ---------- serial port / reader ----------
class SerialError(SerialMonitorError):
    pass


class UnsupportedDataBits(SerialError):
    def __init__(self, bits: int):
        super().__init__(f"Unsupported data bits: {bits}")
        self.bits = bits


class UnsupportedStopBits(SerialError):
    def __init__(self, bits: int):
        super().__init__(f"Unsupported stop bits: {bits}")
        self.bits = bits


class OpenError(SerialError):
    def __init__(self, reason: str):
        super().__init__(f"Could not open port: {reason}")
        self.reason = reason


class WriteDtrError(SerialError):
    def __init__(self):
        super().__init__("Could not set DTR")


class PortNotOpen(SerialError):
    def __init__(self):
        super().__init__("Port is not open")


class AlreadyOpen(SerialError):
    def __init__(self):
        super().__init__("Port is already open")


class AlreadyReading(SerialError):
    def __init__(self):
        super().__init__("Reader thread is already running")


class ReadError(SerialError):
    """Fatal error raised inside the reader thread; queued rather than raised."""

    def __init__(self, reason: str):
        super().__init__(f"Serial read error: {reason}")
        self.reason = reason


# ---------- parsing ----------
class ColumnMismatch(SerialMonitorError):
    """A line produced a different number of values than the established schema."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Column mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


# ---------- session ----------
class SessionError(SerialMonitorError):
    pass


class NoDeviceSelected(SessionError):
    def __init__(self):
        super().__init__("No port selected")


class AlreadyConnected(SessionError):
    def __init__(self):
        super().__init__("Already connected")


class NotConnected(SessionError):
    def __init__(self):
        super().__init__("Not connected")
