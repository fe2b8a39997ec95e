"""In-memory stand-ins for a serial port and a clock."""

import threading
import time


class FakePort:
    """
    Serves queued bytes one read() at a time. When empty it behaves like a
    port whose read timed out (returns b""), or raises `error` if one is set.
    """

    def __init__(self, data=b"", error=None, **kwargs):
        self.kwargs = kwargs
        self.error = error
        self.is_open = True
        self._dtr = None
        self._data = bytearray(data)
        self._lock = threading.Lock()

    @property
    def dtr(self):
        return self._dtr

    @dtr.setter
    def dtr(self, value):
        self._dtr = value

    def feed(self, data: bytes):
        with self._lock:
            self._data += data

    def read(self, size=1):
        with self._lock:
            if self._data:
                out = bytes(self._data[:size])
                del self._data[:size]
                return out
        if self.error is not None:
            raise self.error
        time.sleep(0.001)
        return b""

    def close(self):
        self.is_open = False


class StepClock:
    """Returns the given times in order, then repeats the last one."""

    def __init__(self, *times):
        self._times = list(times)
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            if len(self._times) > 1:
                return self._times.pop(0)
            return self._times[0]


def port_factory_for(port):
    def factory(**kwargs):
        port.kwargs = kwargs
        return port
    return factory


def wait_for(predicate, timeout=2.0):
    """Poll `predicate` until it returns truthy or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(0.005)
    return predicate()


def collect(reader, count, timeout=2.0):
    """Drain `reader` until `count` records arrived or the timeout passes."""
    records = []

    def enough():
        records.extend(reader.drain())
        return len(records) >= count

    wait_for(enough, timeout)
    return records
