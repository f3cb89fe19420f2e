"""Thread-safe counters and gauges, alone or partitioned by label values."""

from __future__ import annotations

import threading

from .expfmt import ExpfmtWriter, MetricName
from .vec import MetricVec

_UINT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


def _wrap_uint64(value: int) -> int:
    return int(value) & _UINT64_MASK


def _wrap_int64(value: int) -> int:
    value = int(value) & _UINT64_MASK
    return value - (1 << 64) if value & _INT64_SIGN else value


class Uint64:
    """An unsigned 64-bit counter that wraps around like its machine type.

    It may be used as a gauge when ``dec`` and ``set`` are called.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self) -> None:
        """Increment by 1."""
        self.add(1)

    def dec(self) -> None:
        """Decrement by 1, wrapping below zero."""
        self.add(-1)

    def add(self, delta: int) -> None:
        """Add ``delta``."""
        with self._lock:
            self._value = _wrap_uint64(self._value + delta)

    def get(self) -> int:
        """Return the current value."""
        return self._value

    def set(self, val: int) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = _wrap_uint64(val)

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_uint64(self.get())


class Int64:
    """A signed 64-bit counter that wraps around like its machine type.

    It may be used as a gauge when ``dec`` and ``set`` are called.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self) -> None:
        """Increment by 1."""
        self.add(1)

    def dec(self) -> None:
        """Decrement by 1."""
        self.add(-1)

    def add(self, delta: int) -> None:
        """Add ``delta``."""
        with self._lock:
            self._value = _wrap_int64(self._value + delta)

    def get(self) -> int:
        """Return the current value."""
        return self._value

    def set(self, val: int) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = _wrap_int64(val)

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_int64(self.get())


class Float64:
    """A floating point counter.

    It may be used as a gauge when ``dec`` and ``set`` are called.
    """

    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    def inc(self) -> None:
        """Increment by 1."""
        self.add(1.0)

    def dec(self) -> None:
        """Decrement by 1."""
        self.add(-1.0)

    def add(self, delta: float) -> None:
        """Add ``delta``."""
        with self._lock:
            self._value += float(delta)

    def get(self) -> float:
        """Return the current value."""
        return self._value

    def set(self, val: float) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = float(val)

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_float64(self.get())


class Uint64Vec(MetricVec):
    """Uint64 counters sharing a family and label names."""

    def __init__(self, family: str, *labels: str) -> None:
        super().__init__(family, labels, Uint64)


class Int64Vec(MetricVec):
    """Int64 counters sharing a family and label names."""

    def __init__(self, family: str, *labels: str) -> None:
        super().__init__(family, labels, Int64)


class Float64Vec(MetricVec):
    """Float64 counters sharing a family and label names."""

    def __init__(self, family: str, *labels: str) -> None:
        super().__init__(family, labels, Float64)