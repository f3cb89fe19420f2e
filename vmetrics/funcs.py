"""Gauges whose value is obtained by calling a function."""

from __future__ import annotations

from typing import Callable, Optional

from .expfmt import ExpfmtWriter, MetricName


class Uint64Func:
    """An unsigned integer value returned from a function."""

    def __init__(self, fn: Optional[Callable[[], int]]) -> None:
        self.fn = fn

    def get(self) -> int:
        """Call the function and return its value."""
        return int(self.fn()) & ((1 << 64) - 1)

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_uint64(self.get())


class Int64Func:
    """A signed integer value returned from a function."""

    def __init__(self, fn: Optional[Callable[[], int]]) -> None:
        self.fn = fn

    def get(self) -> int:
        """Call the function and return its value."""
        return int(self.fn())

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_int64(self.get())


class Float64Func:
    """A floating point value returned from a function."""

    def __init__(self, fn: Optional[Callable[[], float]]) -> None:
        self.fn = fn

    def get(self) -> float:
        """Call the function and return its value."""
        return float(self.fn())

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        writer.write_metric_name(name)
        writer.write_float64(self.get())