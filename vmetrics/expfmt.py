"""Identifiers, tags and a writer for the Prometheus text exposition format."""

from __future__ import annotations

import io
import math
import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from functools import lru_cache
from typing import Iterable, Sequence, Union

_IDENT_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*\Z")
_INVALID_VALUE_CHARS = frozenset('"\\\n')
_INT64_MIN = -(2**63)
_INT64_LIMIT = 2**63

Seconds = Union[timedelta, int, float]


@dataclass(frozen=True)
class Ident:
    """A validated metric family name or tag label."""

    name: str

    def __str__(self) -> str:
        return self.name

    def with_unsafe_value(self, val: str) -> Tag:
        """Join this label with a value that is already known to be valid."""
        return Tag(self, Value(val))


Label = Ident


@dataclass(frozen=True)
class Value:
    """A tag value that is safe to write into the exposition format."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Tag:
    """A label/value pair attached to a metric."""

    label: Ident
    value: Value

    def __str__(self) -> str:
        return f'{self.label}="{self.value}"'


@dataclass(frozen=True)
class MetricName:
    """A metric family together with its optional tags."""

    family: Ident
    tags: tuple[Tag, ...] = ()

    def has_tags(self) -> bool:
        return bool(self.tags)


@lru_cache(maxsize=4096)
def must_ident(name: str) -> Ident:
    """Validate ``name`` as a Prometheus identifier, raising ValueError if invalid."""
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise ValueError(f"metrics: invalid identifier {name!r}")
    return Ident(name)


def _check_value(val: str) -> Value:
    if not isinstance(val, str) or _INVALID_VALUE_CHARS.intersection(val):
        raise ValueError(f"metrics: invalid tag value {val!r}")
    return Value(val)


def unsafe_value(val: str) -> Value:
    """Wrap ``val`` as a Value without any validation."""
    return Value(val)


def must_tag(label: str, value: str) -> Tag:
    """Build a validated Tag, raising ValueError if either part is invalid."""
    return Tag(must_ident(label), _check_value(value))


def must_tags(*args: str) -> tuple[Tag, ...]:
    """Build tags from interleaved ``label, value`` pairs."""
    if len(args) % 2:
        raise ValueError("metrics: tags must be given as label/value pairs")
    return tuple(must_tag(label, value) for label, value in zip(args[::2], args[1::2]))


def make_labels(labels: Iterable[str] | None) -> tuple[Ident, ...]:
    """Validate a sequence of label names."""
    return tuple(must_ident(label) for label in labels or ())


def make_values(values: Iterable[str] | None) -> tuple[Value, ...]:
    """Validate a sequence of tag values."""
    return tuple(_check_value(value) for value in values or ())


def _format_shortest(value: float) -> str:
    sign = "-" if value < 0 else ""
    dec = Decimal(repr(abs(value))).normalize()
    _, digit_tuple, exponent = dec.as_tuple()
    digits = "".join(map(str, digit_tuple))
    exp10 = len(digits) + exponent - 1
    if exp10 < -4 or exp10 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exp10):02d}"
    return sign + format(dec, "f")


def format_float(value: float) -> str:
    """Format a float the way the exposition format expects it."""
    value = float(value)
    if math.isfinite(value) and value.is_integer() and _INT64_MIN <= value < _INT64_LIMIT:
        return str(int(value))
    if math.isinf(value):
        return "-Inf" if value < 0 else "+Inf"
    if math.isnan(value):
        return "NaN"
    return _format_shortest(value)


def _to_seconds(value: Seconds) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def size_of_tags(tags: Sequence[Tag], constant_tags: str) -> int:
    """Number of characters the tags occupy between the braces."""
    size = len(constant_tags) + 1 if constant_tags else 0
    size += sum(len(str(tag.label)) + len(str(tag.value)) + len('="",') for tag in tags)
    return size - 1


def size_of_metric_name(name: MetricName, constant_tags: str) -> int:
    """Number of characters the written metric name occupies."""
    family = len(str(name.family))
    if not name.has_tags() and not constant_tags:
        return family
    return family + len("{}") + size_of_tags(name.tags, constant_tags)


def _tags_text(constant_tags: str, tags: Iterable[Tag]) -> str:
    parts = [constant_tags] if constant_tags else []
    parts.extend(str(tag) for tag in tags)
    return ",".join(parts)


def materialize_tags(tags: Iterable[Tag]) -> str:
    """Render tags as the comma separated text found between braces."""
    return _tags_text("", tags)


class ExpfmtWriter:
    """Accumulates metrics in the Prometheus text exposition format."""

    def __init__(self, constant_tags: str = "", buffer: io.StringIO | None = None) -> None:
        self.constant_tags = constant_tags
        self.buffer = buffer if buffer is not None else io.StringIO()

    def getvalue(self) -> str:
        return self.buffer.getvalue()

    def reset(self) -> None:
        self.buffer.seek(0)
        self.buffer.truncate()

    def write_metric_name(self, name: MetricName) -> None:
        """Write the family name, optional tags and constant tags."""
        if not name.has_tags() and not self.constant_tags:
            self.buffer.write(str(name.family))
            return
        self.buffer.write(f"{name.family}{{{_tags_text(self.constant_tags, name.tags)}}}")

    def write_metric_name_with_variable_tags(
        self, name: MetricName, labels: Sequence[Ident], values: Sequence[Value]
    ) -> None:
        """Write a metric name with extra label/value pairs appended."""
        if not name.has_tags() and not self.constant_tags and not labels:
            self.buffer.write(str(name.family))
            return
        if len(labels) != len(values):
            raise ValueError("metrics: must have equal number of labels and values")
        text = _tags_text(self.constant_tags, name.tags)
        variable = ",".join(str(Tag(label, value)) for label, value in zip(labels, values))
        if text and variable:
            text += ","
        self.buffer.write(f"{name.family}{{{text}{variable}}}")

    def write_uint64(self, value: int) -> None:
        self.buffer.write(f" {int(value)}\n")

    def write_int64(self, value: int) -> None:
        self.buffer.write(f" {int(value)}\n")

    def write_float64(self, value: float) -> None:
        self.buffer.write(f" {format_float(value)}\n")

    def write_duration(self, value: Seconds) -> None:
        """Write a duration (timedelta or seconds) as seconds."""
        self.write_float64(_to_seconds(value))

    def write_bool(self, value: bool) -> None:
        self.buffer.write(" 1\n" if value else " 0\n")

    def write_metric_uint64(self, name: MetricName, value: int) -> None:
        self.write_metric_name(name)
        self.write_uint64(value)

    def write_metric_int64(self, name: MetricName, value: int) -> None:
        self.write_metric_name(name)
        self.write_int64(value)

    def write_metric_float64(self, name: MetricName, value: float) -> None:
        self.write_metric_name(name)
        self.write_float64(value)

    def write_metric_duration(self, name: MetricName, value: Seconds) -> None:
        self.write_metric_name(name)
        self.write_duration(value)

    def write_lazy_metric_uint64(self, family: str, value: int, *args: str) -> None:
        """Validate the family and interleaved tags, then write the metric."""
        self.write_metric_uint64(MetricName(must_ident(family), must_tags(*args)), value)

    def write_lazy_metric_float64(self, family: str, value: float, *args: str) -> None:
        """Validate the family and interleaved tags, then write the metric."""
        self.write_metric_float64(MetricName(must_ident(family), must_tags(*args)), value)

    def write_lazy_metric_duration(self, family: str, value: Seconds, *args: str) -> None:
        """Validate the family and interleaved tags, then write the duration."""
        self.write_lazy_metric_float64(family, _to_seconds(value), *args)

    def write_line(self, line: str | bytes) -> None:
        """Write a pre-formatted line, adding constant tags where needed."""
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        if not line:
            return
        if not self.constant_tags or line.startswith("#"):
            self.buffer.write(line)
            return
        match = re.search(r"[{ ]", line)
        if match is None:
            self.buffer.write(line)
            return
        idx = match.start()
        if line[idx] == "{":
            self.buffer.write(f"{line[:idx + 1]}{self.constant_tags},{line[idx + 1:]}")
        else:
            self.buffer.write(f"{line[:idx]}{{{self.constant_tags}}}{line[idx:]}")


def new_testing_expfmt_writer(*args: str) -> ExpfmtWriter:
    """Create a writer with constant tags given as interleaved label/value pairs."""
    return ExpfmtWriter(constant_tags=materialize_tags(must_tags(*args)))