"""Prometheus-style histograms with fixed ``le`` buckets."""

from __future__ import annotations

import math
import threading
import time
from bisect import bisect_left
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from .expfmt import ExpfmtWriter, Ident, MetricName
from .vec import MetricVec

DEF_BUCKETS: tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)

_INT64_MIN = -(2**63)
_INT64_LIMIT = 2**63
_UINT64_MASK = (1 << 64) - 1

StartTime = Union[float, datetime]


def _wrap_int64(value: int) -> int:
    value &= _UINT64_MASK
    return value - (1 << 64) if value >= _INT64_LIMIT else value


def _format_label(v: float) -> str:
    v = float(v)
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "-Inf" if v < 0 else "+Inf"
    text = format(Decimal(repr(v)).normalize(), "f")
    return "0" if text in ("-0", "0") and v == 0 else text


def labels_for_buckets(buckets: Iterable[float]) -> list[str]:
    """Render bucket bounds as the shortest plain decimal text."""
    return [_format_label(v) for v in buckets]


def get_buckets(buckets: Optional[Iterable[float]]) -> list[float]:
    """Return a sorted copy of ``buckets``, or the default buckets if empty."""
    bounds = [float(v) for v in buckets or ()]
    if not bounds:
        return [float(v) for v in DEF_BUCKETS]
    return sorted(bounds)


class FixedHistogram:
    """A histogram with fixed, cumulative ``le`` buckets.

    Every bucket is written, followed by the ``+Inf`` bucket, ``_sum`` and
    ``_count``.
    """

    def __init__(self, buckets: Optional[Sequence[float]] = None) -> None:
        self._init(get_buckets(buckets), None)

    @classmethod
    def _from_sorted(cls, buckets: Sequence[float], labels: Sequence[str]) -> FixedHistogram:
        hist = cls.__new__(cls)
        hist._init(buckets, labels)
        return hist

    def _init(self, buckets: Sequence[float], labels: Optional[Sequence[str]]) -> None:
        self.buckets: tuple[float, ...] = tuple(buckets)
        self.labels: tuple[str, ...] = tuple(
            labels if labels is not None else labels_for_buckets(self.buckets)
        )
        self._lock = threading.Lock()
        self._observations = [0] * len(self.buckets)
        self._upper = 0
        self._sum_int = 0
        self._sum_float = 0.0
        self._count = 0

    def reset(self) -> None:
        """Clear every observation."""
        with self._lock:
            self._observations = [0] * len(self.buckets)
            self._upper = 0
            self._sum_int = 0
            self._sum_float = 0.0
            self._count = 0

    def update(self, val: float) -> None:
        """Record ``val``; NaNs are ignored."""
        val = float(val)
        if math.isnan(val):
            return
        first = bisect_left(self.buckets, val)
        with self._lock:
            for n in range(first, len(self.buckets)):
                self._observations[n] += 1
            self._upper += 1
            if val != 0:
                if math.isfinite(val) and val.is_integer() and _INT64_MIN <= val < _INT64_LIMIT:
                    self._sum_int = _wrap_int64(self._sum_int + int(val))
                else:
                    self._sum_float += val
            self._count += 1

    def observe(self, val: float) -> None:
        """Record ``val``; identical to :meth:`update`."""
        self.update(val)

    def update_duration(self, start_time: StartTime) -> None:
        """Record the seconds elapsed since ``start_time``.

        ``start_time`` is either a ``time.monotonic()`` reading or a datetime.
        """
        if isinstance(start_time, datetime):
            elapsed = (datetime.now(start_time.tzinfo) - start_time).total_seconds()
        else:
            elapsed = time.monotonic() - start_time
        self.update(elapsed)

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        """Write every bucket, the ``+Inf`` bucket, the sum and the count."""
        with self._lock:
            observations = list(self._observations)
            upper = self._upper
            total_sum = float(self._sum_int) + self._sum_float
            count = self._count

        family = str(name.family)
        extra = f",{writer.constant_tags}" if writer.constant_tags else ""
        extra += "".join(f",{tag}" for tag in name.tags)
        lines = [
            f'{family}_bucket{{le="{label}"{extra}}} {observed}\n'
            for label, observed in zip(self.labels, observations)
        ]
        lines.append(f'{family}_bucket{{le="+Inf"{extra}}} {upper}\n')
        writer.buffer.write("".join(lines))
        writer.write_metric_float64(MetricName(Ident(f"{family}_sum"), name.tags), total_sum)
        writer.write_metric_uint64(MetricName(Ident(f"{family}_count"), name.tags), count)


class FixedHistogramVec(MetricVec):
    """Fixed histograms sharing a family, buckets and label names."""

    def __init__(self, family: str, buckets: Optional[Sequence[float]], *labels: str) -> None:
        self.buckets = tuple(get_buckets(buckets))
        self.bucket_labels = tuple(labels_for_buckets(self.buckets))
        super().__init__(family, labels, self._new_histogram)

    def _new_histogram(self) -> FixedHistogram:
        return FixedHistogram._from_sorted(self.buckets, self.bucket_labels)