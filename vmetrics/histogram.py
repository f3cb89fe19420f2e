"""Histograms with automatically created logarithmic ``vmrange`` buckets."""

from __future__ import annotations

import math
import threading
import time
from datetime import datetime
from typing import Union

from .expfmt import ExpfmtWriter, Ident, MetricName
from .vec import MetricVec

E10_MIN = -9
E10_MAX = 18
BUCKETS_PER_DECIMAL = 18
DECIMAL_BUCKETS_COUNT = E10_MAX - E10_MIN

# Buckets inside the covered decimal range.
HIST_BUCKETS = DECIMAL_BUCKETS_COUNT * BUCKETS_PER_DECIMAL

# Histogram buckets plus the lower and upper catch-all buckets.
TOTAL_BUCKETS = HIST_BUCKETS + 2

# Every bucket plus the sum and count series.
MAX_NUM_SERIES = TOTAL_BUCKETS + 2

BUCKET_MULTIPLIER = math.exp((1.0 / BUCKETS_PER_DECIMAL) * math.log(10))


def format_bucket(v: float) -> str:
    """Format a bucket boundary with four significant digits."""
    return f"{v:.3e}"


def _compute_bucket_ranges() -> tuple[str, ...]:
    v = 1e-9
    start = format_bucket(v)
    ranges = [f"0...{start}"]
    for _ in range(HIST_BUCKETS):
        v *= BUCKET_MULTIPLIER
        end = format_bucket(v)
        ranges.append(f"{start}...{end}")
        start = end
    ranges.append(f"{format_bucket(1e18)}...+Inf")
    return tuple(ranges)


BUCKET_RANGES = _compute_bucket_ranges()

StartTime = Union[float, datetime]


class Histogram:
    """A histogram for non-negative values with automatically created buckets.

    Each non-empty bucket is written as
    ``<family>_bucket{vmrange="<start>...<end>",<tags>} <count>``,
    followed by ``<family>_sum`` and ``<family>_count``. An empty histogram
    writes nothing.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[int, int] = {}
        self._lower = 0
        self._upper = 0
        self._sum = 0.0
        self._compensation = 0.0

    def _add_sum(self, val: float) -> None:
        total = self._sum + val
        if abs(self._sum) >= abs(val):
            self._compensation += (self._sum - total) + val
        else:
            self._compensation += (val - total) + self._sum
        self._sum = total

    def _total_sum(self) -> float:
        if not math.isfinite(self._sum):
            return self._sum
        return self._sum + self._compensation

    def reset(self) -> None:
        """Clear every observation."""
        with self._lock:
            self._buckets.clear()
            self._lower = 0
            self._upper = 0
            self._sum = 0.0
            self._compensation = 0.0

    def update(self, val: float) -> None:
        """Record ``val``; negative values and NaNs are ignored."""
        val = float(val)
        if math.isnan(val) or val < 0:
            return

        if val == 0:
            bucket_idx = -math.inf
        else:
            bucket_idx = (math.log10(val) - E10_MIN) * BUCKETS_PER_DECIMAL

        with self._lock:
            if bucket_idx < 0:
                self._lower += 1
                return
            if bucket_idx >= HIST_BUCKETS:
                self._upper += 1
            else:
                idx = int(bucket_idx)
                if bucket_idx == idx and idx > 0:
                    # Exact powers of ten belong to the lower bucket, as with `le`.
                    idx -= 1
                self._buckets[idx] = self._buckets.get(idx, 0) + 1
            self._add_sum(val)

    def observe(self, val: float) -> None:
        """Record ``val``; identical to :meth:`update`."""
        self.update(val)

    def merge(self, src: Histogram) -> None:
        """Add every observation of ``src`` to this histogram."""
        with src._lock:
            lower = src._lower
            upper = src._upper
            src_sum = src._total_sum()
            buckets = dict(src._buckets)
        with self._lock:
            self._lower += lower
            self._upper += upper
            self._add_sum(src_sum)
            for idx, count in buckets.items():
                self._buckets[idx] = self._buckets.get(idx, 0) + count

    def update_duration(self, start_time: StartTime) -> None:
        """Record the seconds elapsed since ``start_time``.

        ``start_time`` is either a ``time.monotonic()`` reading or a datetime.
        """
        if isinstance(start_time, datetime):
            elapsed = (datetime.now(start_time.tzinfo) - start_time).total_seconds()
        else:
            elapsed = time.monotonic() - start_time
        self.update(elapsed)

    def _punched_buckets(self) -> tuple[list[tuple[int, int]], float]:
        with self._lock:
            punches: list[tuple[int, int]] = []
            if self._lower:
                punches.append((0, self._lower))
            punches.extend(
                (idx + 1, count) for idx, count in sorted(self._buckets.items()) if count
            )
            if self._upper:
                punches.append((TOTAL_BUCKETS - 1, self._upper))
            return punches, self._total_sum()

    def marshal_to(self, writer: ExpfmtWriter, name: MetricName) -> None:
        """Write the non-empty buckets, the sum and the count."""
        punches, total_sum = self._punched_buckets()
        total = sum(count for _, count in punches)
        if total == 0:
            return

        family = str(name.family)
        extra = f",{writer.constant_tags}" if writer.constant_tags else ""
        extra += "".join(f",{tag}" for tag in name.tags)
        writer.buffer.write(
            "".join(
                f'{family}_bucket{{vmrange="{BUCKET_RANGES[idx]}"{extra}}} {count}\n'
                for idx, count in punches
            )
        )
        writer.write_metric_float64(MetricName(Ident(f"{family}_sum"), name.tags), total_sum)
        writer.write_metric_uint64(MetricName(Ident(f"{family}_count"), name.tags), total)


class HistogramVec(MetricVec):
    """Histograms sharing a family and label names."""

    def __init__(self, family: str, *labels: str) -> None:
        super().__init__(family, labels, Histogram)