"""A collection of metrics partitioned by label values."""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable

from .expfmt import ExpfmtWriter, MetricName, Tag, make_labels, make_values, must_ident
from .hashing import hash_finish, hash_start


class MetricVec:
    """Metrics sharing one family and label names but differing in label values.

    ``factory`` builds a new metric the first time a combination of values is
    seen; the metric must provide ``marshal_to(writer, name)``.
    """

    def __init__(self, family: str, labels: Iterable[str], factory: Callable[[], Any]) -> None:
        labels = tuple(labels)
        self.family = must_ident(family)
        self.labels = make_labels(labels)
        self._partial_hash = hash_start(family, *labels)
        self._factory = factory
        self._series: dict[int, tuple[MetricName, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._series)

    def with_label_values(self, *values: str) -> Any:
        """Return the metric for these values, creating it on first use."""
        if len(values) != len(self.labels):
            raise ValueError(
                f"metrics: expected {len(self.labels)} label values, got {len(values)}"
            )
        key = hash_finish(self._partial_hash, *values)
        entry = self._series.get(key)
        if entry is None:
            tags = tuple(Tag(label, value) for label, value in zip(self.labels, make_values(values)))
            name = MetricName(self.family, tags)
            with self._lock:
                entry = self._series.get(key)
                if entry is None:
                    entry = (name, self._factory())
                    self._series[key] = entry
        return entry[1]

    def marshal_to(self, writer: ExpfmtWriter) -> None:
        """Write every metric in the collection."""
        with self._lock:
            series = list(self._series.values())
        for name, metric in series:
            metric.marshal_to(writer, name)

    def reset(self) -> None:
        """Drop every metric in the collection."""
        with self._lock:
            self._series.clear()