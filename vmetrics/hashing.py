"""Consistent 64-bit hashes of metric families, labels and values.

The hash is built as ``family *(0x00 label) *(0xff value)`` so that a partial
hash over the family and labels can be finished with different values.
"""

from __future__ import annotations

import hashlib
import os
from typing import Iterable, Sequence

LABEL_DELIMITER = b"\x00"
VALUE_DELIMITER = b"\xff"

# One key per process keeps hashes consistent within it.
_SEED = os.urandom(16)


def _new_state():
    return hashlib.blake2b(digest_size=8, key=_SEED)


def _digest(state) -> int:
    return int.from_bytes(state.digest(), "little")


def _write_labels(state, labels: Iterable[str]) -> None:
    for label in labels:
        state.update(LABEL_DELIMITER)
        state.update(label.encode("utf-8"))


def _write_values(state, values: Iterable[str]) -> None:
    for value in values:
        state.update(VALUE_DELIMITER)
        state.update(value.encode("utf-8"))


class PartialHash:
    """Hash state over a family and its labels, awaiting values."""

    __slots__ = ("_state",)

    def __init__(self, state) -> None:
        self._state = state


def hash_string(s: str) -> int:
    """Hash a single string."""
    state = _new_state()
    state.update(s.encode("utf-8"))
    return _digest(state)


def hash_tags(family: str, tags: Sequence) -> int:
    """Hash a family and a sequence of Tag objects."""
    if not tags:
        return hash_string(family)
    state = _new_state()
    state.update(family.encode("utf-8"))
    _write_labels(state, (str(tag.label) for tag in tags))
    _write_values(state, (str(tag.value) for tag in tags))
    return _digest(state)


def hash_strings(family: str, bits: Sequence[str]) -> int:
    """Hash a family and interleaved ``label, value`` strings, matching hash_tags."""
    if not bits:
        return hash_string(family)
    state = _new_state()
    state.update(family.encode("utf-8"))
    _write_labels(state, bits[::2])
    _write_values(state, bits[1::2])
    return _digest(state)


def hash_start(family: str, *labels: str) -> PartialHash:
    """Begin a hash over the family and label names."""
    state = _new_state()
    state.update(family.encode("utf-8"))
    _write_labels(state, labels)
    return PartialHash(state)


def hash_finish(state: PartialHash, *values: str) -> int:
    """Finish a partial hash with values, leaving the partial state untouched."""
    finished = state._state.copy()
    _write_values(finished, values)
    return _digest(finished)