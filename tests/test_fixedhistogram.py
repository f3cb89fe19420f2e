import math
import struct
import threading
import time

import pytest

from vmetrics.expfmt import ExpfmtWriter, MetricName, must_ident, must_tags
from vmetrics.fixedhistogram import (
    DEF_BUCKETS,
    FixedHistogram,
    FixedHistogramVec,
    get_buckets,
    labels_for_buckets,
)


def marshal(hist, family="hist", *tags, constant_tags=""):
    writer = ExpfmtWriter(constant_tags=constant_tags)
    hist.marshal_to(writer, MetricName(must_ident(family), must_tags(*tags)))
    return writer.getvalue().splitlines()


EMPTY = [
    'hist_bucket{le="100"} 0',
    'hist_bucket{le="110"} 0',
    'hist_bucket{le="120"} 0',
    'hist_bucket{le="150"} 0',
    'hist_bucket{le="200"} 0',
    'hist_bucket{le="+Inf"} 0',
    "hist_sum 0",
    "hist_count 0",
]


def test_labels_for_buckets():
    assert labels_for_buckets([0.005, 1, 2.5, 100, 1e20]) == [
        "0.005",
        "1",
        "2.5",
        "100",
        "100000000000000000000",
    ]


def test_get_buckets_defaults_and_sorting():
    assert get_buckets(None) == list(DEF_BUCKETS)
    assert get_buckets([]) == list(DEF_BUCKETS)
    assert get_buckets([3, 1, 2]) == [1, 2, 3]


def test_unsorted_buckets_are_sorted():
    h = FixedHistogram([200, 100])
    h.update(150)
    assert marshal(h) == [
        'hist_bucket{le="100"} 0',
        'hist_bucket{le="200"} 1',
        'hist_bucket{le="+Inf"} 1',
        "hist_sum 150",
        "hist_count 1",
    ]


def test_fixed_histogram_serial():
    h = FixedHistogram([100, 110, 120, 150, 200])
    assert marshal(h) == EMPTY

    for i in range(98, 218):
        h.update(float(i))

    assert marshal(h) == [
        'hist_bucket{le="100"} 3',
        'hist_bucket{le="110"} 13',
        'hist_bucket{le="120"} 23',
        'hist_bucket{le="150"} 53',
        'hist_bucket{le="200"} 103',
        'hist_bucket{le="+Inf"} 120',
        "hist_sum 18900",
        "hist_count 120",
    ]

    h.reset()
    assert marshal(h) == EMPTY

    h.update(-5)
    assert marshal(h) == [
        'hist_bucket{le="100"} 1',
        'hist_bucket{le="110"} 1',
        'hist_bucket{le="120"} 1',
        'hist_bucket{le="150"} 1',
        'hist_bucket{le="200"} 1',
        'hist_bucket{le="+Inf"} 1',
        "hist_sum -5",
        "hist_count 1",
    ]

    h.reset()

    multiplier = 10 ** (1.0 / 18)
    for e10 in range(-100, 100):
        scale = float(f"1e{e10}")
        for offset in range(18):
            m = 1 + multiplier**offset
            h.update(m * scale)
            h.update((m + 0.5 * multiplier) * scale)
            h.update((m + 2 * multiplier) * scale)
    h.update_duration(time.monotonic() - 60)

    h.update(0)
    h.update(math.inf)
    h.update(-math.inf)
    h.update(math.nan)
    h.update(-123)
    h.update(struct.unpack("<d", struct.pack("<Q", 0x3E112E0BE826D695))[0])

    assert marshal(h) == [
        'hist_bucket{le="100"} 5509',
        'hist_bucket{le="110"} 5511',
        'hist_bucket{le="120"} 5512',
        'hist_bucket{le="150"} 5513',
        'hist_bucket{le="200"} 5514',
        'hist_bucket{le="+Inf"} 10806',
        "hist_sum NaN",
        "hist_count 10806",
    ]


def test_fixed_histogram_concurrent():
    h = FixedHistogram(None)

    def work():
        f = 0.6
        while f < 1.4:
            h.update(f)
            f += 0.1

    threads = [threading.Thread(target=work) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert marshal(h, "x") == [
        'x_bucket{le="0.005"} 0',
        'x_bucket{le="0.01"} 0',
        'x_bucket{le="0.025"} 0',
        'x_bucket{le="0.05"} 0',
        'x_bucket{le="0.1"} 0',
        'x_bucket{le="0.25"} 0',
        'x_bucket{le="0.5"} 0',
        'x_bucket{le="1"} 25',
        'x_bucket{le="2.5"} 40',
        'x_bucket{le="5"} 40',
        'x_bucket{le="10"} 40',
        'x_bucket{le="+Inf"} 40',
        "x_sum 38",
        "x_count 40",
    ]


def test_observe_and_tags_with_constant_tags():
    h = FixedHistogram([1])
    h.observe(0.5)
    h.observe(2)
    assert marshal(h, "hist", "a", "b", constant_tags='x="y"') == [
        'hist_bucket{le="1",x="y",a="b"} 1',
        'hist_bucket{le="+Inf",x="y",a="b"} 2',
        'hist_sum{x="y",a="b"} 2.5',
        'hist_count{x="y",a="b"} 2',
    ]


def test_update_duration_records_elapsed_seconds():
    h = FixedHistogram([30, 90])
    h.update_duration(time.monotonic() - 60)
    lines = marshal(h)
    assert lines[:3] == [
        'hist_bucket{le="30"} 0',
        'hist_bucket{le="90"} 1',
        'hist_bucket{le="+Inf"} 1',
    ]
    assert lines[-1] == "hist_count 1"


def test_fixed_histogram_vec():
    vec = FixedHistogramVec("foo", DEF_BUCKETS, "a", "b")
    vec.with_label_values("1", "2").update(1)
    vec.with_label_values("1", "2").update(2)
    vec.with_label_values("3", "4").update(1)

    writer = ExpfmtWriter()
    vec.marshal_to(writer)
    assert sorted(writer.getvalue().splitlines()) == sorted(
        [
            'foo_bucket{le="0.005",a="1",b="2"} 0',
            'foo_bucket{le="0.01",a="1",b="2"} 0',
            'foo_bucket{le="0.025",a="1",b="2"} 0',
            'foo_bucket{le="0.05",a="1",b="2"} 0',
            'foo_bucket{le="0.1",a="1",b="2"} 0',
            'foo_bucket{le="0.25",a="1",b="2"} 0',
            'foo_bucket{le="0.5",a="1",b="2"} 0',
            'foo_bucket{le="1",a="1",b="2"} 1',
            'foo_bucket{le="2.5",a="1",b="2"} 2',
            'foo_bucket{le="5",a="1",b="2"} 2',
            'foo_bucket{le="10",a="1",b="2"} 2',
            'foo_bucket{le="+Inf",a="1",b="2"} 2',
            'foo_count{a="1",b="2"} 2',
            'foo_sum{a="1",b="2"} 3',
            'foo_bucket{le="0.005",a="3",b="4"} 0',
            'foo_bucket{le="0.01",a="3",b="4"} 0',
            'foo_bucket{le="0.025",a="3",b="4"} 0',
            'foo_bucket{le="0.05",a="3",b="4"} 0',
            'foo_bucket{le="0.1",a="3",b="4"} 0',
            'foo_bucket{le="0.25",a="3",b="4"} 0',
            'foo_bucket{le="0.5",a="3",b="4"} 0',
            'foo_bucket{le="1",a="3",b="4"} 1',
            'foo_bucket{le="2.5",a="3",b="4"} 1',
            'foo_bucket{le="5",a="3",b="4"} 1',
            'foo_bucket{le="10",a="3",b="4"} 1',
            'foo_bucket{le="+Inf",a="3",b="4"} 1',
            'foo_count{a="3",b="4"} 1',
            'foo_sum{a="3",b="4"} 1',
        ]
    )


def test_vec_returns_same_histogram_for_same_values():
    vec = FixedHistogramVec("foo", None, "a")
    assert vec.with_label_values("x") is vec.with_label_values("x")
    assert vec.with_label_values("x") is not vec.with_label_values("y")
    assert vec.buckets == tuple(DEF_BUCKETS)


def test_vec_wrong_value_count_raises():
    vec = FixedHistogramVec("foo", [1, 2], "a", "b")
    with pytest.raises(ValueError):
        vec.with_label_values("only-one")


def test_vec_invalid_family_raises():
    with pytest.raises(ValueError):
        FixedHistogramVec("1bad", None, "a")