# vmetrics

Thread-safe application metrics that render to the Prometheus text
exposition format. The package has no runtime dependencies.

## Modules

| Module | Contents |
| --- | --- |
| `vmetrics.expfmt` | `Ident`, `Value`, `Tag`, `MetricName`, validation helpers (`must_ident`, `must_tag`, `must_tags`, `make_labels`, `make_values`, `unsafe_value`), `format_float` and `ExpfmtWriter` |
| `vmetrics.counter` | `Uint64`, `Int64`, `Float64` and their vectors `Uint64Vec`, `Int64Vec`, `Float64Vec` |
| `vmetrics.funcs` | `Uint64Func`, `Int64Func`, `Float64Func`: gauges that call a function for their value |
| `vmetrics.histogram` | `Histogram` with automatic logarithmic `vmrange` buckets, and `HistogramVec` |
| `vmetrics.fixedhistogram` | `FixedHistogram` with cumulative `le` buckets, `FixedHistogramVec`, `DEF_BUCKETS`, `get_buckets`, `labels_for_buckets` |
| `vmetrics.vec` | `MetricVec`, the base of every vector |
| `vmetrics.hashing` | 64-bit hashes of a family, labels and values (`hash_tags`, `hash_strings`, `hash_start`, `hash_finish`, `hash_string`) |

## Installation

```
pip install vmetrics
```

## Writing exposition lines

`ExpfmtWriter` collects text in a `StringIO`; `getvalue()` returns it and
`reset()` clears it.

```python
from vmetrics.expfmt import MetricName, must_ident, must_tags, new_testing_expfmt_writer

w = new_testing_expfmt_writer()
w.write_lazy_metric_uint64("foo", 1, "label1", "value1", "label2", "value2")

name = MetricName(must_ident("other"), must_tags("a", "b"))
w.write_metric_uint64(name, 2)

print(w.getvalue())
# foo{label1="value1",label2="value2"} 1
# other{a="b"} 2
```

Invalid identifiers, tag values containing `"`, `\` or a newline, and an odd
number of label/value arguments raise `ValueError`.

### Constant tags

Constant tags are written on every metric. `new_testing_expfmt_writer` takes
them as label/value pairs; `ExpfmtWriter(constant_tags=...)` takes the
already rendered text.

```python
w = new_testing_expfmt_writer("x", "y")
w.write_line('foo{a="b"} 1')
print(w.getvalue())
# foo{x="y",a="b"} 1
```

`write_line` leaves comment lines (starting with `#`) untouched.

### How values are written

Integral floats print without a fractional part; other values use the
shortest representation, with exponent form for very large or small
magnitudes:

```python
from vmetrics.expfmt import format_float

format_float(10.0)          # "10"
format_float(1.1)           # "1.1"
format_float(1e20)          # "1e+20"
format_float(float("inf"))  # "+Inf"
format_float(float("nan"))  # "NaN"
```

Durations (`write_duration`, `write_metric_duration`,
`write_lazy_metric_duration`) accept a `timedelta` or a number of seconds.

## Counters and gauges

`Uint64` and `Int64` wrap around like 64-bit machine integers; `Float64`
holds a float. All three have `inc`, `dec`, `add`, `get` and `set`.

```python
from vmetrics.counter import Uint64
from vmetrics.expfmt import ExpfmtWriter, MetricName, must_ident, must_tags

c = Uint64()
for _ in range(10):
    c.inc()
print(c.get())  # 10

w = ExpfmtWriter()
c.marshal_to(w, MetricName(must_ident("requests_total"), must_tags("path", "/")))
print(w.getvalue())
# requests_total{path="/"} 10
```

## Vectors

A vector holds one metric per combination of label values, created on first
use. Passing the wrong number of values raises `ValueError`.

```python
from vmetrics.counter import Uint64Vec
from vmetrics.expfmt import ExpfmtWriter

v = Uint64Vec("foo", "a", "b")
v.with_label_values("1", "2").inc()
v.with_label_values("1", "2").inc()

w = ExpfmtWriter()
v.marshal_to(w)
print(w.getvalue())
# foo{a="1",b="2"} 2
```

`reset()` drops every series in the vector.

## Histograms

```python
from vmetrics.expfmt import ExpfmtWriter, MetricName, must_ident
from vmetrics.fixedhistogram import FixedHistogram

fh = FixedHistogram([0.1, 0.5, 1])
fh.observe(0.3)

w = ExpfmtWriter()
fh.marshal_to(w, MetricName(must_ident("latency")))
print(w.getvalue())
# latency_bucket{le="0.1"} 0
# latency_bucket{le="0.5"} 1
# latency_bucket{le="1"} 1
# latency_bucket{le="+Inf"} 1
# latency_sum 0.3
# latency_count 1
```

`FixedHistogram()` without buckets uses `DEF_BUCKETS`; bucket bounds are
sorted. NaNs are ignored.

`Histogram` ignores negative values and NaNs, and writes only the buckets
that have received observations, each as
`<family>_bucket{vmrange="<start>...<end>"} <count>`, followed by `_sum` and
`_count`. A histogram with no observations writes nothing. `merge` adds
another histogram's observations.

Both histogram types have `update_duration(start_time)`, where `start_time`
is a `time.monotonic()` reading or a `datetime`.

## What the package does not do

There is no registry: metrics are not registered by name, duplicate names
are not detected, and nothing gathers all metrics for export. There is no
HTTP endpoint and no built-in collector of interpreter or process
statistics. To export, call `marshal_to` on each metric or vector with an
`ExpfmtWriter` and serve `getvalue()` yourself.

## Running the tests

```
pip install -e .[test]
pytest
```