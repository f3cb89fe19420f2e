"""Thread-safe counters, gauges and histograms written in the Prometheus text exposition format."""

__version__ = "0.1.0"