[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vmetrics"
version = "0.1.0"
description = "Thread-safe counters, gauges and histograms rendered in the Prometheus text exposition format"
requires-python = ">=3.10"
dependencies = []
keywords = ["metrics", "prometheus", "histogram", "counter", "gauge", "monitoring", "exposition"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vmetrics"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
