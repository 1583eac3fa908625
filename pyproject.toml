[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgcollectors"
version = "0.1.0"
description = "PostgreSQL statistics collectors producing Prometheus-style gauges, counters and histograms"
requires-python = ">=3.10"
dependencies = []
keywords = ["postgresql", "prometheus", "metrics", "monitoring", "statistics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pgcollectors"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
