[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nightwatch"
version = "0.1.0"
description = "Alert evaluation, routing, muting and sample ingestion building blocks for a monitoring server"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "alerting", "prometheus", "remote-write", "opentsdb", "open-falcon", "datadog", "consistent-hashing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nightwatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
