[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kvserver"
version = "0.1.0"
description = "In-memory key-value store with sorted sets and a length-prefixed binary wire protocol"
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = ["key-value", "database", "sorted-set", "in-memory", "protocol"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kvserver"]

[tool.pytest.ini_options]
addopts = "-ra"
