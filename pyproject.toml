[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hlconnector"
version = "0.1.0"
description = "Order book, order and position tracking, risk checks, market-making strategy and event bus for a perpetuals trading bot"
requires-python = ">=3.10"
dependencies = []
keywords = ["trading", "market-making", "order-book", "risk", "event-bus", "perpetuals"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hlconnector"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
