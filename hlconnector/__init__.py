"""Order book, order and position tracking, risk checks, market making, an event bus and display models."""

__version__ = "0.1.0"