"""A tiny, thread-safe memory tracer and leak checker, with demonstration commands."""

__version__ = "1.0.0"