"""Personal finance tracker: currency re-denomination service."""

__version__ = "0.1.0"
