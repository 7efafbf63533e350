"""Last-known-position registry: one current position per tracked entity."""

__version__ = "0.1.0"
