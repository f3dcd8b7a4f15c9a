"""Trip dispatch and lifecycle engine for short-haul tricycle ride hailing."""

__version__ = "0.1.0"
