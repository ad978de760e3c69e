"""Distance-vector, link-state and path-vector routing engines with a tick-driven simulator."""

__version__ = "0.1.0"
