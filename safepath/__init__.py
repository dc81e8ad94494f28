"""SafePath: route and location risk intelligence engine."""

__version__ = "0.2.0"
