"""gridmind — capability dispatch for the power-monitoring dashboard."""

__version__ = "0.1.0"
