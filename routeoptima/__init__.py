"""RouteOptima dispatch and live-tracking service."""

__version__ = "1.0.0"
