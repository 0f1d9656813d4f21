"""Route group exports."""

from . import health, routes, selections

__all__ = ["routes", "health", "selections"]
