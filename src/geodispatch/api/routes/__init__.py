"""Route group exports."""

from . import geocoding, health, hubs, routes

__all__ = ["geocoding", "health", "hubs", "routes"]
