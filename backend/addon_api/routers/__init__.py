"""Router exports for the addon API."""
from . import catalog, health, manifest

__all__ = ["catalog", "health", "manifest"]
