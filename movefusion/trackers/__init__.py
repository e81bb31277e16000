"""Tracker implementations."""

from .bridge import BridgeTracker
from .static import StaticTracker

__all__ = [
    "BridgeTracker",
    "StaticTracker",
]
