"""Event routing primitives: segmented names, wildcard matching and the bus."""

from .bus import EventBus
from .patterns import PatternSyntax, Subscription

__all__ = ["EventBus", "PatternSyntax", "Subscription"]
