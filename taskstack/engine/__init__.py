"""Task collection engine."""

from .collection import Collection, CollectionStateError

__all__ = ["Collection", "CollectionStateError"]
