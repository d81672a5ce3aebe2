"""Storage abstraction consumed by the repositories."""

from accuscene.storage.base import Storage
from accuscene.storage.memory import InMemoryStorage

__all__ = [
    "InMemoryStorage",
    "Storage",
]
