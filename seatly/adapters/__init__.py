"""
Adapters layer - Desk and booking stores.
"""

from .json_store import JsonBookingStore, JsonDeskStore, JsonFileStore
from .memory_store import InMemoryBookingStore, InMemoryDeskStore

__all__ = [
    "InMemoryBookingStore",
    "InMemoryDeskStore",
    "JsonBookingStore",
    "JsonDeskStore",
    "JsonFileStore",
]
