"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .desk_manager import BookingStoreProtocol, DeskManager, DeskStoreProtocol

__all__ = ["BookingStoreProtocol", "DeskManager", "DeskStoreProtocol"]
