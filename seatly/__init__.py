"""
Seatly - desk booking with half-hour availability and weekly recurrence.
"""

__version__ = "0.1.0"
