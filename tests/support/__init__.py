"""
Test Support Module

Builders for movements and lots shared by the engine tests.
"""

from tests.support.builders import buy, d, make_lot, make_movement, sell

__all__ = [
    "buy",
    "d",
    "make_lot",
    "make_movement",
    "sell",
]
