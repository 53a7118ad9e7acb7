"""Digit analytics for the tick stream"""

from .calculator import DigitAnalyticsEngine
from .digits import (
    calculate_entropy,
    count_digits,
    price_direction_streak,
    rank_digits,
    to_percentage,
    trailing_digit_streak,
    trailing_parity_streak,
)

__all__ = [
    "DigitAnalyticsEngine",
    "calculate_entropy",
    "count_digits",
    "price_direction_streak",
    "rank_digits",
    "to_percentage",
    "trailing_digit_streak",
    "trailing_parity_streak",
]
