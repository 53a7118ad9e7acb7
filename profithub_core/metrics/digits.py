"""Digit frequency and streak calculations"""

import math
from collections.abc import Sequence
from decimal import Decimal

from ..models.analysis import DigitRank, GroupPower, PriceDirection

EVEN_DIGITS = frozenset({0, 2, 4, 6, 8})
ODD_DIGITS = frozenset({1, 3, 5, 7, 9})
UNDER_DIGITS = frozenset({0, 1, 2, 3, 4})
OVER_DIGITS = frozenset({5, 6, 7, 8, 9})


def count_digits(digits: Sequence[int]) -> list[int]:
    """
    Count occurrences of each digit

    Returns:
        Ten counts, indexed by digit
    """
    counts = [0] * 10
    for digit in digits:
        counts[digit] += 1
    return counts


def to_percentage(count: int, total: int) -> float:
    """count / total as a percentage rounded to one decimal"""
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)


def group_power(digits: Sequence[int], group: frozenset, previous_percentage: float) -> GroupPower:
    """Frequency of a digit group with its change against the previous snapshot"""
    count = sum(1 for d in digits if d in group)
    percentage = to_percentage(count, len(digits))
    return GroupPower(
        count=count,
        percentage=percentage,
        trend=round(percentage - previous_percentage, 1),
    )


def calculate_entropy(counts: Sequence[int]) -> float:
    """
    Normalized Shannon entropy of the digit distribution

    Returns:
        0 for a single repeated digit, 1 for a perfectly uniform window
    """
    total = sum(counts)
    if total == 0:
        return 0.0

    entropy = 0.0
    for count in counts:
        if count > 0:
            probability = count / total
            entropy -= probability * math.log2(probability)

    return round(min(entropy / math.log2(10), 1.0), 4)


def rank_digits(percentages: Sequence[float]) -> tuple[DigitRank, DigitRank, DigitRank]:
    """
    Strongest, second strongest and weakest digits

    Ties resolve to the lower digit in every position.
    """
    order = sorted(range(10), key=lambda d: (-percentages[d], d))
    weakest = min(range(10), key=lambda d: (percentages[d], d))
    return (
        DigitRank(order[0], percentages[order[0]]),
        DigitRank(order[1], percentages[order[1]]),
        DigitRank(weakest, percentages[weakest]),
    )


def trailing_digit_streak(digits: Sequence[int]) -> int:
    """How many times the latest digit repeats at the end of the window"""
    if not digits:
        return 0
    last = digits[-1]
    streak = 0
    for digit in reversed(digits):
        if digit != last:
            break
        streak += 1
    return streak


def trailing_parity_streak(digits: Sequence[int]) -> int:
    """How many trailing digits share the latest digit's parity"""
    if not digits:
        return 0
    parity = digits[-1] % 2
    streak = 0
    for digit in reversed(digits):
        if digit % 2 != parity:
            break
        streak += 1
    return streak


def _direction(previous: Decimal, current: Decimal) -> PriceDirection:
    if current > previous:
        return PriceDirection.UP
    if current < previous:
        return PriceDirection.DOWN
    return PriceDirection.FLAT


def price_direction_streak(prices: Sequence[Decimal]) -> tuple[PriceDirection, int]:
    """
    Direction of the last price move and how many consecutive moves share it

    Returns:
        (FLAT, 0) when fewer than two prices are available
    """
    if len(prices) < 2:
        return PriceDirection.FLAT, 0

    direction = _direction(prices[-2], prices[-1])
    streak = 0
    for i in range(len(prices) - 1, 0, -1):
        if _direction(prices[i - 1], prices[i]) != direction:
            break
        streak += 1
    return direction, streak
