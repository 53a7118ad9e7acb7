"""Data models for digit analysis snapshots"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class PriceDirection(str, Enum):
    """Direction of the last price move."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class TrendDirection(str, Enum):
    """Direction of a digit's percentage over recent snapshots."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class DigitPower:
    """Frequency of one digit over the current window"""
    digit: int
    count: int
    percentage: float   # One decimal, 0-100
    trend: float        # Change against the previous snapshot


@dataclass(frozen=True)
class GroupPower:
    """Frequency of a digit group (even, odd, under, over)"""
    count: int
    percentage: float
    trend: float


@dataclass(frozen=True)
class DigitRank:
    """A digit and its percentage, used for strongest/weakest"""
    digit: int
    percentage: float


@dataclass(frozen=True)
class PowerTrend:
    """Recent movement of one digit's percentage"""
    digit: int
    direction: TrendDirection
    change: float


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Statistical summary of the current tick window"""
    symbol: str
    sequence: int
    timestamp: datetime
    total_ticks: int
    window_size: int
    current_digit: Optional[int]
    last_digits: tuple[int, ...]
    digit_powers: tuple[DigitPower, ...]    # Ten entries, digit order

    even: GroupPower
    odd: GroupPower
    under: GroupPower                       # Digits 0-4
    over: GroupPower                        # Digits 5-9

    strongest: DigitRank
    second_strongest: DigitRank
    weakest: DigitRank

    entropy: float                          # Normalized 0-1
    power_gap: float
    is_balanced: bool

    # Streaks from consecutive comparisons
    digit_streak: int = 0
    parity_streak: int = 0
    direction: PriceDirection = PriceDirection.FLAT
    direction_streak: int = 0
    last_price: Optional[Decimal] = None

    @property
    def is_empty(self) -> bool:
        return self.total_ticks == 0

    def power_of(self, digit: int) -> DigitPower:
        """Frequency entry for a digit"""
        return self.digit_powers[digit]

    def ranked(self) -> list[DigitPower]:
        """Digit powers from most to least frequent, ties by lower digit"""
        return sorted(self.digit_powers, key=lambda dp: (-dp.percentage, dp.digit))

    def percentages(self) -> dict[int, float]:
        return {dp.digit: dp.percentage for dp in self.digit_powers}


@dataclass(frozen=True)
class TickAnalysis:
    """Result of feeding one price into the analytics engine"""
    digit: int
    snapshot: AnalysisSnapshot
