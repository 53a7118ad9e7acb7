"""Digit analytics engine producing one snapshot per tick"""

from collections import deque
from decimal import Decimal
from typing import Optional

from ..config.defaults import AnalyticsParams
from ..data.parsers import PriceLike, extract_last_digit, to_decimal
from ..logging.config import get_logger
from ..models.analysis import (
    AnalysisSnapshot,
    DigitPower,
    DigitRank,
    GroupPower,
    PowerTrend,
    PriceDirection,
    TickAnalysis,
    TrendDirection,
)
from ..utils.time import get_market_time
from .digits import (
    EVEN_DIGITS,
    ODD_DIGITS,
    OVER_DIGITS,
    UNDER_DIGITS,
    calculate_entropy,
    count_digits,
    group_power,
    price_direction_streak,
    rank_digits,
    to_percentage,
    trailing_digit_streak,
    trailing_parity_streak,
)

logger = get_logger(__name__)

UNIFORM_DIGIT_PERCENTAGE = 10.0
UNIFORM_GROUP_PERCENTAGE = 50.0


class DigitAnalyticsEngine:
    """
    Rolling digit analytics for one symbol

    Keeps a FIFO window of the last ``window_size`` digits (and prices) and
    recomputes the full frequency table on every tick. Only the latest
    snapshot is retained; it doubles as the baseline for trend deltas.
    """

    def __init__(self, params: Optional[AnalyticsParams] = None, symbol: str = ""):
        self.params = params or AnalyticsParams()
        self.symbol = symbol

        self.digits: deque[int] = deque(maxlen=self.params.window_size)
        self.prices: deque[Decimal] = deque(maxlen=self.params.window_size)
        self.power_history: dict[int, deque[float]] = {
            d: deque(maxlen=self.params.power_history_size) for d in range(10)
        }

        self.last_snapshot: Optional[AnalysisSnapshot] = None
        self._sequence = 0

    def process_tick(
        self,
        price: PriceLike,
        pip_size: Optional[int] = None,
        epoch: Optional[int] = None,
        sequence: Optional[int] = None,
    ) -> TickAnalysis:
        """
        Add a price to the window and compute the new snapshot

        Args:
            price: Quote as received from the feed
            pip_size: Decimals the symbol is quoted at; falls back to the
                configured default, then to the quote's own decimals
            epoch: Feed epoch of the tick
            sequence: Feed sequence of the tick; a local counter is used if omitted

        Returns:
            TickAnalysis with the extracted digit and the new snapshot

        Raises:
            InvalidPriceError: If the price cannot be interpreted
        """
        value = to_decimal(price)
        if pip_size is None:
            pip_size = self.params.default_pip_size
        digit = extract_last_digit(value, pip_size)

        self.digits.append(digit)
        self.prices.append(value)
        self._sequence = sequence if sequence is not None else self._sequence + 1

        snapshot = self._analyze(epoch)
        self.last_snapshot = snapshot

        logger.debug(
            "Processed tick",
            symbol=self.symbol,
            price=str(value),
            digit=digit,
            sequence=self._sequence,
            window=len(self.digits),
        )

        return TickAnalysis(digit=digit, snapshot=snapshot)

    def analyze(self) -> AnalysisSnapshot:
        """Return the latest snapshot, or an empty one before the first tick"""
        if self.last_snapshot is None:
            return self._empty_snapshot()
        return self.last_snapshot

    def _analyze(self, epoch: Optional[int]) -> AnalysisSnapshot:
        digits = list(self.digits)
        total = len(digits)
        previous = self.last_snapshot

        counts = count_digits(digits)
        digit_powers = []
        for digit, count in enumerate(counts):
            percentage = to_percentage(count, total)
            previous_percentage = (
                previous.power_of(digit).percentage if previous else UNIFORM_DIGIT_PERCENTAGE
            )
            digit_powers.append(DigitPower(
                digit=digit,
                count=count,
                percentage=percentage,
                trend=round(percentage - previous_percentage, 1),
            ))
            self.power_history[digit].append(percentage)

        percentages = [dp.percentage for dp in digit_powers]
        strongest, second, weakest = rank_digits(percentages)
        power_gap = round(strongest.percentage - weakest.percentage, 1)
        direction, direction_streak = price_direction_streak(list(self.prices))

        def baseline(group: str) -> float:
            if previous is None:
                return UNIFORM_GROUP_PERCENTAGE
            return getattr(previous, group).percentage

        return AnalysisSnapshot(
            symbol=self.symbol,
            sequence=self._sequence,
            timestamp=get_market_time(epoch),
            total_ticks=total,
            window_size=self.params.window_size,
            current_digit=digits[-1],
            last_digits=tuple(digits[-self.params.last_digits_count:]),
            digit_powers=tuple(digit_powers),
            even=group_power(digits, EVEN_DIGITS, baseline("even")),
            odd=group_power(digits, ODD_DIGITS, baseline("odd")),
            under=group_power(digits, UNDER_DIGITS, baseline("under")),
            over=group_power(digits, OVER_DIGITS, baseline("over")),
            strongest=strongest,
            second_strongest=second,
            weakest=weakest,
            entropy=calculate_entropy(counts),
            power_gap=power_gap,
            is_balanced=power_gap < self.params.balanced_gap,
            digit_streak=trailing_digit_streak(digits),
            parity_streak=trailing_parity_streak(digits),
            direction=direction,
            direction_streak=direction_streak,
            last_price=self.prices[-1],
        )

    def _empty_snapshot(self) -> AnalysisSnapshot:
        empty_group = GroupPower(count=0, percentage=0.0, trend=0.0)
        empty_rank = DigitRank(digit=0, percentage=0.0)
        return AnalysisSnapshot(
            symbol=self.symbol,
            sequence=self._sequence,
            timestamp=get_market_time(),
            total_ticks=0,
            window_size=self.params.window_size,
            current_digit=None,
            last_digits=(),
            digit_powers=tuple(DigitPower(d, 0, 0.0, 0.0) for d in range(10)),
            even=empty_group,
            odd=empty_group,
            under=empty_group,
            over=empty_group,
            strongest=empty_rank,
            second_strongest=empty_rank,
            weakest=empty_rank,
            entropy=0.0,
            power_gap=0.0,
            is_balanced=True,
            direction=PriceDirection.FLAT,
        )

    def get_last_digits(self, count: int = 15) -> list[int]:
        """Most recent digits, oldest first"""
        if count <= 0:
            return []
        return list(self.digits)[-count:]

    def get_trend_for_digit(self, digit: int) -> PowerTrend:
        """Movement of a digit's percentage over the last two snapshots"""
        history = self.power_history[digit]
        if len(history) < 2:
            return PowerTrend(digit=digit, direction=TrendDirection.STABLE, change=0.0)

        change = round(history[-1] - history[-2], 1)
        if abs(change) < self.params.stable_band:
            direction = TrendDirection.STABLE
        elif change > 0:
            direction = TrendDirection.INCREASING
        else:
            direction = TrendDirection.DECREASING

        return PowerTrend(digit=digit, direction=direction, change=change)

    def reset(self) -> None:
        """Clear window, history and the retained snapshot"""
        self.digits.clear()
        self.prices.clear()
        for history in self.power_history.values():
            history.clear()
        self.last_snapshot = None
        self._sequence = 0
