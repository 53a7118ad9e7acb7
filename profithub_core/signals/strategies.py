"""
Entry rules for each bot variant.

Strategies are stateless: ``evaluate`` is a pure function of the snapshot,
the bot's current state and the variant's parameters.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..config.defaults import (
    DefaultConfig,
    DiffersParams,
    EvenOddParams,
    MatchesParams,
    OverUnderParams,
    RiseFallParams,
)
from ..models.analysis import AnalysisSnapshot, GroupPower, PriceDirection
from .models import BotSignal, BotState, BotType, ContractType, SignalAction


class BotStrategy(ABC):
    """Entry rule of one bot variant."""

    bot_type: BotType

    def __init__(self, params):
        self.params = params

    @abstractmethod
    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        """Return a signal, or None when entry conditions are unmet."""

    def after_result(self, state: BotState) -> BotState:
        """Variant-specific adjustment after a result was recorded."""
        return state

    def _signal(self, snapshot: AnalysisSnapshot, action: SignalAction,
                contract_type: Optional[ContractType], prediction: Optional[int],
                confidence: float, reason: str, power_met: bool = False,
                trend_met: bool = False) -> BotSignal:
        return BotSignal(
            bot_type=self.bot_type,
            action=action,
            contract_type=contract_type,
            prediction=prediction,
            confidence=int(round(max(0.0, min(confidence, 100.0)))),
            reason=reason,
            symbol=snapshot.symbol,
            sequence=snapshot.sequence,
            timestamp=snapshot.timestamp,
            power_threshold_met=power_met,
            trend_confirmed=trend_met,
        )


class _DominantGroupStrategy(BotStrategy):
    """Shared rule for bots that back the dominant half of the digits."""

    def _evaluate_groups(
        self,
        snapshot: AnalysisSnapshot,
        first: tuple[str, GroupPower, ContractType, Optional[int]],
        second: tuple[str, GroupPower, ContractType, Optional[int]],
    ) -> Optional[BotSignal]:
        if snapshot.is_empty:
            return None

        # first wins only when strictly stronger
        name, group, contract, prediction = (
            first if first[1].percentage > second[1].percentage else second
        )
        power = group.percentage
        trend = group.trend

        power_met = power >= self.params.power_threshold
        trend_met = trend > 0
        has_power = power >= self.params.min_power

        if power_met and trend_met and has_power:
            return self._signal(
                snapshot, SignalAction.BUY, contract, prediction,
                min(power + abs(trend), 100.0),
                f"{name.upper()} power {power:.1f}% with increasing trend",
                power_met, trend_met,
            )
        if power_met:
            return self._signal(
                snapshot, SignalAction.HOLD, contract, prediction, power,
                f"{name.upper()} power {power:.1f}% but trend is not increasing",
                power_met, trend_met,
            )
        return None


class EvenOddStrategy(_DominantGroupStrategy):
    """Back the dominant parity once it clears the power threshold and is rising."""

    bot_type = BotType.EVEN_ODD
    params: EvenOddParams

    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        return self._evaluate_groups(
            snapshot,
            ("even", snapshot.even, ContractType.DIGITEVEN, None),
            ("odd", snapshot.odd, ContractType.DIGITODD, None),
        )


class OverUnderStrategy(_DominantGroupStrategy):
    """Back the dominant range (0-4 or 5-9) once it clears the power threshold."""

    bot_type = BotType.OVER_UNDER
    params: OverUnderParams

    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        return self._evaluate_groups(
            snapshot,
            ("over", snapshot.over, ContractType.DIGITOVER, self.params.over_barrier),
            ("under", snapshot.under, ContractType.DIGITUNDER, self.params.under_barrier),
        )


class DiffersStrategy(BotStrategy):
    """
    Bet that a fading mid-range digit will not appear.

    Eligible digits come from ``allowed_digits`` minus the most frequent
    ``excluded_top`` digits and the least frequent digit. The eligible digit
    whose percentage is falling fastest is traded.
    """

    bot_type = BotType.DIFFERS
    params: DiffersParams

    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        if snapshot.is_empty:
            return None

        top = {dp.digit for dp in snapshot.ranked()[:self.params.excluded_top]}
        eligible = [
            d for d in self.params.allowed_digits
            if d not in top and d != snapshot.weakest.digit
        ]
        if not eligible:
            return None

        best = min(eligible, key=lambda d: (snapshot.power_of(d).trend, d))
        trend = snapshot.power_of(best).trend

        if trend < 0:
            return self._signal(
                snapshot, SignalAction.BUY, ContractType.DIGITDIFF, best,
                min(abs(trend) * self.params.trend_multiplier, self.params.max_confidence),
                f"Digit {best} is in the allowed range and its power is decreasing",
                power_met=True, trend_met=True,
            )
        return self._signal(
            snapshot, SignalAction.HOLD, ContractType.DIGITDIFF, None, 0,
            "No eligible digit with decreasing power",
            power_met=True,
        )


class MatchesStrategy(BotStrategy):
    """
    High frequency match on a rising top digit, limited to ``max_runs`` trades.
    """

    bot_type = BotType.MATCHES
    params: MatchesParams

    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        if snapshot.is_empty or state.runs_count >= self.params.max_runs:
            return None

        top = snapshot.ranked()[:self.params.top_digits]
        current = snapshot.current_digit
        runs = f"runs {state.runs_count}/{self.params.max_runs}"

        if any(dp.digit == current and dp.trend > 0 for dp in top):
            return self._signal(
                snapshot, SignalAction.BUY, ContractType.DIGITMATCH, current,
                self.params.base_confidence,
                f"Current digit {current} is a rising top digit ({runs})",
                power_met=True, trend_met=True,
            )

        leader = top[0]
        if leader.trend > 0:
            return self._signal(
                snapshot, SignalAction.BUY, ContractType.DIGITMATCH, leader.digit,
                min(leader.percentage + abs(leader.trend), self.params.max_confidence),
                f"Strongest digit {leader.digit} is rising ({runs})",
                power_met=True, trend_met=True,
            )
        return None

    def after_result(self, state: BotState) -> BotState:
        # A losing run that hit the limit starts over
        if state.consecutive_losses > 0 and state.runs_count >= self.params.max_runs:
            return state.cleared()
        return state


class RiseFallStrategy(BotStrategy):
    """Follow a run of consecutive price moves in one direction."""

    bot_type = BotType.RISE_FALL
    params: RiseFallParams

    def evaluate(self, snapshot: AnalysisSnapshot, state: BotState) -> Optional[BotSignal]:
        streak = snapshot.direction_streak
        if snapshot.direction == PriceDirection.FLAT or streak < self.params.min_streak:
            return None

        confidence = min(
            self.params.base_confidence + streak * self.params.streak_weight,
            self.params.max_confidence,
        )
        if snapshot.direction == PriceDirection.UP:
            return self._signal(
                snapshot, SignalAction.BUY, ContractType.CALL, None, confidence,
                f"Price rose {streak} ticks in a row",
                power_met=True, trend_met=True,
            )
        return self._signal(
            snapshot, SignalAction.SELL, ContractType.PUT, None, confidence,
            f"Price fell {streak} ticks in a row",
            power_met=True, trend_met=True,
        )


STRATEGY_REGISTRY: dict[BotType, type[BotStrategy]] = {
    BotType.EVEN_ODD: EvenOddStrategy,
    BotType.OVER_UNDER: OverUnderStrategy,
    BotType.DIFFERS: DiffersStrategy,
    BotType.MATCHES: MatchesStrategy,
    BotType.RISE_FALL: RiseFallStrategy,
}


def create_strategy(bot_type: BotType, config: DefaultConfig) -> BotStrategy:
    """Build the registered strategy for a variant with its config section."""
    strategy_cls = STRATEGY_REGISTRY[bot_type]
    # Config sections are named after the variant values
    return strategy_cls(getattr(config, bot_type.value))
