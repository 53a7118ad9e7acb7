"""
Per-bot signal engines.

Each BotSignalEngine owns the state of one bot variant and applies the
shared gating rules (selection, loss pause, confidence penalty) around the
variant's strategy.
"""

import dataclasses
from typing import Optional

from ..config.defaults import DefaultConfig, GatingParams
from ..logging.config import get_signal_logger, log_bot_decision
from ..models.analysis import AnalysisSnapshot
from .models import BotSignal, BotState, BotType
from .strategies import STRATEGY_REGISTRY, BotStrategy, create_strategy

logger = get_signal_logger(__name__)


class BotSignalEngine:
    """Signal generation and outcome tracking for one bot"""

    def __init__(self, strategy: BotStrategy, gating: Optional[GatingParams] = None,
                 active: bool = False):
        self.strategy = strategy
        self.gating = gating or GatingParams()
        self._state = BotState(
            bot_type=strategy.bot_type,
            active=active,
            params=strategy.params,
        )

    @property
    def bot_type(self) -> BotType:
        return self.strategy.bot_type

    def consume(self, snapshot: AnalysisSnapshot) -> Optional[BotSignal]:
        """
        Evaluate a snapshot against the bot's entry rule

        Returns:
            BotSignal, or None when the bot is inactive, paused or its
            conditions are unmet
        """
        state = self._state
        if not state.active or state.paused:
            return None

        signal = self.strategy.evaluate(snapshot, state)
        if signal is None:
            return None

        if state.consecutive_losses:
            penalty = self.gating.loss_penalty * state.consecutive_losses
            signal = dataclasses.replace(
                signal, confidence=max(int(round(signal.confidence - penalty)), 0)
            )

        log_bot_decision(
            logger,
            self.bot_type.value,
            signal.action.value,
            signal.sequence,
            signal.reason,
            {"symbol": signal.symbol, "confidence": signal.confidence,
             "prediction": signal.prediction},
        )
        return signal

    def get_state(self) -> BotState:
        return self._state

    def record_result(self, won: bool) -> BotState:
        """Fold one trade outcome into the bot's streaks"""
        previous = self._state
        state = previous.with_result(won, self.gating.max_consecutive_losses)
        self._state = self.strategy.after_result(state)

        if self._state.paused and not previous.paused:
            logger.warning(
                "Bot paused after consecutive losses",
                bot_type=self.bot_type.value,
                consecutive_losses=self._state.consecutive_losses,
                limit=self.gating.max_consecutive_losses,
            )
        else:
            logger.debug(
                "Bot result recorded",
                bot_type=self.bot_type.value,
                won=won,
                runs_count=self._state.runs_count,
            )
        return self._state

    def activate(self) -> BotState:
        self._state = self._state.with_active(True)
        return self._state

    def deactivate(self) -> BotState:
        self._state = self._state.with_active(False)
        return self._state

    def reset(self) -> BotState:
        """Clear streaks, runs and pause; selection is kept"""
        self._state = self._state.cleared()
        return self._state


def create_bot_engines(config: DefaultConfig,
                       active: tuple[BotType, ...] = ()) -> dict[BotType, BotSignalEngine]:
    """One engine per registered bot variant"""
    return {
        bot_type: BotSignalEngine(
            create_strategy(bot_type, config),
            gating=config.gating,
            active=bot_type in active,
        )
        for bot_type in STRATEGY_REGISTRY
    }
