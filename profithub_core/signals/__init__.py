"""Bot signal engines"""

from .bots import BotSignalEngine, create_bot_engines
from .catalog import (
    STRATEGY_CATALOG,
    LoadedStrategy,
    LoadStrategyRequest,
    parse_bot_types,
    resolve_strategy,
)
from .models import BotSignal, BotState, BotType, ContractType, SignalAction
from .strategies import STRATEGY_REGISTRY, BotStrategy, create_strategy

__all__ = [
    "BotSignal",
    "BotSignalEngine",
    "BotState",
    "BotStrategy",
    "BotType",
    "ContractType",
    "LoadStrategyRequest",
    "LoadedStrategy",
    "STRATEGY_CATALOG",
    "STRATEGY_REGISTRY",
    "SignalAction",
    "create_bot_engines",
    "create_strategy",
    "parse_bot_types",
    "resolve_strategy",
]
