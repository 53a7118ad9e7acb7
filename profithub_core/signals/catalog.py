"""
Strategy catalog and strategy load requests.

A strategy is a named bundle of bot variants. Requests may name the
variants directly or refer to a catalog entry; the builder XML that comes
with a request is stored as given and never interpreted.
"""

from dataclasses import dataclass
from typing import Optional

from .models import BotType

STRATEGY_CATALOG: dict[str, tuple[BotType, ...]] = {
    "even_odd_digits": (BotType.EVEN_ODD,),
    "even_odd_percent": (BotType.EVEN_ODD,),
    "over_under_digits": (BotType.OVER_UNDER,),
    "over_under_percent": (BotType.OVER_UNDER,),
    "differs": (BotType.DIFFERS,),
    "matches": (BotType.MATCHES,),
    "matches_differs": (BotType.MATCHES, BotType.DIFFERS),
    "rise_fall": (BotType.RISE_FALL,),
}


@dataclass(frozen=True)
class LoadStrategyRequest:
    """Request to run a strategy"""
    strategy_id: str
    bot_types: tuple[str, ...] = ()
    xml: Optional[str] = None


@dataclass(frozen=True)
class LoadedStrategy:
    """A strategy currently contributing bots to the active set"""
    strategy_id: str
    bot_types: tuple[BotType, ...]
    xml: Optional[str] = None


def parse_bot_types(names) -> tuple[tuple[BotType, ...], tuple[str, ...]]:
    """
    Split names into known bot variants and unknown names

    Returns:
        (bot types in first-seen order, unknown names)
    """
    known: list[BotType] = []
    unknown: list[str] = []
    for name in names:
        try:
            bot_type = BotType(name)
        except ValueError:
            unknown.append(str(name))
            continue
        if bot_type not in known:
            known.append(bot_type)
    return tuple(known), tuple(unknown)


def resolve_strategy(request: LoadStrategyRequest) -> tuple[LoadedStrategy, tuple[str, ...]]:
    """
    Bot variants a request activates

    Explicit ``bot_types`` win over the catalog entry for ``strategy_id``.

    Returns:
        The strategy to load and any unknown bot names in the request
    """
    if request.bot_types:
        bot_types, unknown = parse_bot_types(request.bot_types)
    else:
        bot_types, unknown = STRATEGY_CATALOG.get(request.strategy_id, ()), ()

    return LoadedStrategy(request.strategy_id, bot_types, request.xml), unknown
