"""
Deriv-specific parsers and request builders for the quote feed.

This module converts raw Deriv WebSocket API v3 payloads into canonical data
structures, extracts tick digits at the symbol's quoted precision, and
builds outgoing requests. Request shapes follow the upstream API exactly.
"""

import json
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

from ..errors import InvalidPriceError, MalformedMessageError
from .models import ActiveSymbol, QuoteMessage

PriceLike = Union[Decimal, float, int, str]

# Deriv quotes carry at most a handful of decimals
MAX_PIP_SIZE = 10


def parse_json_payload(raw: Union[str, bytes]) -> dict[str, Any]:
    """
    Decode one feed frame into a message dictionary.

    Raises:
        MalformedMessageError: If the frame is not a JSON object
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError(
                f"Frame is not valid UTF-8: {e}",
                raw_data=repr(raw[:100]),
                expected_format="utf-8 JSON",
            ) from e

    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(
            f"Invalid JSON: {e}",
            raw_data=str(raw)[:100],
            expected_format="JSON object",
        ) from e

    if not isinstance(message, dict):
        raise MalformedMessageError(
            f"Expected JSON object, got {type(message).__name__}",
            raw_data=str(raw)[:100],
            expected_format="JSON object",
        )

    return message


def to_decimal(price: PriceLike) -> Decimal:
    """
    Convert a quote to Decimal without picking up binary float noise.

    Raises:
        InvalidPriceError: If the price is missing, non-numeric, negative or not finite
    """
    if price is None or isinstance(price, bool):
        raise InvalidPriceError(f"Invalid price: {price!r}", price=price)

    if isinstance(price, float) and (math.isnan(price) or math.isinf(price)):
        raise InvalidPriceError(f"Non-finite price: {price}", price=price)

    try:
        value = price if isinstance(price, Decimal) else Decimal(str(price))
    except (InvalidOperation, ValueError) as e:
        raise InvalidPriceError(f"Invalid price: {price!r}", price=price) from e

    if not value.is_finite():
        raise InvalidPriceError(f"Non-finite price: {price}", price=price)
    if value < 0:
        raise InvalidPriceError(f"Negative price: {price}", price=price)

    return value


def format_price(price: PriceLike, pip_size: Optional[int] = None) -> str:
    """
    Render a price as plain decimal text, quantized to pip_size decimals when given.

    Raises:
        InvalidPriceError: If the price cannot be represented at that precision
    """
    value = to_decimal(price)
    if pip_size is not None:
        try:
            value = value.quantize(Decimal(1).scaleb(-pip_size), rounding=ROUND_HALF_UP)
        except (InvalidOperation, TypeError) as e:
            raise InvalidPriceError(
                f"Cannot quantize {price} to {pip_size!r} decimals",
                price=price,
                context={"pip_size": pip_size},
            ) from e
    return format(value, "f")


def extract_last_digit(price: PriceLike, pip_size: Optional[int] = None) -> int:
    """
    Last decimal digit of a quote.

    With a pip size the price is first fixed to that many decimals, so a
    quote of 1234.5 on a 2-decimal symbol yields 0. Without one, the last
    digit of the quote's own decimal text is used.
    """
    text = format_price(price, pip_size)
    return int(text[-1])


def pip_size_from_pip(pip: Any) -> Optional[int]:
    """Convert an active_symbols ``pip`` value (e.g. 0.001) to a decimal count."""
    if pip is None:
        return None
    try:
        exponent = Decimal(str(pip)).normalize().as_tuple().exponent
    except (InvalidOperation, ValueError):
        return None
    if not isinstance(exponent, int) or -exponent > MAX_PIP_SIZE:
        return None
    return max(-exponent, 0)


def get_error(message: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Return the API error object of a response, if any."""
    error = message.get("error")
    if isinstance(error, dict):
        return error
    return None


def parse_tick_message(message: dict[str, Any]) -> QuoteMessage:
    """
    Parse a ``tick`` response into a QuoteMessage.

    Expected shape::

        {"msg_type": "tick",
         "tick": {"symbol": "R_100", "quote": 1234.56, "epoch": 1700000000,
                  "pip_size": 2, "id": "..."},
         "subscription": {"id": "..."}}

    Raises:
        MalformedMessageError: If required tick fields are missing or invalid
    """
    tick = message.get("tick")
    if not isinstance(tick, dict):
        raise MalformedMessageError(
            "Tick message missing 'tick' object",
            raw_data=str(message)[:100],
            expected_format="tick",
        )

    missing = [key for key in ("symbol", "quote", "epoch") if tick.get(key) is None]
    if missing:
        raise MalformedMessageError(
            f"Tick missing fields: {', '.join(missing)}",
            raw_data=str(tick)[:100],
            expected_format="tick",
            context={"missing_fields": missing},
        )

    try:
        price = to_decimal(tick["quote"])
        epoch = int(tick["epoch"])
    except (InvalidPriceError, TypeError, ValueError) as e:
        raise MalformedMessageError(
            f"Tick has invalid quote or epoch: {e}",
            raw_data=str(tick)[:100],
            expected_format="tick",
        ) from e

    pip_size = _parse_pip_size(tick.get("pip_size"), tick)
    subscription = message.get("subscription")

    return QuoteMessage(
        symbol=str(tick["symbol"]),
        price=price,
        epoch=epoch,
        pip_size=pip_size,
        subscription_id=subscription.get("id") if isinstance(subscription, dict) else None,
        tick_id=tick.get("id"),
    )


def _parse_pip_size(value: Any, tick: dict[str, Any]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_PIP_SIZE:
        raise MalformedMessageError(
            f"Tick has invalid pip_size: {value!r}",
            raw_data=str(tick)[:100],
            expected_format="tick",
            context={"pip_size": value},
        )
    return value


def parse_active_symbols(message: dict[str, Any]) -> list[ActiveSymbol]:
    """
    Parse an ``active_symbols`` response.

    Raises:
        MalformedMessageError: If the payload has no symbol list
    """
    entries = message.get("active_symbols")
    if not isinstance(entries, list):
        raise MalformedMessageError(
            "Response missing 'active_symbols' list",
            raw_data=str(message)[:100],
            expected_format="active_symbols",
        )

    symbols = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("symbol"):
            continue
        symbols.append(ActiveSymbol(
            symbol=entry["symbol"],
            display_name=entry.get("display_name", entry["symbol"]),
            market=entry.get("market"),
            market_display_name=entry.get("market_display_name"),
            pip_size=pip_size_from_pip(entry.get("pip")),
        ))
    return symbols


# Outgoing requests

def ticks_request(symbol: str, req_id: int) -> dict[str, Any]:
    return {"ticks": symbol, "subscribe": 1, "req_id": req_id}


def forget_request(subscription_id: str, req_id: int) -> dict[str, Any]:
    return {"forget": subscription_id, "req_id": req_id}


def forget_all_request(req_id: int) -> dict[str, Any]:
    return {"forget_all": ["ticks"], "req_id": req_id}


def active_symbols_request(req_id: int) -> dict[str, Any]:
    return {"active_symbols": "brief", "product_type": "basic", "req_id": req_id}


def ping_request(req_id: int) -> dict[str, Any]:
    return {"ping": 1, "req_id": req_id}
