"""Tests for Deriv payload parsing, digit extraction and request builders."""

from decimal import Decimal

import pytest

from profithub_core.data.parsers import (
    active_symbols_request,
    extract_last_digit,
    forget_all_request,
    forget_request,
    format_price,
    get_error,
    parse_active_symbols,
    parse_json_payload,
    parse_tick_message,
    pip_size_from_pip,
    ping_request,
    ticks_request,
    to_decimal,
)
from profithub_core.errors import DataQualityError, InvalidPriceError, MalformedMessageError


class TestDigitExtraction:
    """Last digit at the symbol's quoted precision."""

    @pytest.mark.parametrize("price,pip_size,expected", [
        ("1234.56", 2, 6),
        (1234.5, 2, 0),
        ("245.1234", 4, 4),
        ("245.12", 4, 0),
        ("1.08765", 5, 5),
        ("151.2", 3, 0),
    ])
    def test_fixed_precision(self, price, pip_size, expected):
        assert extract_last_digit(price, pip_size) == expected

    def test_rounds_half_up_to_pip_size(self):
        assert extract_last_digit("10.125", 2) == 3
        assert format_price("10.125", 2) == "10.13"

    def test_own_decimals_without_pip_size(self):
        assert [extract_last_digit(p) for p in (10.3, 10.7, 10.1)] == [3, 7, 1]

    def test_float_noise_is_ignored(self):
        # 0.1 + 0.2 == 0.30000000000000004 as binary float
        assert extract_last_digit(0.1 + 0.2, 2) == 0

    def test_integer_price(self):
        assert extract_last_digit(1234) == 4

    def test_precision_beyond_context_is_invalid_price(self):
        with pytest.raises(InvalidPriceError) as exc_info:
            extract_last_digit("1234.56", 40)
        assert exc_info.value.context["pip_size"] == 40


class TestToDecimal:
    """Price validation."""

    def test_accepts_numeric_text(self):
        assert to_decimal("1234.56") == Decimal("1234.56")
        assert to_decimal(1234.56) == Decimal("1234.56")

    @pytest.mark.parametrize("price", [None, True, "abc", float("nan"), float("inf"), -1, "-0.5"])
    def test_rejects_invalid(self, price):
        with pytest.raises(InvalidPriceError) as exc_info:
            to_decimal(price)
        assert isinstance(exc_info.value, DataQualityError)
        assert exc_info.value.recoverable is True


class TestPayloadParsing:
    """Inbound Deriv messages."""

    def test_parse_json_payload(self):
        assert parse_json_payload('{"msg_type": "ping"}') == {"msg_type": "ping"}
        assert parse_json_payload(b'{"msg_type": "ping"}') == {"msg_type": "ping"}

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", b"\xff\xfe"])
    def test_parse_json_payload_rejects(self, raw):
        with pytest.raises(MalformedMessageError):
            parse_json_payload(raw)

    def test_parse_tick_message(self):
        quote = parse_tick_message({
            "msg_type": "tick",
            "tick": {"symbol": "R_100", "quote": 1234.56, "epoch": 1700000000,
                     "pip_size": 2, "id": "t-1"},
            "subscription": {"id": "s-1"},
        })

        assert quote.symbol == "R_100"
        assert quote.price == Decimal("1234.56")
        assert quote.epoch == 1700000000
        assert quote.pip_size == 2
        assert quote.subscription_id == "s-1"
        assert quote.tick_id == "t-1"

    def test_parse_tick_missing_fields(self):
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_tick_message({"tick": {"symbol": "R_100"}})
        assert exc_info.value.context["missing_fields"] == ["quote", "epoch"]

    def test_parse_tick_without_tick_object(self):
        with pytest.raises(MalformedMessageError):
            parse_tick_message({"msg_type": "tick"})

    def test_parse_tick_with_invalid_quote(self):
        with pytest.raises(MalformedMessageError):
            parse_tick_message({"tick": {"symbol": "R_100", "quote": "n/a", "epoch": 1}})

    def test_parse_tick_integral_float_pip_size(self):
        quote = parse_tick_message({"tick": {"symbol": "R_100", "quote": 1.5, "epoch": 1, "pip_size": 2.0}})
        assert quote.pip_size == 2

    @pytest.mark.parametrize("pip_size", [40, -1, 2.5, "2", True, [2]])
    def test_parse_tick_rejects_invalid_pip_size(self, pip_size):
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_tick_message({"tick": {"symbol": "R_100", "quote": 1.5, "epoch": 1,
                                         "pip_size": pip_size}})
        assert exc_info.value.context["pip_size"] == pip_size

    def test_parse_active_symbols(self):
        symbols = parse_active_symbols({
            "active_symbols": [
                {"symbol": "R_100", "display_name": "Volatility 100 Index",
                 "market": "synthetic_index", "market_display_name": "Derived", "pip": 0.01},
                {"display_name": "no symbol"},
                {"symbol": "frxEURUSD", "pip": 0.00001},
            ],
        })

        assert [s.symbol for s in symbols] == ["R_100", "frxEURUSD"]
        assert symbols[0].pip_size == 2
        assert symbols[1].pip_size == 5
        assert symbols[1].display_name == "frxEURUSD"

    def test_parse_active_symbols_requires_list(self):
        with pytest.raises(MalformedMessageError):
            parse_active_symbols({"msg_type": "active_symbols"})

    @pytest.mark.parametrize("pip,expected", [(0.001, 3), ("0.0001", 4), (1, 0), (None, None), ("x", None), ("1e-40", None)])
    def test_pip_size_from_pip(self, pip, expected):
        assert pip_size_from_pip(pip) == expected

    def test_get_error(self):
        assert get_error({"error": {"code": "X", "message": "bad"}}) == {"code": "X", "message": "bad"}
        assert get_error({"msg_type": "tick"}) is None


class TestRequestBuilders:
    """Outgoing request shapes."""

    def test_ticks_request(self):
        assert ticks_request("R_100", 1) == {"ticks": "R_100", "subscribe": 1, "req_id": 1}

    def test_forget_request(self):
        assert forget_request("abc", 2) == {"forget": "abc", "req_id": 2}

    def test_forget_all_request(self):
        assert forget_all_request(3) == {"forget_all": ["ticks"], "req_id": 3}

    def test_active_symbols_request(self):
        assert active_symbols_request(4) == {
            "active_symbols": "brief", "product_type": "basic", "req_id": 4,
        }

    def test_ping_request(self):
        assert ping_request(5) == {"ping": 1, "req_id": 5}
