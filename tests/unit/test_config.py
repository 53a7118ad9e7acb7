"""Tests for configuration defaults, loading precedence and validation."""

from pathlib import Path

import pytest

from profithub_core.config import ConfigLoader, ConfigValidator, get_default_config
from profithub_core.config.defaults import DERIV_APP_ID, FeedParams

SYMBOLS_YAML = """
symbols:
  R_100:
    display_name: Volatility 100 Index
    pip_size: 2
    even_odd:
      power_threshold: 60.0
    differs:
      allowed_digits: [3, 4, 5]
  R_50:
    pip_size: 4
"""


@pytest.fixture
def loader(tmp_path: Path) -> ConfigLoader:
    (tmp_path / "symbols.yaml").write_text(SYMBOLS_YAML)
    return ConfigLoader.create(tmp_path)


class TestDefaults:
    """Default parameter values."""

    def test_feed_defaults(self):
        feed = get_default_config().feed
        assert feed.handshake_timeout == 10.0
        assert feed.heartbeat_interval == 15.0
        assert feed.stale_after == 30.0
        assert feed.max_reconnect_attempts == 10
        assert feed.reconnect_cooldown == 60.0

    def test_bot_defaults(self):
        config = get_default_config()
        assert config.even_odd.power_threshold == 55.0
        assert config.differs.allowed_digits == (2, 3, 4, 5, 6, 7)
        assert config.matches.max_runs == 7
        assert config.gating.max_consecutive_losses == 3

    def test_trade_defaults(self):
        trade = get_default_config().trade
        assert trade.base_stake == 1.0
        assert trade.martingale_multiplier == 1.5
        assert trade.max_loss_limit == 100.0
        assert trade.max_consecutive_losses == 5

    def test_default_config_is_frozen(self):
        config = get_default_config()
        with pytest.raises(AttributeError):
            config.trade.base_stake = 5.0


class TestConfigLoader:
    """Defaults < symbol overrides < session overrides."""

    def test_defaults_without_symbol(self, loader):
        config = loader.load()
        assert config.even_odd.power_threshold == 55.0
        assert config.pip_sizes == {"R_100": 2, "R_50": 4}

    def test_symbol_overrides(self, loader):
        config = loader.load(symbol="R_100")
        assert config.even_odd.power_threshold == 60.0
        # Lists from YAML become tuples
        assert config.differs.allowed_digits == (3, 4, 5)
        assert config.even_odd.min_power == 50.0

    def test_session_overrides_win(self, loader):
        config = loader.load(symbol="R_100", session_overrides={
            "even_odd": {"power_threshold": 70.0},
            "trade": {"base_stake": 2.0},
        })
        assert config.even_odd.power_threshold == 70.0
        assert config.trade.base_stake == 2.0

    def test_session_pip_sizes_win(self, loader):
        config = loader.load(session_overrides={"pip_sizes": {"R_50": 3}})
        assert config.pip_sizes["R_50"] == 3
        assert config.pip_sizes["R_100"] == 2

    def test_symbol_metadata_is_not_config(self, loader):
        overrides = loader.load_symbol_config("R_100")
        assert "pip_size" not in overrides
        assert "display_name" not in overrides

    def test_unknown_keys_are_ignored(self, loader):
        config = loader.load(session_overrides={"trade": {"leverage": 5}})
        assert config.trade == get_default_config().trade

    def test_missing_symbols_file(self, tmp_path):
        loader = ConfigLoader.create(tmp_path)
        assert loader.load_pip_sizes() == {}
        assert loader.load(symbol="R_100").feed == FeedParams()

    def test_bundled_symbols_file(self):
        pip_sizes = ConfigLoader.create().load_pip_sizes()
        assert pip_sizes["R_100"] == 2
        assert pip_sizes["R_50"] == 4

    def test_feed_url(self):
        assert FeedParams().resolve_url().endswith(f"app_id={DERIV_APP_ID}")
        assert FeedParams(url="ws://localhost:9000").resolve_url() == "ws://localhost:9000"


class TestConfigValidator:
    """Validation error reporting."""

    def test_default_config_is_valid(self, loader):
        assert ConfigValidator.validate_config(loader.merge_config()) == []

    def test_invalid_feed_params(self):
        errors = ConfigValidator.validate_feed_params({
            "handshake_timeout": 0,
            "reconnect_factor": 0.5,
            "max_reconnect_attempts": 2.5,
        })
        fields = {e.field for e in errors}
        assert fields == {
            "feed.handshake_timeout",
            "feed.reconnect_factor",
            "feed.max_reconnect_attempts",
        }

    def test_stale_after_must_exceed_heartbeat(self):
        errors = ConfigValidator.validate_feed_params({"heartbeat_interval": 15, "stale_after": 10})
        assert [e.field for e in errors] == ["feed.stale_after"]

    def test_power_threshold_range(self):
        errors = ConfigValidator.validate_config({"over_under": {"power_threshold": 120}})
        assert errors[0].field == "over_under.power_threshold"
        assert errors[0].value == 120

    def test_allowed_digits(self):
        errors = ConfigValidator.validate_digit_params({"allowed_digits": [2, 10]})
        assert errors[0].field == "differs.allowed_digits"
        assert ConfigValidator.validate_digit_params({"allowed_digits": []})

    def test_trade_params(self):
        errors = ConfigValidator.validate_trade_params({
            "base_stake": -1,
            "martingale_multiplier": 0.9,
            "stop_loss": -5,
            "tp_sl_enabled": "yes",
        })
        assert len(errors) == 4

    def test_risk_params(self):
        errors = ConfigValidator.validate_config({"risk": {
            "account_balance": 0,
            "max_daily_loss": 500.0,
            "max_drawdown": 150,
        }})
        assert [e.field for e in errors] == ["risk.account_balance", "risk.max_drawdown"]

    def test_booleans_are_not_numbers(self):
        errors = ConfigValidator.validate_trade_params({"base_stake": True})
        assert errors[0].field == "trade.base_stake"

    def test_analytics_params(self):
        assert ConfigValidator.validate_analytics_params({"default_pip_size": None}) == []
        errors = ConfigValidator.validate_analytics_params({"window_size": 0})
        assert errors[0].field == "analytics.window_size"
