"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_feed_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate feed connection parameters."""
        errors = []

        for name in ("handshake_timeout", "request_timeout", "heartbeat_interval",
                     "stale_after", "reconnect_base_delay", "reconnect_max_delay"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=f"feed.{name}",
                        message="Must be a positive number",
                        value=value
                    ))

        if "reconnect_factor" in params:
            value = params["reconnect_factor"]
            if not _is_number(value) or value < 1:
                errors.append(ValidationError(
                    field="feed.reconnect_factor",
                    message="Must be a number >= 1",
                    value=value
                ))

        if "max_reconnect_attempts" in params:
            value = params["max_reconnect_attempts"]
            if not isinstance(value, int) or value <= 0:
                errors.append(ValidationError(
                    field="feed.max_reconnect_attempts",
                    message="Must be a positive integer",
                    value=value
                ))

        # Liveness check must leave room for at least one heartbeat
        interval = params.get("heartbeat_interval")
        stale = params.get("stale_after")
        if _is_number(interval) and _is_number(stale) and stale <= interval:
            errors.append(ValidationError(
                field="feed.stale_after",
                message="Must be greater than heartbeat_interval",
                value=stale
            ))

        return errors

    @staticmethod
    def validate_analytics_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate digit analytics parameters."""
        errors = []

        if "window_size" in params:
            value = params["window_size"]
            if not isinstance(value, int) or value <= 0:
                errors.append(ValidationError(
                    field="analytics.window_size",
                    message="Must be a positive integer",
                    value=value
                ))

        if "default_pip_size" in params:
            value = params["default_pip_size"]
            if value is not None and (not isinstance(value, int) or value < 0):
                errors.append(ValidationError(
                    field="analytics.default_pip_size",
                    message="Must be null or a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_power_thresholds(section: str, params: dict[str, Any]) -> list[ValidationError]:
        """Validate percentage thresholds of the parity and range bots."""
        errors = []

        for name in ("power_threshold", "min_power"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0 or value > 100:
                    errors.append(ValidationError(
                        field=f"{section}.{name}",
                        message="Must be a percentage between 0 and 100",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_digit_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the differs bot digit filter."""
        errors = []

        if "allowed_digits" in params:
            value = params["allowed_digits"]
            if (not isinstance(value, (list, tuple)) or not value
                    or any(not isinstance(d, int) or d < 0 or d > 9 for d in value)):
                errors.append(ValidationError(
                    field="differs.allowed_digits",
                    message="Must be a non-empty list of digits 0-9",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_trade_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate stake management parameters."""
        errors = []

        if "base_stake" in params:
            value = params["base_stake"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="trade.base_stake",
                    message="Must be a positive number",
                    value=value
                ))

        if "martingale_multiplier" in params:
            value = params["martingale_multiplier"]
            if not _is_number(value) or value < 1:
                errors.append(ValidationError(
                    field="trade.martingale_multiplier",
                    message="Must be a number >= 1",
                    value=value
                ))

        if "max_consecutive_losses" in params:
            value = params["max_consecutive_losses"]
            if not isinstance(value, int) or value <= 0:
                errors.append(ValidationError(
                    field="trade.max_consecutive_losses",
                    message="Must be a positive integer",
                    value=value
                ))

        for name in ("max_loss_limit", "max_exposure", "take_profit", "stop_loss"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=f"trade.{name}",
                        message="Must be a non-negative number",
                        value=value
                    ))

        if "tp_sl_enabled" in params and not isinstance(params["tp_sl_enabled"], bool):
            errors.append(ValidationError(
                field="trade.tp_sl_enabled",
                message="Must be a boolean",
                value=params["tp_sl_enabled"]
            ))

        return errors

    @staticmethod
    def validate_risk_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate session risk limits."""
        errors = []

        if "account_balance" in params:
            value = params["account_balance"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="risk.account_balance",
                    message="Must be a positive number",
                    value=value
                ))

        if "max_daily_loss" in params:
            value = params["max_daily_loss"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="risk.max_daily_loss",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "max_drawdown" in params:
            value = params["max_drawdown"]
            if not _is_number(value) or not 0 < value <= 100:
                errors.append(ValidationError(
                    field="risk.max_drawdown",
                    message="Must be a percentage in (0, 100]",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "feed" in config:
            errors.extend(ConfigValidator.validate_feed_params(config["feed"]))

        if "analytics" in config:
            errors.extend(ConfigValidator.validate_analytics_params(config["analytics"]))

        for section in ("even_odd", "over_under"):
            if section in config:
                errors.extend(ConfigValidator.validate_power_thresholds(section, config[section]))

        if "differs" in config:
            errors.extend(ConfigValidator.validate_digit_params(config["differs"]))

        if "trade" in config:
            errors.extend(ConfigValidator.validate_trade_params(config["trade"]))

        if "risk" in config:
            errors.extend(ConfigValidator.validate_risk_params(config["risk"]))

        return errors
