"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    AnalyticsParams,
    DefaultConfig,
    DiffersParams,
    EngineParams,
    EvenOddParams,
    FeedParams,
    GatingParams,
    MatchesParams,
    OverUnderParams,
    RiseFallParams,
    RiskParams,
    TradeParams,
    get_default_config,
)

SECTION_TYPES = {
    "feed": FeedParams,
    "analytics": AnalyticsParams,
    "even_odd": EvenOddParams,
    "over_under": OverUnderParams,
    "differs": DiffersParams,
    "matches": MatchesParams,
    "rise_fall": RiseFallParams,
    "gating": GatingParams,
    "trade": TradeParams,
    "risk": RiskParams,
    "engine": EngineParams,
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def _load_symbols_file(self) -> dict[str, Any]:
        symbols_file = self.config_dir / "symbols.yaml"

        if not symbols_file.exists():
            return {}

        with open(symbols_file) as f:
            symbols_config = yaml.safe_load(f) or {}

        return symbols_config.get("symbols", {}) or {}

    def load_symbol_config(self, symbol: str) -> dict[str, Any]:
        """Load symbol-specific configuration overrides."""
        overrides = dict(self._load_symbols_file().get(symbol, {}) or {})
        # pip_size is symbol metadata, not a config section
        overrides.pop("pip_size", None)
        overrides.pop("display_name", None)
        return overrides

    def load_pip_sizes(self) -> dict[str, int]:
        """Map every configured symbol to its quoted decimals."""
        pip_sizes = {}
        for symbol, entry in self._load_symbols_file().items():
            if isinstance(entry, dict) and entry.get("pip_size") is not None:
                pip_sizes[symbol] = int(entry["pip_size"])
        return pip_sizes

    def merge_config(
        self,
        symbol: Optional[str] = None,
        session_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Session overrides (highest priority)
        2. Symbol-specific overrides
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        if symbol:
            config = self._deep_merge(config, self.load_symbol_config(symbol))

        if session_overrides:
            config = self._deep_merge(config, session_overrides)

        config["pip_sizes"] = {**self.load_pip_sizes(), **config.get("pip_sizes", {})}
        return config

    def load(
        self,
        symbol: Optional[str] = None,
        session_overrides: Optional[dict[str, Any]] = None
    ) -> DefaultConfig:
        """Merge configuration and build a typed DefaultConfig from it."""
        return self.build_config(self.merge_config(symbol, session_overrides))

    @staticmethod
    def build_config(merged: dict[str, Any]) -> DefaultConfig:
        """Convert a merged configuration dictionary back into dataclasses."""
        sections = {}
        for name, section_type in SECTION_TYPES.items():
            values = dict(merged.get(name, {}) or {})
            known = {f.name for f in fields(section_type)}
            kwargs = {}
            for key, value in values.items():
                if key not in known:
                    continue
                # YAML has no tuples
                kwargs[key] = tuple(value) if isinstance(value, list) else value
            sections[name] = section_type(**kwargs)

        return DefaultConfig(pip_sizes=dict(merged.get("pip_sizes", {}) or {}), **sections)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, dict):
                    result[field_name] = dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
