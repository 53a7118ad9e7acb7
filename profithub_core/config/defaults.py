"""Default configuration parameters for the Profithub core."""

from dataclasses import dataclass, field
from typing import Optional


DERIV_APP_ID = 1089
DERIV_WS_URL = "wss://ws.derivws.com/websockets/v3?app_id={app_id}"


@dataclass(frozen=True)
class FeedParams:
    """Quote feed connection parameters."""
    app_id: int = DERIV_APP_ID
    url: Optional[str] = None                        # Overrides the Deriv URL when set

    # Handshake and requests
    handshake_timeout: float = 10.0                  # Seconds to wait for the socket to open
    request_timeout: float = 15.0                    # Default request/response timeout
    active_symbols_timeout: float = 10.0             # Falls back to defaults after this

    # Liveness
    heartbeat_interval: float = 15.0                 # Ping cadence
    stale_after: float = 30.0                        # Silence before the socket is recycled

    # Reconnection backoff
    reconnect_base_delay: float = 2.0
    reconnect_factor: float = 1.5
    reconnect_max_delay: float = 30.0
    max_reconnect_attempts: int = 10
    reconnect_cooldown: float = 60.0                 # Pause after attempts are exhausted

    # Diagnostics
    connection_log_size: int = 100

    def resolve_url(self) -> str:
        """Return the socket URL for this configuration."""
        return self.url or DERIV_WS_URL.format(app_id=self.app_id)


@dataclass(frozen=True)
class AnalyticsParams:
    """Digit analytics window parameters."""
    window_size: int = 100                           # Rolling digit window capacity
    last_digits_count: int = 15                      # Digits exposed on each snapshot
    power_history_size: int = 10                     # Per-digit percentage history
    balanced_gap: float = 15.0                       # Max strongest/weakest gap for balance
    stable_band: float = 1.0                         # Percentage change treated as stable
    default_pip_size: Optional[int] = None           # None = use the quote's own decimals


@dataclass(frozen=True)
class EvenOddParams:
    """Even/odd bot thresholds."""
    power_threshold: float = 55.0                    # Dominant parity percentage to act on
    min_power: float = 50.0


@dataclass(frozen=True)
class OverUnderParams:
    """Over/under bot thresholds."""
    power_threshold: float = 55.0
    min_power: float = 50.0
    over_barrier: int = 4                            # DIGITOVER 4 wins on 5-9
    under_barrier: int = 5                           # DIGITUNDER 5 wins on 0-4


@dataclass(frozen=True)
class DiffersParams:
    """Differs bot filter."""
    allowed_digits: tuple = (2, 3, 4, 5, 6, 7)
    excluded_top: int = 3                            # Skip the N most frequent digits
    trend_multiplier: float = 5.0
    max_confidence: float = 85.0


@dataclass(frozen=True)
class MatchesParams:
    """Matches bot run limits."""
    max_runs: int = 7
    top_digits: int = 3
    base_confidence: float = 80.0
    max_confidence: float = 95.0


@dataclass(frozen=True)
class RiseFallParams:
    """Rise/fall bot price streak thresholds."""
    min_streak: int = 3
    base_confidence: float = 50.0
    streak_weight: float = 10.0
    max_confidence: float = 90.0


@dataclass(frozen=True)
class GatingParams:
    """Loss-streak gating shared by every bot."""
    max_consecutive_losses: int = 3                  # Bot pauses after this many losses
    loss_penalty: float = 5.0                        # Confidence points removed per loss


@dataclass(frozen=True)
class TradeParams:
    """Stake management parameters."""
    base_stake: float = 1.0
    martingale_multiplier: float = 1.5
    max_loss_limit: float = 100.0
    max_consecutive_losses: int = 5
    auto_switch_on_max_loss: bool = True
    tp_sl_enabled: bool = False
    take_profit: float = 50.0
    stop_loss: float = 50.0
    max_exposure: float = 50.0                       # Sum of open stakes allowed


@dataclass(frozen=True)
class RiskParams:
    """Session risk limits."""
    account_balance: float = 1000.0                  # Capital the session trades from
    max_daily_loss: float = 1000.0
    max_drawdown: float = 20.0                       # Percent of peak equity


@dataclass(frozen=True)
class EngineParams:
    """Trading engine parameters."""
    max_recent_trades: int = 50
    default_active_bots: tuple = ()


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    feed: FeedParams
    analytics: AnalyticsParams
    even_odd: EvenOddParams
    over_under: OverUnderParams
    differs: DiffersParams
    matches: MatchesParams
    rise_fall: RiseFallParams
    gating: GatingParams
    trade: TradeParams
    risk: RiskParams
    engine: EngineParams
    pip_sizes: dict = field(default_factory=dict)    # symbol -> decimals


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        feed=FeedParams(),
        analytics=AnalyticsParams(),
        even_odd=EvenOddParams(),
        over_under=OverUnderParams(),
        differs=DiffersParams(),
        matches=MatchesParams(),
        rise_fall=RiseFallParams(),
        gating=GatingParams(),
        trade=TradeParams(),
        risk=RiskParams(),
        engine=EngineParams(),
    )
