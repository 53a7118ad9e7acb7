#!/usr/bin/env python3
"""
Basic Usage Example - Profithub Digit Trading Core

This script demonstrates the basic usage of the trading engine with
simulated ticks. It shows how to:
- Initialize the engine and select bots
- Subscribe to engine events
- Process prices and act on bot signals
- Settle trades and read risk metrics

Run: python examples/basic_usage.py
Live feed: python examples/basic_usage.py --live
"""

import asyncio
import random
import sys

from profithub_core.engine import TradingEngine
from profithub_core.events import SignalsEvent, TradeResultEvent
from profithub_core.feed.connection import ConnectionManager
from profithub_core.logging import configure_logging
from profithub_core.signals.catalog import LoadStrategyRequest


def print_signals(event: SignalsEvent) -> None:
    """Print the entry signals of one tick."""
    for signal in event.signals:
        if not signal.is_entry:
            continue
        target = f" {signal.prediction}" if signal.prediction is not None else ""
        print(f"   🚨 #{event.sequence} {signal.bot_type.value}: "
              f"{signal.contract_type.value}{target} ({signal.confidence}%) - {signal.reason}")


def print_trade_result(event: TradeResultEvent) -> None:
    trade = event.trade
    metrics = event.risk_metrics
    print(f"   💰 {trade.id} {trade.result.value} {trade.profit:+.2f} | "
          f"net {metrics.net_profit:+.2f}, next stake {metrics.current_stake:.2f}")


def simulate(engine: TradingEngine, symbol: str, ticks: int, seed: int = 7) -> None:
    """Feed a random walk into the engine, trading every entry signal on paper."""
    rng = random.Random(seed)
    price = 1000.00

    for _ in range(ticks):
        price = round(price + rng.uniform(-0.5, 0.5), 2)
        outcome = engine.process_price(symbol, price, pip_size=2)

        for signal in outcome.signals:
            if not signal.is_entry:
                continue
            trade = engine.execute_bot_trade(signal.bot_type, signal)
            if trade is None:
                continue
            won = rng.random() < 0.5
            engine.record_trade_result(trade.id, "win" if won else "loss",
                                       round(trade.stake * 0.95, 2) if won else trade.stake)


async def run_live(seconds: float = 30.0) -> None:
    """Stream R_100 ticks from Deriv into the engine for a while."""
    manager = ConnectionManager()
    engine = TradingEngine(connection=manager)
    engine.load_strategy(LoadStrategyRequest("even_odd_percent"))
    engine.on_signals(print_signals)
    engine.on_connection_status(lambda e: print(f"   🔌 {e.status.value}"))

    await manager.connect()
    symbols = await manager.get_active_symbols()
    print(f"   {len(symbols)} symbols available")

    engine.watch_symbol("R_100")
    await asyncio.sleep(seconds)

    snapshot = engine.get_analysis("R_100")
    print(f"   Processed {snapshot.total_ticks} ticks, entropy {snapshot.entropy}")
    engine.close()
    await manager.disconnect()


def main():
    """Main demonstration function."""
    configure_logging(level="WARNING")
    print("🚀 Profithub Digit Trading Core - Basic Usage Demo")
    print("=" * 60)

    if "--live" in sys.argv:
        asyncio.run(run_live())
        return

    print("1. Initializing the trading engine...")
    engine = TradingEngine()
    active = engine.set_active_bots(["even_odd", "differs", "rise_fall"])
    print(f"   Active bots: {', '.join(b.value for b in active)}")
    print()

    engine.on_signals(print_signals)
    engine.on_trade_result(print_trade_result)

    print("2. Simulating 300 ticks on R_100...")
    simulate(engine, "R_100", 300)
    print()

    snapshot = engine.get_analysis("R_100")
    print("3. Digit analysis:")
    print(f"   Window: {snapshot.total_ticks} ticks, last digits {list(snapshot.last_digits)}")
    print(f"   Strongest {snapshot.strongest.digit} ({snapshot.strongest.percentage}%), "
          f"weakest {snapshot.weakest.digit} ({snapshot.weakest.percentage}%)")
    print(f"   Even {snapshot.even.percentage}% / Odd {snapshot.odd.percentage}%")
    print()

    stats = engine.get_stats()
    print("4. Session stats:")
    print(f"   Trades: {stats['total_trades']} (win rate {stats['win_rate']}%)")
    print(f"   Net profit: {stats['net_profit']:+.2f}")
    for bot, state in stats["bot_states"].items():
        if state["active"]:
            paused = " (paused)" if state["paused"] else ""
            print(f"   {bot}: {state['runs_count']} runs{paused}")
    print()

    print("✅ Demo completed successfully!")


if __name__ == "__main__":
    main()
