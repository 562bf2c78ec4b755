#!/usr/bin/env python3
"""
Walks the three conditional strategies through their lifecycle against the
simulated settlement engine and prints the state after every step.

Usage:
    python scripts/demo_lifecycle.py
    python scripts/demo_lifecycle.py --strategy iceberg --log-level DEBUG
"""
import argparse

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from superorder.core.clock import ManualClock
from superorder.core.config import Settings
from superorder.core.fixed_point import from_fixed, to_fixed
from superorder.core.logging_config import setup_logging
from superorder.layer import build_layer
from superorder.schemas.swap import SwapInstructions
from superorder.services.price_feeds.static_feed import StaticPriceFeed
from superorder.services.settlement.simulated import SimulatedSettlementEngine, SimulatedSwapVenue

ADMIN = "0xadmin"
MAKER = "0xmaker"
TAKER = "0xtaker"
KEEPER = "0xkeeper"

console = Console()


def build_demo():
    clock = ManualClock()
    feed = StaticPriceFeed(clock=clock, default_decimals=8)
    feed.set_price("ETH/USD", to_fixed("4000", 8))
    feed.set_price("USDC/USD", to_fixed("1", 8))

    settlement = SimulatedSettlementEngine()
    config = Settings(OCO_CANCELLATION_DELAY_SECONDS=30, TWAP_FAST_WINDOW_SECONDS=120)
    layer = build_layer(ADMIN, feed, settlement, clock=clock, config=config)
    settlement.connect(layer)
    layer.scheduler.register_keeper(ADMIN, KEEPER, reward_per_action=1)
    layer.venues.approve(ADMIN, SimulatedSwapVenue("sim-dex", rate=to_fixed("4000")))

    settlement.deposit(MAKER, "WETH", to_fixed("50"))
    settlement.deposit(TAKER, "USDC", to_fixed("200000"))
    return layer, feed, clock


def show_balances(layer, title):
    table = Table(title=title)
    table.add_column("Holder")
    table.add_column("WETH", justify="right")
    table.add_column("USDC", justify="right")
    for holder in (MAKER, TAKER):
        table.add_row(
            holder,
            str(from_fixed(layer.settlement.balance_of(holder, "WETH"))),
            str(from_fixed(layer.settlement.balance_of(holder, "USDC"))),
        )
    console.print(table)


def run_keeper(layer):
    has_work, payload = layer.scheduler.check_upkeep()
    if not has_work:
        console.print("[dim]keeper: nothing to do[/]")
        return
    report = layer.scheduler.perform_work(KEEPER, payload)
    console.print(
        f"keeper: {report.succeeded} succeeded, {report.skipped} skipped, "
        f"{report.failed} failed, reward {report.reward}"
    )


def demo_stop_loss(layer, feed, clock):
    console.print(Panel("[bold]Stop-loss[/]: sell 1 WETH once ETH falls below 3800 USDC", border_style="cyan"))
    order = layer.settlement.register_order(MAKER, "WETH", "USDC", to_fixed("1"), to_fixed("3800"), salt=1)
    layer.settlement.attach(order, "trigger")
    layer.triggers.configure(MAKER, order, {
        "price_source_a": "ETH/USD",
        "price_source_b": "USDC/USD",
        "threshold_price": to_fixed("3800"),
        "direction": "falling",
    })

    for price in ("3950", "3850", "3700"):
        clock.advance(60)
        feed.set_price("ETH/USD", to_fixed(price, 8))
        triggered, smoothed = layer.triggers.is_triggered(order)
        console.print(f"ETH at {price}: smoothed {from_fixed(smoothed)}, triggered={triggered}")
        run_keeper(layer)

    instructions = SwapInstructions(
        venue="sim-dex", asset_in="WETH", asset_out="USDC", amount_in=to_fixed("1"), recipient=MAKER, executor=KEEPER,
    )
    filled = layer.settlement.fill(KEEPER, order, to_fixed("1"), instructions)
    console.print(f"filled {from_fixed(filled)} WETH, status {layer.triggers.get(order).status.value}")
    show_balances(layer, "After stop-loss")


def demo_iceberg(layer, feed, clock):
    console.print(Panel("[bold]Iceberg[/]: 20 WETH revealed 2 at a time", border_style="cyan"))
    order = layer.settlement.register_order(MAKER, "WETH", "USDC", to_fixed("20"), to_fixed("80000"), salt=2)
    layer.settlement.attach(order, "iceberg")
    layer.disclosures.configure(MAKER, order, {
        "total_amount": to_fixed("20"),
        "base_chunk_size": to_fixed("2"),
        "strategy": "fixed",
    })

    while not layer.disclosures.is_completed(order)[0]:
        chunk = layer.disclosures.current_chunk(order)
        filled = layer.settlement.fill(TAKER, order, to_fixed("5"))
        console.print(f"visible {from_fixed(chunk.size)}, taker filled {from_fixed(filled)}")
        clock.advance(30)
        run_keeper(layer)

    state = layer.disclosures.get(order)
    console.print(f"completed after {state.reveal_count} chunks")
    show_balances(layer, "After iceberg")


def demo_bracket(layer, feed, clock):
    console.print(Panel("[bold]OCO bracket[/]: take-profit and stop-loss on 5 WETH", border_style="cyan"))
    take_profit = layer.settlement.register_order(MAKER, "WETH", "USDC", to_fixed("5"), to_fixed("22500"), salt=3)
    stop_loss = layer.settlement.register_order(MAKER, "WETH", "USDC", to_fixed("5"), to_fixed("17500"), salt=4)
    layer.settlement.attach(take_profit, "oco")
    layer.settlement.attach(stop_loss, "oco")
    link = layer.pairs.link(MAKER, {"fingerprint_a": take_profit, "fingerprint_b": stop_loss, "strategy": "bracket"})

    layer.settlement.fill(TAKER, take_profit, to_fixed("5"))
    console.print(f"take-profit filled, link is {layer.pairs.get_link(link.pair_id).status.value}")
    run_keeper(layer)

    clock.advance(layer.pairs.get_link(link.pair_id).cancellation_delay + 1)
    run_keeper(layer)
    resolved = layer.pairs.get_link(link.pair_id)
    console.print(
        f"link {resolved.status.value} ({resolved.resolution.value}), "
        f"stop-loss cancelled={layer.settlement.orders[stop_loss].cancelled}"
    )
    show_balances(layer, "After bracket")


DEMOS = {
    "stop-loss": demo_stop_loss,
    "iceberg": demo_iceberg,
    "bracket": demo_bracket,
}


def main():
    parser = argparse.ArgumentParser(description="Conditional order lifecycle demo")
    parser.add_argument("--strategy", choices=sorted(DEMOS) + ["all"], default="all")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(log_level=args.log_level)
    layer, feed, clock = build_demo()
    show_balances(layer, "Initial balances")

    selected = DEMOS.values() if args.strategy == "all" else [DEMOS[args.strategy]]
    for demo in selected:
        demo(layer, feed, clock)

    console.print(f"[green]{len(layer.events.all())} events emitted[/]")


if __name__ == "__main__":
    main()
