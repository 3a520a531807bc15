"""Operator-facing tables rendered with rich"""

from typing import List

from rich.console import Console
from rich.table import Table

from brokerage_base import OrderRequest
from .models import CashLedger, LegResult, SyncOutcome


def order_table(orders: List[OrderRequest]) -> Table:
    table = Table(title="Proposed Orders", box=None, header_style="bold")
    table.add_column("", justify="right")
    table.add_column("Symbol", no_wrap=True)
    table.add_column("Action")
    table.add_column("Shares", justify="right")
    table.add_column("Limit Price", justify="right")
    table.add_column("Expected Cost", justify="right")

    for idx, order in enumerate(orders):
        table.add_row(
            str(idx),
            order.symbol,
            order.action.value,
            f"{order.quantity:d}",
            f"{order.limit_price:.2f}",
            f"{order.notional:.2f}",
        )
    return table


def leg_table(legs: List[LegResult]) -> Table:
    table = Table(title="Order Results", box=None, header_style="bold")
    table.add_column("", justify="right")
    table.add_column("Symbol", no_wrap=True)
    table.add_column("Action")
    table.add_column("Order ID", no_wrap=True)
    table.add_column("Status")
    table.add_column("# Filled", justify="right")
    table.add_column("# Remaining", justify="right")

    for idx, leg in enumerate(legs):
        table.add_row(
            str(idx + 1),
            leg.symbol,
            leg.action.value,
            leg.order_id,
            leg.status,
            f"{leg.quantity_filled:d}",
            f"{leg.remainder:d}",
        )
    return table


def print_orders(console: Console, orders: List[OrderRequest], ledger: CashLedger):
    console.print(order_table(orders))
    console.print(f"Cash Left: {ledger.balance:.2f}")


def print_outcome(console: Console, outcome: SyncOutcome):
    headline = f"Sync {outcome.final_state.value} after {outcome.iterations} iteration(s)"
    if outcome.abort_reason is not None:
        headline += f": {outcome.abort_reason.value}"
    console.print(headline)

    if outcome.legs:
        console.print(leg_table(outcome.legs))
    if outcome.remainders:
        console.print("Last remainder per security:")
        for symbol in sorted(outcome.remainders):
            console.print(f"  {symbol}: {outcome.remainders[symbol]}")
    if outcome.next_trade_date:
        console.print(f"Next trade date: {outcome.next_trade_date}")
