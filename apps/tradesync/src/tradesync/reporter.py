"""Console output for the order commands.

Uses rich for color-coded terminal tables.
"""

import logging
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from tradecore.types import Order, OrderStatus, Side

logger = logging.getLogger(__name__)

console = Console()


def _format_value(val: Decimal) -> str:
    """Up to 8 decimal places, trailing zeros stripped."""
    text = f"{val:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def _side_text(side: str) -> Text:
    if side == Side.BUY:
        return Text("BUY", style="bold green")
    return Text("SELL", style="bold red")


def _status_text(status: str) -> Text:
    style = {
        OrderStatus.FILLED: "green",
        OrderStatus.CANCELED: "dim",
        OrderStatus.REJECTED: "red",
    }.get(status, "yellow")
    return Text(str(status), style=style)


def build_orders_table(orders: list[Order], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Order ID", style="white")
    table.add_column("Client ID")
    table.add_column("Symbol")
    table.add_column("Side", justify="center")
    table.add_column("Type")
    table.add_column("Price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Filled", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Updated (UTC)")

    for order in orders:
        table.add_row(
            order.order_id,
            order.client_order_id or "",
            order.symbol,
            _side_text(order.side),
            str(order.order_type),
            _format_value(order.price),
            _format_value(order.quantity),
            _format_value(order.executed_quantity),
            _status_text(order.status),
            order.updated_time.strftime("%Y-%m-%d %H:%M:%S"),
        )
    return table


def print_orders(orders: list[Order], title: str) -> None:
    if not orders:
        console.print(f"[dim]{title}: no orders[/dim]")
        return
    console.print(build_orders_table(orders, title))


def print_response(title: str, response: dict[str, Any]) -> None:
    """Print an exchange response as highlighted JSON."""
    console.rule(f"[bold]{title}[/bold]")
    console.print_json(data=response, default=str)
