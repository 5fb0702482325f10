"""Main entry point for tradesync.

Usage:
    tradesync sync --config conf/tradesync.yaml [--session NAME] [--symbol SYMBOL] [--since YYYY-MM-DD]
    tradesync orders list --config conf/tradesync.yaml --symbol BTCUSDT [--status open|history]
    tradesync orders place --config ... --symbol BTCUSDT --side buy --order-type limit --size 0.001 --price 42000
    tradesync orders cancel --config ... --symbol BTCUSDT --order-id 1456011470574347520
    tradesync stream --config ... --session NAME --symbol BTCUSDT [--public-only] [--depth 50]
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Optional

from sync_db import redact_db_url
from tradecore.orders import CancelOrderRequest, build_submit_order

from tradesync.config import TradesyncConfig, load_config
from tradesync.environment import Environment, ExchangeSession
from tradesync.errors import ConfigError
from tradesync.reporter import print_orders, print_response
from tradesync.streaming import StreamRunner
from tradesync.sync import SyncOrchestrator, resolve_start_time


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record):
        log_dict = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_dict)


def setup_logging(json_file: Optional[str] = None, debug: bool = False) -> None:
    """Set up logging with console and optional JSON file output.

    Args:
        json_file: Path to JSON log file (optional).
        debug: Log DEBUG and up instead of INFO.
    """
    level = logging.DEBUG if debug else logging.INFO

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    if json_file:
        try:
            file_handler = logging.FileHandler(json_file)
        except OSError as e:
            logging.warning(f"Failed to set up JSON logging: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonFormatter())
            root_logger.addHandler(file_handler)

    # Reduce noise from libraries
    logging.getLogger("pybit").setLevel(logging.WARNING)
    logging.getLogger("websocket").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def _pick_session(environment: Environment, name: Optional[str]) -> ExchangeSession:
    """Named session, or the only configured one."""
    if name:
        return environment.session(name)
    sessions = environment.sessions
    if len(sessions) == 1:
        return sessions[0]
    raise ConfigError("--session is required unless exactly one session is configured")


def _parse_decimal(value: Optional[str], flag: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"{flag} must be a number, got {value!r}") from None


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


async def run_sync(args: argparse.Namespace) -> int:
    """`tradesync sync`: pull trade and order history into the database."""
    environment = None
    try:
        config: TradesyncConfig = load_config(args.config)
        start_time = resolve_start_time(args.since, lookback_months=config.sync.default_lookback_months)
        environment = Environment.from_config(config)
        if config.database_url:
            logger.info(f"Database: {redact_db_url(config.database_url)}")

        await SyncOrchestrator(environment).run(
            session_name=args.session,
            symbol=args.symbol,
            start_time=start_time,
        )
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        return 1
    finally:
        if environment is not None:
            environment.close()
    return 0


def run_orders(args: argparse.Namespace) -> int:
    """`tradesync orders list|place|cancel`."""
    try:
        config = load_config(args.config)
        session = _pick_session(Environment.from_config(config, with_database=False), args.session)
        exchange = session.exchange

        if args.action == "list":
            if args.status == "open":
                print_orders(exchange.query_open_orders(args.symbol.upper()), f"{session.name} open orders")
            else:
                until = datetime.now(UTC)
                orders, _ = exchange.query_closed_orders(
                    args.symbol.upper(), until - exchange.max_history_window, until
                )
                print_orders(orders, f"{session.name} order history (last {exchange.max_history_window.days} days)")

        elif args.action == "place":
            order = build_submit_order(
                order_type=args.order_type,
                symbol=args.symbol,
                side=args.side,
                quantity=_parse_decimal(args.size, "--size"),
                price=_parse_decimal(args.price, "--price"),
                client_order_id=args.client_order_id,
            )
            print_response("Order placed", exchange.submit_order(order))

        elif args.action == "cancel":
            request = CancelOrderRequest(
                symbol=args.symbol,
                order_id=args.order_id,
                client_order_id=args.client_order_id,
            )
            print_response("Order canceled", exchange.cancel_order(request))

    except Exception as e:
        logger.error(f"orders {args.action} failed: {e}")
        return 1
    return 0


async def run_stream(args: argparse.Namespace) -> int:
    """`tradesync stream`: log live order book events until SIGINT/SIGTERM."""
    try:
        config = load_config(args.config)
        session = _pick_session(Environment.from_config(config, with_database=False), args.session)
        runner = StreamRunner(session, args.symbol, public_only=args.public_only, depth=args.depth)

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)

        await runner.run(shutdown_event)
    except Exception as e:
        logger.error(f"Stream failed: {e}")
        return 1
    return 0


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------


def _add_config_arguments(parser: argparse.ArgumentParser, session_required: bool = False) -> None:
    parser.add_argument("--config", "-c", type=str, required=True, help="Path to YAML configuration file")
    parser.add_argument(
        "--session",
        type=str,
        required=session_required,
        default=None,
        help="Session name from the configuration",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradesync",
        description="Tradesync - exchange trade/order history sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-file", type=str, default=None, help="Path to JSON log file (optional)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Sync trade and order history")
    _add_config_arguments(sync)
    sync.add_argument("--symbol", type=str, default=None, help="Sync only this symbol (skips discovery)")
    sync.add_argument("--since", type=str, default=None, help="Start date YYYY-MM-DD (Asia/Taipei midnight)")

    orders = commands.add_parser("orders", help="List, place or cancel orders")
    actions = orders.add_subparsers(dest="action", required=True)

    list_cmd = actions.add_parser("list", help="List open orders or recent order history")
    _add_config_arguments(list_cmd)
    list_cmd.add_argument("--symbol", type=str, required=True)
    list_cmd.add_argument("--status", choices=["open", "history"], default="open")

    place_cmd = actions.add_parser("place", help="Place a limit or market order")
    _add_config_arguments(place_cmd)
    place_cmd.add_argument("--symbol", type=str, required=True)
    place_cmd.add_argument("--side", choices=["buy", "sell"], required=True)
    place_cmd.add_argument("--order-type", choices=["limit", "market"], default="limit")
    place_cmd.add_argument("--size", type=str, required=True, help="Order quantity")
    place_cmd.add_argument("--price", type=str, default=None, help="Limit price (limit orders only)")
    place_cmd.add_argument("--client-order-id", type=str, default=None)

    cancel_cmd = actions.add_parser("cancel", help="Cancel an order")
    _add_config_arguments(cancel_cmd)
    cancel_cmd.add_argument("--symbol", type=str, required=True)
    cancel_cmd.add_argument("--order-id", type=str, default=None)
    cancel_cmd.add_argument("--client-order-id", type=str, default=None)

    stream = commands.add_parser("stream", help="Stream live order book events")
    _add_config_arguments(stream, session_required=True)
    stream.add_argument("--symbol", type=str, required=True)
    stream.add_argument("--public-only", action="store_true", help="Skip authentication")
    stream.add_argument("--depth", type=int, choices=[1, 50, 200], default=None, help="Order book depth")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, set up logging and run the command.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = build_parser().parse_args(argv)
    setup_logging(json_file=args.log_file, debug=args.debug)

    if args.command == "sync":
        return asyncio.run(run_sync(args))
    if args.command == "orders":
        return run_orders(args)
    return asyncio.run(run_stream(args))


def cli() -> None:
    """Command-line interface entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    cli()
