"""Command-line interface for the ALP client."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .errors import AlpClientError
from .logging_setup import configure_logging
from .orchestrator import OperationRecord
from .services import AlpSession


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="alp-client",
        description="ALP stablecoin position client",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Refresh state and print the position report")
    sub.add_parser("prices", help="Run one price aggregation cycle")

    watch_parser = sub.add_parser("watch", help="Continuous refresh loop")
    watch_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in seconds (overrides config)",
    )

    open_parser = sub.add_parser("open", help="Open a new collateral position")
    open_parser.add_argument("collateral_amount")
    open_parser.add_argument("debt_amount")
    open_parser.add_argument("--collateral", default="SUI")

    for name, help_text in (
        ("add-collateral", "Deposit more collateral into a position"),
        ("mint", "Mint ALP against a position"),
        ("burn", "Burn ALP to repay position debt"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("position_id")
        p.add_argument("amount")
        p.add_argument("--collateral", default="SUI")

    withdraw_parser = sub.add_parser("withdraw", help="Withdraw collateral")
    withdraw_parser.add_argument("position_id")
    withdraw_parser.add_argument("amount", nargs="?", default=None)
    withdraw_parser.add_argument("--all", action="store_true", dest="withdraw_all")
    withdraw_parser.add_argument("--collateral", default="SUI")

    return parser


async def _mutate(session: AlpSession, args: argparse.Namespace) -> OperationRecord:
    orchestrator = session.orchestrator
    if args.command == "open":
        return await orchestrator.open_position(
            args.collateral_amount, args.debt_amount, args.collateral
        )
    if args.command == "add-collateral":
        return await orchestrator.add_collateral(
            args.position_id, args.amount, args.collateral
        )
    if args.command == "mint":
        return await orchestrator.mint(args.position_id, args.amount, args.collateral)
    if args.command == "burn":
        return await orchestrator.burn(args.position_id, args.amount, args.collateral)
    if args.withdraw_all:
        return await orchestrator.withdraw_all(args.position_id, args.collateral)
    return await orchestrator.withdraw_partial(
        args.position_id, args.amount, args.collateral
    )


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    session = AlpSession(config)

    if args.command == "status":
        await session.refresh()
        print(session.format_report())
    elif args.command == "prices":
        await session.prices.refresh()
        print(session.format_prices())
    elif args.command == "watch":
        await session.watch(args.interval)
    else:
        try:
            record = await _mutate(session, args)
        except AlpClientError as e:
            print(f"{args.command} failed: {e}", file=sys.stderr)
            return 1
        print(f"{record.operation}: {record.status.value} (digest {record.digest})")
        await session.prices.refresh()
        print(session.format_report())
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "withdraw" and (args.amount is None) != args.withdraw_all:
        parser.error("withdraw takes either an AMOUNT or --all")

    sys.exit(asyncio.run(_run(args)))
