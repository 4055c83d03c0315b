"""Command-line interface for the hedge bot."""
from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal

from .config import load_config
from .logging_setup import configure_logging
from .services import HedgeBot


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hedgebot",
        description="Delta-neutral liquidity bot for Suilend and Cetus",
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

    run_parser = sub.add_parser("run", help="Continuous rebalancing loop")
    run_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Polling interval in seconds (overrides config)",
    )

    open_parser = sub.add_parser("open-position", help="Open a hedged LP position")
    open_parser.add_argument("--pool", required=True, help="Cetus pool object id")
    open_parser.add_argument("--lower", required=True, type=Decimal, help="Lower price")
    open_parser.add_argument("--upper", required=True, type=Decimal, help="Upper price")
    open_parser.add_argument(
        "--hedge-pct",
        required=True,
        type=Decimal,
        help="Loan as a fraction of the collateral, e.g. 0.5",
    )
    open_parser.add_argument(
        "--amount", required=True, type=Decimal, help="Stable amount to commit"
    )
    open_parser.add_argument(
        "--stable", default=None, help="Stable asset symbol (default: from the pool)"
    )

    close_parser = sub.add_parser("close-position", help="Close an LP position")
    close_parser.add_argument("position_id", help="Cetus position object id")

    swap_parser = sub.add_parser("swap", help="Standalone wallet swap")
    swap_parser.add_argument("--from", dest="from_asset", required=True)
    swap_parser.add_argument("--to", dest="to_asset", required=True)
    swap_parser.add_argument("--amount", required=True, type=Decimal)
    swap_parser.add_argument(
        "--exact-out",
        action="store_true",
        help="Treat --amount as the exact output instead of the input",
    )

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    bot = HedgeBot(config)

    if args.command == "run":
        await bot.run_continuous(args.interval)
    elif args.command == "open-position":
        await bot.open_position(
            args.pool, args.lower, args.upper, args.hedge_pct, args.amount, args.stable
        )
    elif args.command == "close-position":
        await bot.close_position(args.position_id)
    elif args.command == "swap":
        await bot.swap(args.from_asset, args.to_asset, args.amount, args.exact_out)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
