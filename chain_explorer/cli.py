"""
Chain Explorer - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the multi-chain explorer.

- Provides argparse-based CLI
- One subcommand per public explorer operation
- Loads API keys from the environment (.env supported)
- Prints normalized entities as JSON

============================================================
USAGE
============================================================
python -m chain_explorer.cli detect 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
python -m chain_explorer.cli address bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh --chain bitcoin
python -m chain_explorer.cli analytics --chain ethereum --window 24h
python -m chain_explorer.cli serve --port 8080

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from aiohttp import web

from chain_explorer.analytics import WINDOWS
from chain_explorer.api import ExplorerEncoder, create_explorer_app, error_status
from chain_explorer.config import get_config
from chain_explorer.exceptions import ExplorerError
from chain_explorer.service import ExplorerService


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chain-explorer",
        description="Multi-chain blockchain explorer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s detect 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
  %(prog)s search 0x742d35Cc6634C0532925a3b844Bc454e4438f44e --max 3
  %(prog)s tx <hash> --chain ethereum
  %(prog)s block latest --chain solana
  %(prog)s large --chain ethereum --min-value 100
  %(prog)s validate-keys
        """
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    def chain_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("--chain", "-c", required=True, help="Chain id, e.g. ethereum")
        return sub

    # --------------------------------------------------------
    # Detection & Search
    # --------------------------------------------------------
    detect = commands.add_parser("detect", help="Rank likely chains for a query (offline)")
    detect.add_argument("query")

    search = commands.add_parser("search", help="Look a query up on its most likely chains")
    search.add_argument("query")
    search.add_argument("--max", type=int, default=None, help="Maximum candidate chains")

    # --------------------------------------------------------
    # Entity Lookups
    # --------------------------------------------------------
    chain_command("address", "Address balance and recent activity").add_argument("address")
    chain_command("tx", "Transaction details").add_argument("hash")
    chain_command("block", "Block by height, or 'latest'").add_argument("number", nargs="?", default="latest")
    chain_command("token", "Token metadata").add_argument("address")

    # --------------------------------------------------------
    # Feeds & Analytics
    # --------------------------------------------------------
    latest = chain_command("latest", "Latest transactions")
    latest.add_argument("--limit", type=int, default=20)

    large = chain_command("large", "Large recent transactions")
    large.add_argument("--min-value", type=str, default=None, help="Native units (default: chain threshold)")
    large.add_argument("--limit", type=int, default=20)

    analytics = chain_command("analytics", "Network analytics from recent blocks")
    analytics.add_argument("--window", choices=WINDOWS, default="24h")

    chain_command("stats", "Latest block and gas price tiers")

    # --------------------------------------------------------
    # Configuration & Serving
    # --------------------------------------------------------
    commands.add_parser("chains", help="List configured chains")
    commands.add_parser("validate-keys", help="Validate configured API keys")

    serve = commands.add_parser("serve", help="Run the read-only HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--prefix", default="", help="Mount the API under this path prefix")

    return parser


# ============================================================
# OUTPUT
# ============================================================

def print_json(data: Any) -> None:
    print(json.dumps(data, cls=ExplorerEncoder, indent=2))


def print_banner(args: argparse.Namespace) -> None:
    """Print startup banner."""
    print()
    print("=" * 60)
    print("  CHAIN EXPLORER")
    print("  Multi-chain Read-only API")
    print("=" * 60)
    print(f"  Listen:     http://{args.host}:{args.port}{args.prefix or '/'}")
    print(f"  Chains:     {len(get_config().chains)}")
    print(f"  Log Level:  {args.log_level}")
    print("=" * 60)
    print()


# ============================================================
# COMMANDS
# ============================================================

async def run_command(service: ExplorerService, args: argparse.Namespace) -> Any:
    """Dispatch a lookup subcommand and return its result."""
    command = args.command
    if command == "detect":
        return service.detect_chains(args.query)
    if command == "search":
        return await service.search(args.query, args.max)
    if command == "address":
        return await service.get_address_info(args.address, args.chain)
    if command == "tx":
        return await service.get_transaction_info(args.hash, args.chain)
    if command == "block":
        return await service.get_block_info(args.number, args.chain)
    if command == "token":
        return await service.get_token_info(args.address, args.chain)
    if command == "latest":
        return await service.get_latest_transactions(args.chain, args.limit)
    if command == "large":
        return await service.get_large_transactions(args.chain, args.min_value, args.limit)
    if command == "analytics":
        return await service.get_analytics(args.chain, args.window)
    if command == "stats":
        return await service.get_chain_stats(args.chain)
    if command == "chains":
        return service.list_chains()
    if command == "validate-keys":
        return await service.validate_api_keys()
    raise ValueError(f"Unknown command: {command}")


async def serve(service: ExplorerService, args: argparse.Namespace) -> None:
    app = create_explorer_app(service)
    if args.prefix:
        root = web.Application()
        root.add_subapp(args.prefix, app)
        app = root

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, args.host, args.port)
    await site.start()
    logger.info(f"Explorer API listening on {args.host}:{args.port}")
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace) -> int:
    """
    Async main entry point.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    async with ExplorerService() as service:
        try:
            if args.command == "serve":
                await serve(service, args)
                return 0
            print_json(await run_command(service, args))
            return 0
        except (ExplorerError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2 if error_status(e) == 404 else 1
        except Exception as e:
            logging.error(f"Fatal error: {e}", exc_info=True)
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        print_banner(args)

    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
