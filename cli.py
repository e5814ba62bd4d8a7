#!/usr/bin/env python3
"""
Market Thesis Engine - Command Line Interface

Replays recorded indicator snapshots through the thesis synthesizer and
shows the resulting thesis, conviction playbook and primary signal per tick.

Usage:
    python cli.py --input ticks.jsonl
    python cli.py --input ticks.jsonl --phase Opening
    python cli.py --input ticks.jsonl --format json --output results.json

Input format:
    One JSON object per line using the upstream labels, e.g.
    {"security_id": "13", "symbol": "NIFTY 50", "price_vs_vwap": "Above VWAP",
     "ema_signal_5min": "Bullish Cross", "market_structure": "Trending Up", ...}
"""

import argparse
import asyncio
import sys

# Load environment variables FIRST before any imports that use settings
from dotenv import load_dotenv
load_dotenv()

from rich.console import Console

from thesis_engine.cli.formatter import OutputFormatter
from thesis_engine.cli.replayer import SnapshotReplayer, load_catalog, load_snapshots
from thesis_engine.config.settings import settings
from thesis_engine.exceptions import ThesisEngineError
from thesis_engine.signal_generation.core import MarketPhase
from thesis_engine.utils.logging import configure_logging

console = Console()
formatter = OutputFormatter()

VERBOSITY_LEVELS = {0: "ERROR", 1: "WARNING", 2: "INFO", 3: "DEBUG"}


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Market Thesis Engine - Snapshot Replay CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --input ticks.jsonl                     # Replay with the session clock
  %(prog)s --input ticks.jsonl --phase Opening     # Force the opening phase
  %(prog)s --input ticks.jsonl --format json       # JSON output
  %(prog)s --input ticks.jsonl --catalog my.json   # Custom driver catalog
  %(prog)s --input ticks.jsonl --signal-log out.jsonl --no-notify

Verbosity Levels:
  %(prog)s --input ticks.jsonl --verbose=0         # Errors only
  %(prog)s --input ticks.jsonl --verbose=2         # Info, including transitions
  %(prog)s --input ticks.jsonl --verbose=3         # Debug
        """,
    )

    parser.add_argument(
        "--input",
        "-i",
        required=True,
        help="JSONL file with one snapshot per line",
    )

    parser.add_argument(
        "--phase",
        choices=[phase.value for phase in MarketPhase],
        help="Fixed market phase (default: derived from snapshot timestamps)",
    )

    parser.add_argument(
        "--catalog",
        "-c",
        help="JSON file with the driver catalog (default: built-in playbooks)",
    )

    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Save JSON results to file",
    )

    parser.add_argument(
        "--signal-log",
        default=settings.emission.SIGNAL_LOG_PATH,
        help=f"JSONL file for emitted transitions (default: {settings.emission.SIGNAL_LOG_PATH})",
    )

    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Do not write emitted transitions to the signal log",
    )

    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not send notifications for emitted transitions",
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print replay statistics after the results",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        type=int,
        choices=sorted(VERBOSITY_LEVELS),
        default=1,
        help="Verbosity level (default: 1)",
    )

    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main CLI entry point."""
    args = parse_arguments(argv)

    configure_logging(VERBOSITY_LEVELS[args.verbose], stream=sys.stderr)

    try:
        snapshots = load_snapshots(args.input)
        catalog = load_catalog(args.catalog)
    except (OSError, ValueError, ThesisEngineError) as e:
        formatter.print_error(str(e))
        return 1

    if not snapshots:
        formatter.print_warning(f"No snapshots found in {args.input}")
        return 0

    replayer = SnapshotReplayer(
        catalog,
        market_phase=args.phase,
        signal_log_path=None if args.no_persist else args.signal_log,
        notify=not args.no_notify,
    )

    try:
        results = await replayer.replay(snapshots)
    except KeyboardInterrupt:
        console.print("\n[yellow]Replay interrupted by user[/yellow]")
        return 0

    if args.format == "table":
        formatter.format_table(results)
    else:
        console.print(formatter.format_json(results))

    if args.stats:
        formatter.format_statistics(replayer.get_statistics())

    if args.output:
        with open(args.output, "w") as f:
            f.write(formatter.format_json(results))
        if args.verbose > 0:
            formatter.print_success(f"Results saved to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
