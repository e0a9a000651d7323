"""CLI entry point: python -m quizarena <contest.yaml>"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.text import Text

from quizarena.config import load_config
from quizarena.contest import ContestRunner
from quizarena.results import PlayerStatus


def _print_results(result) -> None:
    console = Console()

    standings = Table(title="STANDINGS", title_style="bold", expand=False)
    standings.add_column("#", justify="right")
    standings.add_column("Player", style="bold")
    standings.add_column("Score", justify="right")
    standings.add_column("Correct", justify="right")
    standings.add_column("Avg", justify="right")
    standings.add_column("Status")
    standings.add_column("Achievements", style="dim")
    for r in result.standings:
        status_style = "green" if r.status is PlayerStatus.COMPLETED else "red"
        standings.add_row(
            str(r.rank) if r.rank is not None else "-",
            r.player_id,
            str(r.total_score),
            str(r.correct_count),
            f"{r.avg_response_time_ms / 1000:.2f}s",
            Text(r.status.value, style=status_style),
            ", ".join(r.achievements),
        )
    console.print(standings)

    prizes = Table(
        title=f"PRIZES (pool {result.pool.pool_id}, net {result.pool.net_prize_pool})",
        title_style="bold",
    )
    prizes.add_column("#", justify="right")
    prizes.add_column("Player", style="bold")
    prizes.add_column("Prize", justify="right", style="yellow")
    for r in result.standings:
        if r.prize_amount > 0:
            prizes.add_row(str(r.rank), r.player_id, str(r.prize_amount))
    console.print(prizes)
    console.print(f"Total paid: {result.total_paid}")
    if result.telemetry_path:
        console.print(f"Telemetry: {result.telemetry_path}", style="dim")


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="quizarena",
        description="Simulate a timed quiz contest from a YAML config",
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to contest YAML config file",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=os.environ.get("QUIZARENA_OUTPUT_DIR"),
        help="Output directory (default: output/)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("QUIZARENA_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except (ValueError, KeyError) as e:
        print(f"Error: invalid config: {e}", file=sys.stderr)
        sys.exit(1)
    if args.output:
        config.output_dir = Path(args.output)

    print(f"Contest: {config.name} (seed={config.seed}, pool={config.pool.pool_id})")
    print(f"Players: {', '.join(config.players)}")
    print(
        f"Match: {config.match.question_count} questions, "
        f"{config.match.time_per_question_ms / 1000:g}s each"
    )
    print()

    try:
        result = ContestRunner(config).run()
    except RuntimeError as e:
        print(f"Error: cannot run contest: {e}", file=sys.stderr)
        sys.exit(1)
    _print_results(result)


if __name__ == "__main__":
    main()
