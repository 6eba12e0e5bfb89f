"""
cargo_rank/cli.py — Command-line interface for cargo-rank.

Usage:
    python -m cargo_rank rank  PATH            # print the top 10 packages
    python -m cargo_rank rank  PATH --top 25 --style numbered
    python -m cargo_rank rank  PATH --report-path output/report.md --figures-dir output/figures
    python -m cargo_rank stats PATH            # dependency graph statistics only

PATH is the root of a registry index checkout (e.g. a clone of
https://github.com/rust-lang/crates.io-index).

Exit codes:
    0  success
    1  ranking failed (empty index, no convergence) or an output could not be written
    2  index path not found
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time

from cargo_rank.config import DEFAULT_CONFIG, RankConfig
from cargo_rank.errors import CargoRankError


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps and level names."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=numeric, format=fmt, datefmt=datefmt, stream=sys.stderr)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


logger = logging.getLogger("cargo_rank.cli")


def _positive_int(value: str) -> int:
    """argparse type for counts that must be >= 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def _config_from_args(args: argparse.Namespace) -> RankConfig:
    """Overlay explicitly passed flags on DEFAULT_CONFIG."""
    overrides = {
        "damping": getattr(args, "damping", None),
        "threshold": getattr(args, "threshold", None),
        "max_iterations": getattr(args, "max_iterations", None),
        "top_n": getattr(args, "top", None),
    }
    config = dataclasses.replace(
        DEFAULT_CONFIG,
        **{k: v for k, v in overrides.items() if v is not None},
    )
    if args.skip_yanked:
        config = dataclasses.replace(config, skip_yanked=True)
    return config


# ── Subcommand: rank ──────────────────────────────────────────────────────────

def cmd_rank(args: argparse.Namespace) -> int:
    """Load the index, rank every package and print the top N."""
    _setup_logging(args.log_level)

    from cargo_rank.pipeline import run_ranking_pipeline
    from cargo_rank.reports.ranking_report import format_ranking_lines

    config = _config_from_args(args)

    logger.info("=" * 60)
    logger.info("cargo-rank — Ranking Run")
    logger.info("  Index          : %s", args.index_path)
    logger.info("  Damping        : %.2f", config.damping)
    logger.info("  Threshold      : %.1e", config.threshold)
    logger.info("  Max iterations : %d", config.max_iterations)
    logger.info("=" * 60)

    t0 = time.monotonic()
    try:
        result = run_ranking_pipeline(
            args.index_path,
            config=config,
            report_path=args.report_path,
            csv_path=args.csv_path,
            json_path=args.json_path,
            generate_figures=args.figures_dir is not None,
            figures_dir=args.figures_dir,
        )
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 2
    except CargoRankError as exc:
        logger.error("Ranking failed: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid ranking parameters: %s", exc)
        return 1
    except OSError as exc:
        logger.error("Failed to write output: %s", exc)
        return 1
    elapsed = time.monotonic() - t0

    for line in format_ranking_lines(result.ranking, top_n=config.top_n, style=args.style):
        print(line)

    logger.info(
        "Ranked %d packages in %d iterations (%.1fs).",
        len(result.ranking),
        result.iteration.iterations,
        elapsed,
    )
    if result.report_path:
        logger.info("Report saved to: %s", result.report_path)
    if result.figure_paths:
        logger.info("Figures (%d) saved to: %s", len(result.figure_paths), args.figures_dir)
    return 0


# ── Subcommand: stats ─────────────────────────────────────────────────────────

def cmd_stats(args: argparse.Namespace) -> int:
    """Print dependency graph statistics without ranking."""
    _setup_logging(args.log_level)

    from cargo_rank.graph.builder import (
        build_dependency_digraph,
        build_transition_model,
        summarize_dependency_graph,
    )
    from cargo_rank.index.loader import load_registry_index

    config = _config_from_args(args)
    try:
        records = load_registry_index(args.index_path, config)
        model = build_transition_model(records)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 2
    except CargoRankError as exc:
        logger.error("Cannot build graph: %s", exc)
        return 1

    summary = summarize_dependency_graph(build_dependency_digraph(records), model)
    most = summary["most_depended_on"]

    print()
    print("=" * 60)
    print("  CARGO-RANK — DEPENDENCY GRAPH")
    print("=" * 60)
    print(f"  Packages             : {summary['packages']}")
    print(f"  Dependency edges     : {summary['dependency_edges']}")
    print(f"  Dangling packages    : {summary['dangling_packages']}")
    print(f"  Self-dependencies    : {summary['self_dependencies']}")
    print(f"  Unresolved refs      : {summary['unresolved_dependencies']}")
    print(f"  Weak components      : {summary['weakly_connected_components']}")
    print(f"  Largest component    : {summary['largest_component_size']}")
    if most:
        print(f"  Most depended on     : {most[0]} ({most[1]} dependents)")
    print("=" * 60)
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-rank",
        description="Rank registry packages by importance in their dependency graph.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Top 10 crates of a local crates.io-index clone
  python -m cargo_rank rank ~/src/crates.io-index

  # Top 25, numbered, ignoring yanked releases
  python -m cargo_rank rank ~/src/crates.io-index --top 25 --style numbered --skip-yanked

  # Full outputs
  python -m cargo_rank rank ~/src/crates.io-index --report-path output/report.md \\
      --csv-path output/ranking.csv --json-path output/top.json --figures-dir output/figures

  # Graph statistics only
  python -m cargo_rank stats ~/src/crates.io-index
        """,
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO; DEBUG prints the delta of every iteration)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_index_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument("index_path", metavar="INDEX_PATH", help="Root of the registry index checkout")
        p.add_argument(
            "--skip-yanked",
            action="store_true",
            help="Use the latest non-yanked version of each package",
        )

    # rank
    p_rank = subparsers.add_parser("rank", help="Rank packages and print the top N")
    add_index_flags(p_rank)
    p_rank.add_argument(
        "--top", type=_positive_int, default=None, metavar="N",
        help=f"Number of packages to print (default: {DEFAULT_CONFIG.top_n})",
    )
    p_rank.add_argument(
        "--damping", type=float, default=None, metavar="D",
        help=f"Damping factor in [0, 1] (default: {DEFAULT_CONFIG.damping})",
    )
    p_rank.add_argument(
        "--threshold", type=float, default=None, metavar="T",
        help=f"L1 convergence threshold (default: {DEFAULT_CONFIG.threshold})",
    )
    p_rank.add_argument(
        "--max-iterations", type=_positive_int, default=None, metavar="M",
        help=f"Give up after M iterations (default: {DEFAULT_CONFIG.max_iterations})",
    )
    p_rank.add_argument(
        "--style", choices=["colon", "numbered"], default="colon",
        help='Output lines as "name: score" (colon) or "1. name (score)" (numbered)',
    )
    p_rank.add_argument("--report-path", default=None, metavar="PATH", help="Markdown report output path")
    p_rank.add_argument("--csv-path", default=None, metavar="PATH", help="Full ranking CSV output path")
    p_rank.add_argument("--json-path", default=None, metavar="PATH", help="Top-N JSON output path")
    p_rank.add_argument(
        "--figures-dir", default=None, metavar="PATH",
        help="Directory for figure outputs (figures are skipped when omitted)",
    )
    p_rank.set_defaults(func=cmd_rank)

    # stats
    p_stats = subparsers.add_parser("stats", help="Show dependency graph statistics only")
    add_index_flags(p_stats)
    p_stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
