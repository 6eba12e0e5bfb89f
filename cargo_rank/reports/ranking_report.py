"""
cargo_rank/reports/ranking_report.py — Ranking tables, exports and Markdown report.

Presentation layer over a finished ranking. Nothing here changes scores:
    - ranking_to_frame()        → pandas DataFrame (one row per package)
    - format_ranking_lines()    → terminal lines ("name: score" or "1. name (score)")
    - export_ranking_csv()      → full table as CSV
    - export_ranking_json()     → top-N records with scores, registry fields intact
    - export_report_markdown()  → human-readable run report
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Sequence

import pandas as pd

from cargo_rank.index.records import PackageRecord

if TYPE_CHECKING:
    from cargo_rank.pipeline import RankingPipelineResult

logger = logging.getLogger(__name__)

Ranking = Sequence[tuple[PackageRecord, float]]

FRAME_COLUMNS = ["position", "name", "version", "score", "percentile", "dependencies", "yanked"]

LINE_STYLES = ("colon", "numbered")


def ranking_to_frame(
    ranking: Ranking,
    percentiles: Optional[dict[str, float]] = None,
    top_n: Optional[int] = None,
) -> pd.DataFrame:
    """
    Tabulate a ranking.

    Args:
        ranking:     (record, score) pairs, already sorted.
        percentiles: Optional name → percentile map (column is NaN without it).
        top_n:       Keep only the first top_n rows.

    Returns:
        DataFrame with FRAME_COLUMNS. `position` is 1-based; `dependencies`
        counts distinct declared dependency names.
    """
    rows = ranking[:top_n] if top_n is not None else ranking
    percentiles = percentiles or {}

    df = pd.DataFrame(
        [
            {
                "position": i,
                "name": record.name,
                "version": record.vers,
                "score": score,
                "percentile": percentiles.get(record.name, float("nan")),
                "dependencies": len(set(record.dependency_names)),
                "yanked": record.yanked,
            }
            for i, (record, score) in enumerate(rows, start=1)
        ],
        columns=FRAME_COLUMNS,
    )
    return df


def format_ranking_lines(
    ranking: Ranking,
    top_n: Optional[int] = None,
    style: str = "colon",
) -> list[str]:
    """
    Render the top of a ranking for the terminal.

    Styles:
        colon    → "serde: 0.0123"
        numbered → "1. serde (0.0123)"
    """
    if style not in LINE_STYLES:
        raise ValueError(f"unknown style '{style}', expected one of {LINE_STYLES}")

    rows = ranking[:top_n] if top_n is not None else ranking
    if style == "numbered":
        return [f"{i}. {record.name} ({score})" for i, (record, score) in enumerate(rows, start=1)]
    return [f"{record.name}: {score}" for record, score in rows]


def export_ranking_csv(df: pd.DataFrame, output_path: str) -> str:
    """Write a ranking DataFrame to CSV and return the path."""
    _ensure_parent_dir(output_path)
    df.to_csv(output_path, index=False)
    logger.info("Ranking CSV exported to: %s (%d rows)", output_path, len(df))
    return output_path


def export_ranking_json(
    ranking: Ranking,
    output_path: str,
    top_n: Optional[int] = None,
) -> list[dict]:
    """
    Write the top of a ranking as JSON.

    Each entry is the package's registry record (to_dict(), so version,
    checksum, dependency metadata and unknown keys survive) plus
    `position` and `score`.
    """
    rows = ranking[:top_n] if top_n is not None else ranking
    payload = [
        {"position": i, "score": score, "package": record.to_dict()}
        for i, (record, score) in enumerate(rows, start=1)
    ]
    _ensure_parent_dir(output_path)
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
    logger.info("Ranking JSON exported to: %s (%d entries)", output_path, len(payload))
    return payload


def export_report_markdown(
    result: "RankingPipelineResult",
    output_path: str,
    top_n: int = 10,
    figure_paths: "dict[str, str] | None" = None,
) -> str:
    """
    Export a human-readable Markdown report of a ranking run.

    Structure:
        # cargo-rank — Registry Ranking Report
        **Date:** {date} | **Index:** {path}

        ## Run Summary          (parameters + convergence)
        ## Dependency Graph     (structural statistics)
        ## Top {N} Packages     (ranking table)
        ## Figures              (when figure_paths is non-empty)

    Writes the file to output_path and returns the Markdown string. A write
    failure is logged; the Markdown is still returned.
    """
    cfg = result.config
    summary = result.graph_summary
    iteration = result.iteration
    lines: list[str] = []

    # ── Title ─────────────────────────────────────────────────────────────────
    lines += [
        "# cargo-rank — Registry Ranking Report",
        "",
        f"**Date:** {datetime.now(tz=timezone.utc).strftime('%Y-%m-%d %H:%M UTC')} | "
        f"**Index:** {result.index_path or 'in-memory'}",
        "",
        "---",
        "",
    ]

    # ── Run Summary ───────────────────────────────────────────────────────────
    lines += [
        "## Run Summary",
        "",
        "| Parameter | Value |",
        "|-----------|-------|",
        f"| Damping | {cfg.damping} |",
        f"| Threshold | {cfg.threshold:.1e} |",
        f"| Iterations | {iteration.iterations} |",
        f"| Final L1 Delta | {iteration.final_delta:.3e} |",
        f"| Elapsed | {result.elapsed_seconds:.2f}s |",
        "",
    ]

    # ── Dependency Graph ──────────────────────────────────────────────────────
    most = summary.get("most_depended_on")
    most_label = f"{most[0]} ({most[1]} dependents)" if most else "—"
    lines += [
        "## Dependency Graph",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Packages | {summary.get('packages', 0)} |",
        f"| Dependency Edges | {summary.get('dependency_edges', 0)} |",
        f"| Dangling Packages | {summary.get('dangling_packages', 0)} |",
        f"| Self-Dependencies | {summary.get('self_dependencies', 0)} |",
        f"| Unresolved Dependency References | {summary.get('unresolved_dependencies', 0)} |",
        f"| Weakly Connected Components | {summary.get('weakly_connected_components', 0)} |",
        f"| Most Depended On | {most_label} |",
        "",
    ]

    # ── Top N ─────────────────────────────────────────────────────────────────
    df = ranking_to_frame(result.ranking, result.percentiles, top_n=top_n)
    lines += [
        f"## Top {len(df)} Packages",
        "",
        "| # | Package | Version | Score | Percentile |",
        "|---|---------|---------|-------|------------|",
    ]
    for row in df.itertuples(index=False):
        lines.append(
            f"| {row.position} | {row.name} | {row.version} | "
            f"{row.score:.6f} | {row.percentile:.1f} |"
        )
    lines.append("")

    # ── Figures ───────────────────────────────────────────────────────────────
    if figure_paths:
        report_dir = os.path.dirname(os.path.abspath(output_path))
        lines += ["## Figures", ""]
        for name, path in sorted(figure_paths.items()):
            rel_path = os.path.relpath(os.path.abspath(path), report_dir)
            lines += [f"![{name}]({rel_path})", ""]

    lines += [
        "---",
        "",
        "_Report generated by cargo-rank_",
        "",
    ]

    markdown = "\n".join(lines)

    try:
        _ensure_parent_dir(output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(markdown)
        logger.info("Ranking report exported to: %s", output_path)
    except OSError as e:
        logger.error("Failed to write report to %s: %s", output_path, e)

    return markdown


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
