"""
cargo_rank/pipeline.py — Single-call ranking orchestrator.

Provides run_ranking_pipeline(), which loads a registry index, builds the
dependency graph, runs power iteration and optionally writes the report,
CSV/JSON exports and figures. Every intermediate result is returned for
inspection.

Usage:
    from cargo_rank.pipeline import run_ranking_pipeline
    result = run_ranking_pipeline("/path/to/crates.io-index")
    for record, score in result.ranking[:10]:
        print(f"{record.name}: {score}")
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

import networkx as nx

from cargo_rank.config import DEFAULT_CONFIG, RankConfig
from cargo_rank.graph.builder import (
    TransitionModel,
    build_dependency_digraph,
    build_transition_model,
    summarize_dependency_graph,
)
from cargo_rank.index.loader import load_registry_index
from cargo_rank.index.records import PackageRecord
from cargo_rank.metrics.pagerank import (
    PowerIterationResult,
    compute_percentile_ranks,
    pair_scores,
    power_iteration,
)
from cargo_rank.reports.ranking_report import (
    export_ranking_csv,
    export_ranking_json,
    export_report_markdown,
    ranking_to_frame,
)

logger = logging.getLogger(__name__)


@dataclass
class RankingPipelineResult:
    """
    Complete output of a single ranking run.

    `ranking` is the full (record, score) list sorted by score descending;
    callers slice it for top-K output.
    """

    records: list[PackageRecord]
    model: TransitionModel
    graph: nx.DiGraph
    graph_summary: dict
    iteration: PowerIterationResult
    ranking: list[tuple[PackageRecord, float]]
    percentiles: dict[str, float]
    config: RankConfig = DEFAULT_CONFIG
    index_path: Optional[str] = None
    elapsed_seconds: float = 0.0

    # Populated when the corresponding outputs are written.
    report_path: Optional[str] = None
    figure_paths: dict = field(default_factory=dict)


def rank_records(
    records: Sequence[PackageRecord],
    config: RankConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
) -> RankingPipelineResult:
    """
    Run graph construction and power iteration on an in-memory collection.

    Raises:
        EmptyGraphError:       if records is empty.
        DidNotConvergeError:   if config.max_iterations is exceeded.
        RankingCancelledError: if cancel_event is set during iteration.
    """
    t0 = time.monotonic()
    records = list(records)

    # ── Graph construction ────────────────────────────────────────────────────
    model = build_transition_model(records)
    G = build_dependency_digraph(records)
    summary = summarize_dependency_graph(G, model)

    # ── Power iteration ───────────────────────────────────────────────────────
    iteration = power_iteration(
        model,
        damping=config.damping,
        threshold=config.threshold,
        max_iterations=config.max_iterations,
        cancel_event=cancel_event,
    )
    ranking = pair_scores(records, iteration.scores)
    percentiles = compute_percentile_ranks({r.name: s for r, s in ranking})

    return RankingPipelineResult(
        records=records,
        model=model,
        graph=G,
        graph_summary=summary,
        iteration=iteration,
        ranking=ranking,
        percentiles=percentiles,
        config=config,
        elapsed_seconds=time.monotonic() - t0,
    )


def run_ranking_pipeline(
    index_path: str,
    config: RankConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
    report_path: Optional[str] = None,
    csv_path: Optional[str] = None,
    json_path: Optional[str] = None,
    generate_figures: bool = False,
    figures_dir: Optional[str] = None,
) -> RankingPipelineResult:
    """
    Load a registry index and rank every package in it.

    Steps:
        1. load_registry_index()          — latest version per package
        2. build_transition_model()       — PackageIndex + row-stochastic weights
        3. build_dependency_digraph()     — named graph + structural summary
        4. power_iteration()              — converged rank vector
        5. exports (report / CSV / JSON / figures) when paths are given

    Args:
        index_path:       Root directory of the registry index checkout.
        config:           RankConfig with damping, threshold, bounds, top_n.
        cancel_event:     Optional threading.Event checked once per round.
        report_path:      Markdown report path (skipped if None).
        csv_path:         Full ranking CSV path (skipped if None).
        json_path:        Top-N JSON export path (skipped if None).
        generate_figures: Write matplotlib figures if True.
        figures_dir:      Figure directory (default: <config.output_dir>/figures).

    Returns:
        RankingPipelineResult.

    Raises:
        FileNotFoundError: if index_path is not a directory.
        EmptyGraphError:   if the index holds no loadable packages.
        DidNotConvergeError, RankingCancelledError: from power_iteration().
    """
    t0 = time.monotonic()
    logger.info("Ranking pipeline starting (damping=%.2f, threshold=%.1e).",
                config.damping, config.threshold)

    records = load_registry_index(index_path, config)
    result = rank_records(records, config=config, cancel_event=cancel_event)
    result.index_path = index_path

    if csv_path:
        export_ranking_csv(ranking_to_frame(result.ranking, result.percentiles), csv_path)
    if json_path:
        export_ranking_json(result.ranking, json_path, top_n=config.top_n)

    if generate_figures:
        from cargo_rank.viz.figures import generate_all_figures

        figures_dir = figures_dir or os.path.join(config.output_dir, "figures")
        result.figure_paths = generate_all_figures(result, figures_dir)

    result.elapsed_seconds = time.monotonic() - t0

    if report_path:
        export_report_markdown(
            result,
            report_path,
            top_n=config.top_n,
            figure_paths=result.figure_paths,
        )
        result.report_path = report_path

    logger.info(
        "Ranking pipeline complete: %d packages ranked in %.2fs.",
        len(result.ranking),
        result.elapsed_seconds,
    )
    return result
