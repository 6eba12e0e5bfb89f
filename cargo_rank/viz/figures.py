"""
cargo_rank/viz/figures.py — Figure generation for a ranking run.

Generates PNG figures from a RankingPipelineResult. No file I/O besides the
PNGs themselves — all data comes from the result.

Usage:
    from cargo_rank.viz.figures import generate_all_figures
    paths = generate_all_figures(result, output_dir="output/figures")
    # paths = {"fig1_top_packages.png": "/abs/path/...", ...}
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import matplotlib
try:
    matplotlib.use("Agg")
except Exception:
    pass  # backend already set

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

if TYPE_CHECKING:
    from cargo_rank.pipeline import RankingPipelineResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared colour palette
# ---------------------------------------------------------------------------
C_RUST = "#CE422B"      # rust orange, top packages
C_MUTED = "#8FA3B5"     # grey-blue, everything else
C_DARK = "#1A2B3C"      # near-black
C_LIGHT = "#F3EEE9"     # background tint

STYLE = {
    "figure.facecolor": "white",
    "axes.facecolor": C_LIGHT,
    "axes.edgecolor": C_DARK,
    "axes.labelcolor": C_DARK,
    "xtick.color": C_DARK,
    "ytick.color": C_DARK,
    "text.color": C_DARK,
    "grid.color": "white",
    "grid.linewidth": 1.0,
    "axes.spines.top": False,
    "axes.spines.right": False,
    "font.family": "DejaVu Sans",
}

HUB_NEIGHBOURHOOD_LIMIT = 12
# Max dependents drawn around each hub in fig3, to keep the layout legible.


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def generate_all_figures(result: "RankingPipelineResult", output_dir: str) -> dict[str, str]:
    """
    Generate all ranking figures from a RankingPipelineResult.

    Args:
        result:     Complete result from run_ranking_pipeline() / rank_records().
        output_dir: Directory to save PNG files into (created if needed).

    Returns:
        Dict mapping filename -> absolute path for each generated figure.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths: dict[str, str] = {}
    top_n = result.config.top_n

    plt.rcParams.update(STYLE)

    if result.ranking:
        p = plot_top_packages(result.ranking, output_dir, top_n=top_n)
        if p:
            paths[os.path.basename(p)] = p

    if result.iteration.delta_history:
        p = plot_convergence(result.iteration.delta_history, result.config.threshold, output_dir)
        if p:
            paths[os.path.basename(p)] = p

    if result.graph.number_of_edges() > 0:
        p = plot_dependency_hubs(result.graph, result.ranking, output_dir, top_n=min(top_n, 5))
        if p:
            paths[os.path.basename(p)] = p

    logger.info("Generated %d figures in %s", len(paths), output_dir)
    return paths


# ---------------------------------------------------------------------------
# Figure 1: Top packages by rank (horizontal bar)
# ---------------------------------------------------------------------------
def plot_top_packages(ranking, output_dir: str, top_n: int = 10) -> str | None:
    rows = ranking[:top_n]
    if not rows:
        return None

    names = [record.name for record, _ in rows][::-1]
    scores = [score for _, score in rows][::-1]
    uniform = 1.0 / len(ranking)

    fig, ax = plt.subplots(figsize=(8, max(3.0, 0.45 * len(rows) + 1.5)))
    ax.barh(names, scores, color=C_RUST, edgecolor="white", zorder=3)
    ax.axvline(uniform, color=C_DARK, linestyle="--", linewidth=1.2, zorder=4,
               label=f"Uniform rank (1/N = {uniform:.2e})")

    ax.set_xlabel("Rank score", fontsize=12)
    ax.set_title(f"Top {len(rows)} of {len(ranking)} packages by rank",
                 fontsize=13, fontweight="bold", pad=12)
    ax.xaxis.grid(True, zorder=0)
    ax.legend(fontsize=9, loc="lower right")

    fig.tight_layout()
    path = os.path.join(output_dir, "fig1_top_packages.png")
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return os.path.abspath(path)


# ---------------------------------------------------------------------------
# Figure 2: Convergence (L1 delta per round, log scale)
# ---------------------------------------------------------------------------
def plot_convergence(delta_history: list[float], threshold: float, output_dir: str) -> str | None:
    deltas = np.asarray(delta_history, dtype=float)
    if deltas.size == 0:
        return None

    # log scale cannot show an exact zero (e.g. a symmetric graph that is
    # stationary from the first round)
    floor = threshold / 100.0
    deltas = np.maximum(deltas, floor)
    rounds = np.arange(1, deltas.size + 1)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(rounds, deltas, color=C_RUST, marker="o", markersize=3, linewidth=1.5, zorder=3)
    ax.axhline(threshold, color=C_DARK, linestyle="--", linewidth=1.2, zorder=4,
               label=f"Threshold ({threshold:.0e})")
    ax.set_yscale("log")
    ax.set_xlabel("Iteration", fontsize=12)
    ax.set_ylabel("L1 change in rank vector", fontsize=12)
    ax.set_title(f"Power iteration converged in {deltas.size} rounds",
                 fontsize=13, fontweight="bold", pad=12)
    ax.yaxis.grid(True, zorder=0)
    ax.legend(fontsize=10)

    fig.tight_layout()
    path = os.path.join(output_dir, "fig2_convergence.png")
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return os.path.abspath(path)


# ---------------------------------------------------------------------------
# Figure 3: Dependency neighbourhood of the top-ranked hubs
# ---------------------------------------------------------------------------
def plot_dependency_hubs(G: nx.DiGraph, ranking, output_dir: str, top_n: int = 5) -> str | None:
    hubs = [record.name for record, _ in ranking[:top_n] if record.name in G]
    if not hubs:
        return None

    scores = {record.name: score for record, score in ranking}
    nodes: set[str] = set(hubs)
    for hub in hubs:
        dependents = sorted(G.predecessors(hub), key=lambda n: -scores.get(n, 0.0))
        nodes.update(dependents[:HUB_NEIGHBOURHOOD_LIMIT])

    H = G.subgraph(nodes)
    pos = nx.spring_layout(H, seed=42)

    max_score = max(scores.get(n, 0.0) for n in H.nodes) or 1.0
    sizes = [80 + 1200 * scores.get(n, 0.0) / max_score for n in H.nodes]
    colours = [C_RUST if n in hubs else C_MUTED for n in H.nodes]

    fig, ax = plt.subplots(figsize=(10, 8))
    nx.draw_networkx_edges(H, pos, ax=ax, edge_color=C_MUTED, alpha=0.6, arrows=True,
                           arrowsize=8, width=0.8)
    nx.draw_networkx_nodes(H, pos, ax=ax, node_size=sizes, node_color=colours,
                           edgecolors="white", linewidths=0.8)
    nx.draw_networkx_labels(H, pos, labels={h: h for h in hubs}, ax=ax,
                            font_size=9, font_weight="bold")

    ax.set_title(f"Top {len(hubs)} packages and their highest-ranked dependents",
                 fontsize=13, fontweight="bold", pad=12)
    ax.set_axis_off()

    fig.tight_layout()
    path = os.path.join(output_dir, "fig3_dependency_hubs.png")
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return os.path.abspath(path)
