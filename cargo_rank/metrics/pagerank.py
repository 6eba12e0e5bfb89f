"""
cargo_rank/metrics/pagerank.py — Package rank via damped power iteration.

The flagship metric. A crate matters not because it has many dependencies,
but because important crates depend on it: rank mass flows along
"depends on" edges, so a crate inherits importance from its dependents.

Recurrence (row-stochastic M from cargo_rank.graph.builder):

    rank' = (1 - d)/N · 1  +  d · Mᵀ · rank

Starting from the uniform vector 1/N, rounds are applied until the total L1
change between successive vectors is <= threshold. Each round writes into a
second buffer and swaps, so no round ever reads a partially updated vector.

Dangling crates (no in-index dependencies) spread their mass over every
*other* crate, 1/(N-1) each. Combined with the teleport term this keeps the
vector summing to 1.0 every round.

A single-crate collection has no "other" crate to spread to; it receives
rank 1.0 directly and no round is run.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import numpy as np

from cargo_rank.config import DEFAULT_CONFIG, RankConfig
from cargo_rank.errors import DidNotConvergeError, EmptyGraphError, RankingCancelledError
from cargo_rank.graph.builder import TransitionModel, build_transition_model
from cargo_rank.index.records import PackageRecord

logger = logging.getLogger(__name__)

# Called after every round with (iteration, rank vector copy, L1 delta).
IterationCallback = Callable[[int, np.ndarray, float], None]


@dataclass
class PowerIterationResult:
    """Converged rank vector plus convergence diagnostics."""

    scores: np.ndarray
    iterations: int
    delta_history: list[float] = field(default_factory=list)

    @property
    def final_delta(self) -> float:
        return self.delta_history[-1] if self.delta_history else 0.0


def _validate_parameters(damping: float, threshold: float, max_iterations: int) -> None:
    if not 0.0 <= damping <= 1.0:
        raise ValueError(f"damping must be in [0, 1], got {damping}")
    if not threshold > 0.0:
        raise ValueError(f"threshold must be > 0, got {threshold}")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")


def power_iteration(
    model: TransitionModel,
    damping: float = DEFAULT_CONFIG.damping,
    threshold: float = DEFAULT_CONFIG.threshold,
    max_iterations: int = DEFAULT_CONFIG.max_iterations,
    cancel_event: Optional[threading.Event] = None,
    on_iteration: Optional[IterationCallback] = None,
) -> PowerIterationResult:
    """
    Run damped power iteration over a transition model until convergence.

    Algorithm (O(N + E) per round):
        1. rank = 1/N everywhere.
        2. new_rank = (1 - d)/N everywhere (teleport term).
        3. Every explicit edge p → j adds d · rank[p] · w(p, j) to new_rank[j].
        4. Every dangling p adds d · rank[p] / (N - 1) to all j != p.
        5. delta = Σ |new_rank - rank|; swap buffers.
        6. Repeat 2–5 while delta > threshold.

    Args:
        model:          TransitionModel from build_transition_model().
        damping:        Probability of following a dependency edge, in [0, 1].
        threshold:      L1 convergence threshold (> 0).
        max_iterations: Maximum number of rounds before giving up.
        cancel_event:   Optional threading.Event, checked once per round.
        on_iteration:   Optional callback(iteration, rank_copy, delta).

    Returns:
        PowerIterationResult with the converged scores (indexed by model
        position), the number of rounds run and the per-round L1 deltas.

    Raises:
        ValueError:            on out-of-range parameters.
        EmptyGraphError:       if the model has no packages.
        DidNotConvergeError:   if max_iterations rounds were not enough.
        RankingCancelledError: if cancel_event was set before a round.
    """
    _validate_parameters(damping, threshold, max_iterations)

    n = model.size
    if n == 0:
        raise EmptyGraphError()
    if n == 1:
        logger.debug("Single package '%s' — rank 1.0, no iteration.", model.index.name_at(0))
        return PowerIterationResult(scores=np.ones(1), iterations=0)

    sources = model.sources
    targets = model.indices
    edge_factors = damping * model.weights
    dangling = model.dangling
    spread = damping / (n - 1)
    base = (1.0 - damping) / n

    rank = np.full(n, 1.0 / n)
    new_rank = np.empty(n)
    delta_history: list[float] = []
    iterations = 0
    delta = float("inf")

    while delta > threshold:
        if cancel_event is not None and cancel_event.is_set():
            raise RankingCancelledError(iterations)
        if iterations >= max_iterations:
            raise DidNotConvergeError(iterations, delta, threshold)

        new_rank.fill(base)
        new_rank += np.bincount(targets, weights=edge_factors * rank[sources], minlength=n)

        if dangling.size:
            # Each dangling p gives spread·rank[p] to everyone, then takes its own share back.
            new_rank += spread * rank[dangling].sum()
            new_rank[dangling] -= spread * rank[dangling]

        delta = float(np.abs(new_rank - rank).sum())
        rank, new_rank = new_rank, rank
        iterations += 1
        delta_history.append(delta)

        logger.debug("Iteration %d: delta=%.3e", iterations, delta)
        if on_iteration is not None:
            on_iteration(iterations, rank.copy(), delta)

    logger.info(
        "Power iteration converged after %d rounds (final delta %.3e, damping %.2f).",
        iterations,
        delta,
        damping,
    )
    return PowerIterationResult(scores=rank.copy(), iterations=iterations, delta_history=delta_history)


def pair_scores(
    records: Sequence[PackageRecord],
    scores: np.ndarray,
) -> list[tuple[PackageRecord, float]]:
    """
    Pair each record with its score, sorted by score descending.

    Equal scores are ordered by package name ascending so that top-K output
    is reproducible across runs and input orderings.
    """
    paired = [(record, float(score)) for record, score in zip(records, scores)]
    paired.sort(key=lambda item: (-item[1], item[0].name))
    return paired


def rank_packages(
    records: Sequence[PackageRecord],
    damping: Optional[float] = None,
    threshold: Optional[float] = None,
    config: RankConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
) -> list[tuple[PackageRecord, float]]:
    """
    Rank a package collection by importance in its dependency graph.

    Args:
        records:      Latest version of each package, unique names.
        damping:      Damping factor; defaults to config.damping.
        threshold:    L1 convergence threshold; defaults to config.threshold.
        config:       RankConfig. Also supplies max_iterations.
        cancel_event: Optional threading.Event checked once per round.

    Returns:
        List of (record, score) sorted by score descending, ties by name.
        Scores sum to 1.0. Taking the top K is a slice: result[:K].

    Raises:
        EmptyGraphError:       if records is empty (before any iteration).
        DidNotConvergeError:   if config.max_iterations is exceeded.
        RankingCancelledError: if cancel_event is set during iteration.
    """
    model = build_transition_model(records)
    result = power_iteration(
        model,
        damping=config.damping if damping is None else damping,
        threshold=config.threshold if threshold is None else threshold,
        max_iterations=config.max_iterations,
        cancel_event=cancel_event,
    )
    return pair_scores(records, result.scores)


def compute_percentile_ranks(
    scores: dict[str, float],
) -> dict[str, float]:
    """
    Convert raw rank scores to percentile ranks within [0, 100].

    Uses numpy searchsorted on the sorted score array: a package's percentile
    is the proportion of packages scoring strictly below it (exclusive rank).

    Notes:
        - Packages with the minimum score receive the 0th percentile.
        - The top package receives (n-1)/n × 100, never 100.
    """
    if not scores:
        return {}

    sorted_scores = np.sort(np.array(list(scores.values()), dtype=float))
    n = len(sorted_scores)

    return {
        name: int(np.searchsorted(sorted_scores, score)) / n * 100.0
        for name, score in scores.items()
    }
