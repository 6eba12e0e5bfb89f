"""
cargo_rank/config.py — All tunable parameters for cargo-rank.

No damping factor, convergence threshold or loader rule should ever be
hardcoded in a ranking module. Everything lives here so that calibration
changes are a single-file diff.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RankConfig:
    """
    Immutable configuration for the ranking pipeline.

    Override by constructing a new RankConfig (or dataclasses.replace on
    DEFAULT_CONFIG) with the desired values.
    """

    # ── Power iteration ───────────────────────────────────────────────────────
    damping: float = 0.85
    # Probability mass that follows dependency edges each round.
    # The remaining (1 - damping) is spread uniformly over all packages.

    threshold: float = 1e-6
    # Iteration stops once the L1 change between successive rank vectors
    # is <= this value.

    max_iterations: int = 10_000
    # Safety bound. Exceeding it raises DidNotConvergeError instead of
    # looping forever on a non-converging damping/threshold combination.

    # ── Output ────────────────────────────────────────────────────────────────
    top_n: int = 10
    # Number of packages printed by the CLI and listed in the Markdown report.

    output_dir: str = "output"
    # Default directory for reports, CSV/JSON exports and figures.

    # ── Registry loader ───────────────────────────────────────────────────────
    skip_yanked: bool = False
    # When True, the latest *non-yanked* version of each package is used.
    # Default False: the last line of each index file wins, yanked or not.

    excluded_entries: tuple[str, ...] = (".git", ".github", "config.json")
    # Top-level entries of the index root that are not package files.


# Singleton default; import this everywhere instead of constructing anew.
DEFAULT_CONFIG = RankConfig()
