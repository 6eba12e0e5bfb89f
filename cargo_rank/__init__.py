"""
cargo_rank — Importance ranking for package registries.

Ranks every package of a crates.io-style registry index by a PageRank-style
score over its dependency graph: a package is important when important
packages depend on it.

Layers:
- Registry loading (cargo_rank.index.loader)
- Graph construction (cargo_rank.graph.builder)
- Power iteration (cargo_rank.metrics.pagerank)
- Reports and figures (cargo_rank.reports, cargo_rank.viz)
"""

__version__ = "0.1.0"
