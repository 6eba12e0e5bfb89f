"""
cargo_rank.graph — Dependency graph construction.

Modules:
    builder — PackageIndex + TransitionModel (numpy) for the rank iterator,
              and the named NetworkX DiGraph for statistics and figures.

Edge direction: A → B means "A depends on B".
"""
