"""
cargo_rank.metrics — Rank computation.

Modules:
    pagerank — Damped power iteration over the transition model, ranked
               output with a deterministic tie break, percentile ranks.

Damping, threshold and the iteration bound live in cargo_rank.config.RankConfig.
"""
