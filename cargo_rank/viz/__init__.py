"""
cargo_rank.viz — Visualization layer.

Modules:
    figures — matplotlib PNGs: top packages, convergence curve and the
              dependency neighbourhood of the top-ranked hubs.
"""
