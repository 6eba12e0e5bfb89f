"""
cargo_rank.reports — Ranking output.

Modules:
    ranking_report — pandas tables, terminal lines, CSV/JSON exports and
                     the Markdown run report.
"""
