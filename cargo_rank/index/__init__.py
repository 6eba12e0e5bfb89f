"""
cargo_rank.index — Registry index records and loading.

Modules:
    records — PackageRecord / Dependency value types (round-trip to JSON).
    loader  — Walk an index checkout and pick the latest version per package.
"""
