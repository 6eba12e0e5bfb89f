"""
cargo_rank/tests/conftest.py — Shared pytest fixtures for the cargo-rank test suite.

The synthetic registry is generated with a fixed seed (SEED=41) so that every
ranking test has a deterministic baseline.

Fixtures:
    chain_records      — A → B → C, C dangling (pinned regression scenario).
    complete_records   — 4 packages, each depending on the other 3.
    synthetic_records  — ~200-package hub-biased registry (session-scoped).
    registry_index     — on-disk crates.io-style index under tmp_path.
    index_writer       — write_index helper for custom index trees.
    line_factory       — version_line helper producing one JSON index line.

Helpers (import with `from conftest import ...`):
    make_record        — PackageRecord whose dependencies are given by name.
"""

import hashlib
import json
import os
import random

import pytest

from cargo_rank.index.records import Dependency, PackageRecord

SEED = 41

HUB_CRATES = ["serde", "libc", "log", "rand", "syn", "quote", "proc-macro2", "cfg-if"]
EXTERNAL_CRATES = ["windows-sys", "wasm-bindgen", "js-sys"]  # never part of the collection


# ── Index helpers ─────────────────────────────────────────────────────────────

def index_relpath(name: str) -> str:
    """crates.io-index prefix layout: 1/a, 2/ab, 3/a/abc, ab/cd/abcd…"""
    lowered = name.lower()
    if len(lowered) == 1:
        return os.path.join("1", lowered)
    if len(lowered) == 2:
        return os.path.join("2", lowered)
    if len(lowered) == 3:
        return os.path.join("3", lowered[0], lowered)
    return os.path.join(lowered[:2], lowered[2:4], lowered)


def version_line(name: str, vers: str, deps: list[str], yanked: bool = False, **extra) -> str:
    entry = {
        "name": name,
        "vers": vers,
        "deps": [
            {
                "name": d,
                "req": "^1.0",
                "features": [],
                "optional": False,
                "default_features": True,
                "target": None,
                "kind": "normal",
            }
            for d in deps
        ],
        "cksum": hashlib.sha256(f"{name}@{vers}".encode()).hexdigest(),
        "features": {},
        "yanked": yanked,
    }
    entry.update(extra)
    return json.dumps(entry)


def make_record(name: str, deps: list[str] | None = None, vers: str = "0.1.0") -> PackageRecord:
    """Shorthand for a record whose dependencies are given by name only."""
    return PackageRecord(
        name=name,
        vers=vers,
        deps=tuple(Dependency(name=d) for d in deps or ()),
    )


def write_index(root, packages: dict[str, list[str]]) -> str:
    """
    Write an index tree. `packages` maps crate name → list of JSON lines
    (oldest first). Also writes config.json and a .git directory that the
    loader must ignore.
    """
    root = str(root)
    os.makedirs(os.path.join(root, ".git"), exist_ok=True)
    with open(os.path.join(root, ".git", "HEAD"), "w") as fh:
        fh.write("ref: refs/heads/master\n")
    with open(os.path.join(root, "config.json"), "w") as fh:
        json.dump({"dl": "https://crates.io/api/v1/crates", "api": "https://crates.io"}, fh)

    for name, lines in packages.items():
        path = os.path.join(root, index_relpath(name))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
    return root


# ── Record fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def chain_records() -> list[PackageRecord]:
    """A depends on B, B depends on C, C depends on nothing."""
    return [
        make_record("A", ["B"]),
        make_record("B", ["C"]),
        make_record("C", []),
    ]


@pytest.fixture
def complete_records() -> list[PackageRecord]:
    """Four packages, each depending on all three others."""
    names = ["w", "x", "y", "z"]
    return [make_record(n, [m for m in names if m != n]) for n in names]


def _build_synthetic_records() -> list[PackageRecord]:
    """
    Hub-biased synthetic registry.

    - 8 hub crates with a few dependencies among themselves
    - ~190 leaf/mid crates depending on 0–6 others, preferring hubs
    - some duplicated dependency declarations and some external crates
    """
    rng = random.Random(SEED)
    names = HUB_CRATES + [f"crate-{i:03d}" for i in range(190)]
    records: list[PackageRecord] = []

    for i, name in enumerate(names):
        if name in HUB_CRATES:
            pool = [h for h in HUB_CRATES if h != name]
            deps = rng.sample(pool, rng.randint(0, 2))
        else:
            earlier = names[:i]
            n_deps = rng.choice([0, 1, 2, 3, 4, 6])
            deps = []
            for _ in range(n_deps):
                if rng.random() < 0.6:
                    deps.append(rng.choice(HUB_CRATES))
                else:
                    deps.append(rng.choice(earlier))
            if rng.random() < 0.1:
                deps.append(rng.choice(EXTERNAL_CRATES))
            if deps and rng.random() < 0.1:
                deps.append(deps[0])
        records.append(
            PackageRecord(
                name=name,
                vers=f"{rng.randint(0, 3)}.{rng.randint(0, 20)}.{rng.randint(0, 9)}",
                deps=tuple(Dependency(name=d, req="^1") for d in deps),
            )
        )
    return records


@pytest.fixture(scope="session")
def synthetic_records() -> list[PackageRecord]:
    """Deterministic ~200-package registry (session-scoped)."""
    return _build_synthetic_records()


@pytest.fixture
def registry_index(tmp_path):
    """
    Small on-disk index:

        app   → serde, log, tokio(not in index)      (2 versions)
        serde → serde_derive
        serde_derive                                  (yanked latest)
        log
        cc    → log
    """
    return write_index(
        tmp_path / "index",
        {
            "app": [
                version_line("app", "0.1.0", ["serde"]),
                version_line("app", "0.2.0", ["serde", "log", "tokio"]),
            ],
            "serde": [version_line("serde", "1.0.0", ["serde_derive"])],
            "serde_derive": [
                version_line("serde_derive", "1.0.0", []),
                version_line("serde_derive", "1.0.1", [], yanked=True),
            ],
            "log": [version_line("log", "0.4.20", [])],
            "cc": [version_line("cc", "1.0.83", ["log"])],
        },
    )


@pytest.fixture
def index_writer():
    """write_index(root, {name: [json lines]}) for tests that need a custom tree."""
    return write_index


@pytest.fixture
def line_factory():
    """version_line(name, vers, deps, yanked=False, **extra) → one JSON index line."""
    return version_line
