"""
cargo_rank/tests/test_loader.py — Tests for registry index loading and records.

Tests verify:
- .git and config.json are ignored; files are discovered in sorted order.
- The last line of each file is taken as the latest version.
- skip_yanked walks back to the latest non-yanked version.
- Malformed, empty and duplicate files are skipped (and logged).
- Records round-trip to the registry JSON shape, unknown keys included.

All tests are offline and use tmp_path.
"""

import json
import logging
import os

import pytest

from cargo_rank.config import RankConfig
from cargo_rank.errors import IndexFormatError
from cargo_rank.index.loader import (
    discover_package_files,
    load_registry_index,
    parse_record_line,
    read_latest_record,
)
from cargo_rank.index.records import Dependency, PackageRecord
from cargo_rank.metrics.pagerank import rank_packages


# ── discover_package_files ───────────────────────────────────────────────────

def test_discovery_skips_git_and_config(registry_index):
    paths = list(discover_package_files(registry_index))
    rel = [os.path.relpath(p, registry_index) for p in paths]
    assert not any(r.startswith(".git") for r in rel)
    assert "config.json" not in rel
    assert len(rel) == 5


def test_discovery_order_is_sorted(registry_index):
    names = [os.path.basename(p) for p in discover_package_files(registry_index)]
    assert names == ["cc", "app", "log", "serde", "serde_derive"]


def test_custom_excluded_entries(registry_index):
    config = RankConfig(excluded_entries=(".git", "config.json", "se"))
    names = [os.path.basename(p) for p in discover_package_files(registry_index, config)]
    assert "serde" not in names
    assert "cc" in names


# ── read_latest_record ────────────────────────────────────────────────────────

def test_latest_version_is_last_line(registry_index):
    records = {r.name: r for r in load_registry_index(registry_index)}
    assert records["app"].vers == "0.2.0"
    assert records["app"].dependency_names == ["serde", "log", "tokio"]


def test_yanked_latest_kept_by_default(registry_index):
    records = {r.name: r for r in load_registry_index(registry_index)}
    assert records["serde_derive"].vers == "1.0.1"
    assert records["serde_derive"].yanked is True


def test_skip_yanked_uses_previous_version(registry_index):
    records = {r.name: r for r in load_registry_index(registry_index, RankConfig(skip_yanked=True))}
    assert records["serde_derive"].vers == "1.0.0"
    assert records["serde_derive"].yanked is False


def test_all_yanked_returns_none(tmp_path, line_factory):
    path = tmp_path / "gone"
    path.write_text(line_factory("gone", "0.1.0", [], yanked=True) + "\n")
    assert read_latest_record(str(path), skip_yanked=True) is None
    assert read_latest_record(str(path)).name == "gone"


def test_trailing_blank_lines_ignored(tmp_path, line_factory):
    path = tmp_path / "pkg"
    path.write_text(
        line_factory("pkg", "0.1.0", []) + "\n" + line_factory("pkg", "0.2.0", []) + "\n\n   \n"
    )
    assert read_latest_record(str(path)).vers == "0.2.0"


def test_empty_file_returns_none(tmp_path):
    path = tmp_path / "empty"
    path.write_text("")
    assert read_latest_record(str(path)) is None


# ── load_registry_index ───────────────────────────────────────────────────────

def test_loads_one_record_per_package(registry_index):
    records = load_registry_index(registry_index)
    assert sorted(r.name for r in records) == ["app", "cc", "log", "serde", "serde_derive"]


def test_missing_root_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_registry_index(str(tmp_path / "does-not-exist"))


def test_empty_index_loads_nothing(tmp_path, index_writer):
    root = index_writer(tmp_path / "idx", {})
    assert load_registry_index(root) == []


def test_malformed_file_skipped_with_warning(tmp_path, index_writer, line_factory, caplog):
    root = index_writer(
        tmp_path / "idx",
        {
            "good": [line_factory("good", "1.0.0", [])],
            "bad": ["{not json"],
        },
    )
    with caplog.at_level(logging.WARNING, logger="cargo_rank.index.loader"):
        records = load_registry_index(root)
    assert [r.name for r in records] == ["good"]
    assert any("Skipping" in rec.message for rec in caplog.records)


def test_only_last_line_must_parse(tmp_path, index_writer, line_factory):
    """Older broken lines are never read when a later version exists."""
    root = index_writer(
        tmp_path / "idx",
        {"pkg": ["{broken", line_factory("pkg", "2.0.0", [])]},
    )
    records = load_registry_index(root)
    assert records[0].vers == "2.0.0"


def test_duplicate_name_first_wins(tmp_path, index_writer, line_factory, caplog):
    root = index_writer(
        tmp_path / "idx",
        {
            "aaaa": [line_factory("dup", "1.0.0", [])],
            "zzzz": [line_factory("dup", "9.0.0", [])],
        },
    )
    with caplog.at_level(logging.WARNING, logger="cargo_rank.index.loader"):
        records = load_registry_index(root)
    assert len(records) == 1
    assert records[0].vers == "1.0.0"
    assert any("Duplicate" in rec.message for rec in caplog.records)


# ── parse_record_line ─────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "line",
    [
        "{not json",
        "[1, 2, 3]",
        '"just a string"',
        '{"vers": "1.0.0", "deps": []}',
        '{"name": "x", "deps": [{"req": "^1"}]}',
        '{"name": "x", "deps": ["serde"]}',
    ],
)
def test_parse_rejects_malformed_lines(line):
    with pytest.raises(IndexFormatError):
        parse_record_line(line)


def test_parse_minimal_record():
    record = parse_record_line('{"name": "tiny"}')
    assert record.name == "tiny"
    assert record.deps == ()
    assert record.yanked is False


def test_record_round_trips_registry_shape(line_factory):
    line = line_factory("serde_json", "1.0.108", ["serde", "itoa"], v=2, links=None)
    record = parse_record_line(line)
    assert record.to_dict() == json.loads(line)


def test_renamed_dependency_preserved():
    line = json.dumps({
        "name": "app",
        "vers": "0.1.0",
        "deps": [{
            "name": "serde1",
            "package": "serde",
            "req": "^1",
            "features": ["derive"],
            "optional": True,
            "default_features": False,
            "target": None,
            "kind": "normal",
            "registry": None,
        }],
        "cksum": "00",
        "features": {"default": ["serde1"]},
        "yanked": False,
        "rust_version": "1.60",
    })
    record = parse_record_line(line)
    dep = record.deps[0]
    assert dep.name == "serde1"
    assert dep.package == "serde"
    assert dep.crate_name == "serde"
    assert record.dependency_names == ["serde"]
    assert dep.features == ("derive",)
    assert dep.default_features is False
    assert dep.extra == {"registry": None}
    assert record.extra == {"rust_version": "1.60"}
    assert record.to_dict() == json.loads(line)


def test_dependency_defaults():
    dep = Dependency.from_dict({"name": "log"})
    assert dep.req == "*"
    assert dep.crate_name == "log"
    assert dep.optional is False
    assert dep.default_features is True
    assert dep.to_dict()["name"] == "log"
    assert "package" not in dep.to_dict()


def test_records_are_immutable():
    record = PackageRecord(name="a")
    with pytest.raises(AttributeError):
        record.name = "b"


def test_renamed_dependency_ranks_real_crate(tmp_path, index_writer, line_factory):
    """`serde1 = { package = "serde" }` gives its edge to serde, not to the alias."""
    app = json.dumps({
        "name": "app",
        "vers": "0.1.0",
        "deps": [{"name": "serde1", "package": "serde", "req": "^1", "kind": "normal"}],
        "cksum": "00",
        "features": {},
        "yanked": False,
    })
    root = index_writer(
        tmp_path / "idx",
        {
            "app": [app],
            "serde": [line_factory("serde", "1.0.0", [])],
            "other": [line_factory("other", "1.0.0", [])],
        },
    )
    records = load_registry_index(root)
    app_record = next(r for r in records if r.name == "app")
    assert app_record.dependency_names == ["serde"]
    assert app_record.deps[0].name == "serde1"

    scores = {r.name: s for r, s in rank_packages(records)}
    assert scores["serde"] > scores["other"]
    assert scores["serde"] > scores["app"]
