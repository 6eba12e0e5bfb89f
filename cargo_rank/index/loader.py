"""
cargo_rank/index/loader.py — Read package records from a registry index checkout.

The index is a directory tree (a clone of crates.io-index, for example) where
every regular file holds the published versions of one crate, one JSON object
per line, oldest first:

    index/
      config.json          ← registry config, not a package
      .git/                ← ignored
      1/a
      2/cc
      3/s/syn
      se/rd/serde

The last line of each file is the latest version. This module yields exactly
one PackageRecord per package name, which is what the graph builder expects.

Malformed files are skipped with a warning rather than aborting the whole
load: one broken crate should not prevent ranking the rest of the registry.
"""

import json
import logging
import os
from typing import Iterator, Optional

from cargo_rank.config import DEFAULT_CONFIG, RankConfig
from cargo_rank.errors import IndexFormatError
from cargo_rank.index.records import PackageRecord

logger = logging.getLogger(__name__)


def discover_package_files(
    index_root: str,
    config: RankConfig = DEFAULT_CONFIG,
) -> Iterator[str]:
    """
    Yield the path of every package file under index_root, in sorted order.

    Top-level entries named in config.excluded_entries are skipped entirely.
    Top-level regular files are yielded as package files too (a flat index
    with no prefix directories is valid).
    """
    for entry in sorted(os.listdir(index_root)):
        if entry in config.excluded_entries:
            continue
        path = os.path.join(index_root, entry)
        if os.path.isfile(path):
            yield path
            continue
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            for filename in sorted(filenames):
                yield os.path.join(dirpath, filename)


def parse_record_line(line: str) -> PackageRecord:
    """
    Decode a single index line into a PackageRecord.

    Raises:
        IndexFormatError: if the line is not a JSON object with a `name`.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise IndexFormatError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise IndexFormatError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return PackageRecord.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise IndexFormatError(f"malformed package record: {exc!r}") from exc


def read_latest_record(path: str, skip_yanked: bool = False) -> Optional[PackageRecord]:
    """
    Return the latest version recorded in one index file.

    Args:
        path:        Path to a package file.
        skip_yanked: If True, walk back from the end of the file to the most
                     recent version that is not yanked.

    Returns:
        The latest PackageRecord, or None if the file holds no usable line
        (empty file, or every version yanked with skip_yanked=True).

    Raises:
        IndexFormatError: if the selected line cannot be parsed.
    """
    with open(path, encoding="utf-8") as fh:
        lines = [line for line in fh.read().splitlines() if line.strip()]

    for line in reversed(lines):
        record = parse_record_line(line)
        if skip_yanked and record.yanked:
            continue
        return record
    return None


def load_registry_index(
    index_root: str,
    config: RankConfig = DEFAULT_CONFIG,
) -> list[PackageRecord]:
    """
    Load one record per package from a registry index directory.

    Args:
        index_root: Root directory of the index checkout.
        config:     RankConfig. Uses excluded_entries and skip_yanked.

    Returns:
        records: Latest version of every package, in file discovery order.

    Raises:
        FileNotFoundError: if index_root is not a directory.

    Notes:
        - Files that cannot be read or parsed are logged and skipped.
        - If two files declare the same package name, the first one wins.
    """
    if not os.path.isdir(index_root):
        raise FileNotFoundError(f"registry index not found: {index_root}")

    logger.info("Loading registry index from: %s", index_root)

    records: list[PackageRecord] = []
    seen_names: set[str] = set()
    skipped = 0

    for path in discover_package_files(index_root, config):
        try:
            record = read_latest_record(path, skip_yanked=config.skip_yanked)
        except (IndexFormatError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Skipping %s: %s", path, exc)
            skipped += 1
            continue

        if record is None:
            logger.debug("No usable version in %s.", path)
            skipped += 1
            continue

        if record.name in seen_names:
            logger.warning(
                "Duplicate package '%s' in %s — keeping the first occurrence.",
                record.name,
                path,
            )
            skipped += 1
            continue

        seen_names.add(record.name)
        records.append(record)

    logger.info("Loaded %d packages (%d files skipped).", len(records), skipped)
    return records
