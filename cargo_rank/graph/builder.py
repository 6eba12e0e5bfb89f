"""
cargo_rank/graph/builder.py — Dependency graph and transition model construction.

Two views of the same package collection are built here:

    TransitionModel  — dense, integer-addressed, row-stochastic weights that the
                       rank iterator consumes. Built with numpy.
    nx.DiGraph       — the named dependency graph, used for structural
                       statistics, reports and figures.

Edge direction follows the registry: A → B means "A depends on B". Rank mass
therefore flows from a package toward the packages it depends on.

Transition rule for package i:
    D(i) = distinct dependency names of i that exist in the index.
    D(i) non-empty → each j in D(i) gets weight 1/|D(i)|.
    D(i) empty     → i is dangling; every other package gets 1/(N-1).

A renamed dependency (`package` set) points at the real crate, not its alias.
Self-dependencies are kept as ordinary edges. Dependencies on crates that are
not in the collection are dropped before |D(i)| is computed, so a package that
only depends on unknown crates is dangling.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import networkx as nx
import numpy as np

from cargo_rank.errors import EmptyGraphError
from cargo_rank.index.records import PackageRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageIndex:
    """
    Bijection between package names and dense positions 0..N-1.

    Positions follow input order. Built once per ranking run and never
    mutated afterwards.
    """

    names: tuple[str, ...]
    positions: dict[str, int] = field(hash=False, compare=False)

    @classmethod
    def from_records(cls, records: Iterable[PackageRecord]) -> "PackageIndex":
        names = tuple(record.name for record in records)
        return cls(names=names, positions={name: i for i, name in enumerate(names)})

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.positions

    def position(self, name: str) -> int:
        return self.positions[name]

    def name_at(self, position: int) -> str:
        return self.names[position]


@dataclass(frozen=True, eq=False)
class TransitionModel:
    """
    Row-stochastic transition weights over the packages of a PackageIndex.

    Explicit edges are stored in CSR form: the targets of row i are
    indices[indptr[i]:indptr[i + 1]] with matching weights. Dangling rows hold
    no explicit edges; their uniform 1/(N-1) spread over every other package
    is implied and applied by the rank iterator in O(N).

    Attributes:
        index:    PackageIndex the positions refer to.
        indptr:   int64 array of length N + 1 (row offsets).
        indices:  int64 array of target positions.
        weights:  float64 array of edge weights, aligned with indices.
        dangling: int64 array of dangling row positions, ascending.
    """

    index: PackageIndex
    indptr: np.ndarray = field(repr=False)
    indices: np.ndarray = field(repr=False)
    weights: np.ndarray = field(repr=False)
    dangling: np.ndarray = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.index)

    @property
    def number_of_edges(self) -> int:
        """Number of explicit (non-dangling) edges."""
        return int(self.indices.shape[0])

    @property
    def sources(self) -> np.ndarray:
        """Source position of every explicit edge, aligned with indices."""
        return np.repeat(np.arange(self.size, dtype=np.int64), np.diff(self.indptr))

    def is_dangling(self, position: int) -> bool:
        return bool(self.indptr[position] == self.indptr[position + 1])

    def outgoing(self, position: int) -> list[tuple[int, float]]:
        """
        Return the (target, weight) pairs of one row.

        Dangling rows are expanded to every other package with 1/(N-1). The
        dangling row of a single-package model is empty (the spread is
        undefined for N = 1).
        """
        start, stop = self.indptr[position], self.indptr[position + 1]
        if start != stop:
            return [
                (int(j), float(w))
                for j, w in zip(self.indices[start:stop], self.weights[start:stop])
            ]
        n = self.size
        if n == 1:
            return []
        share = 1.0 / (n - 1)
        return [(j, share) for j in range(n) if j != position]

    def row_sums(self) -> np.ndarray:
        """Total outgoing weight per row. 1.0 everywhere except a singleton dangling row."""
        sums = np.bincount(self.sources, weights=self.weights, minlength=self.size).astype(float)
        if self.size > 1:
            sums[self.dangling] = 1.0
        return sums

    def to_dense(self) -> np.ndarray:
        """
        Materialise the full N × N transition matrix M (M[i, j] = weight of i → j).

        Intended for small graphs and for cross-checking the iterator.
        """
        n = self.size
        dense = np.zeros((n, n), dtype=float)
        np.add.at(dense, (self.sources, self.indices), self.weights)
        if n > 1:
            dense[self.dangling, :] = 1.0 / (n - 1)
            dense[self.dangling, self.dangling] = 0.0
        return dense


def build_transition_model(records: Sequence[PackageRecord]) -> TransitionModel:
    """
    Build the PackageIndex and TransitionModel for a package collection.

    Args:
        records: Package records with unique names (not re-validated here).

    Returns:
        model: TransitionModel whose rows each sum to 1.0.

    Raises:
        EmptyGraphError: if records is empty.

    Complexity:
        O(N + total declared dependencies).
    """
    if len(records) == 0:
        raise EmptyGraphError()

    index = PackageIndex.from_records(records)

    indptr: list[int] = [0]
    indices: list[int] = []
    weights: list[float] = []
    dangling: list[int] = []
    unresolved = 0

    for i, record in enumerate(records):
        targets: list[int] = []
        seen: set[int] = set()
        for dep_name in record.dependency_names:
            j = index.positions.get(dep_name)
            if j is None:
                unresolved += 1
                continue
            if j not in seen:
                seen.add(j)
                targets.append(j)

        if targets:
            share = 1.0 / len(targets)
            indices.extend(targets)
            weights.extend([share] * len(targets))
        else:
            dangling.append(i)
        indptr.append(len(indices))

    model = TransitionModel(
        index=index,
        indptr=np.asarray(indptr, dtype=np.int64),
        indices=np.asarray(indices, dtype=np.int64),
        weights=np.asarray(weights, dtype=float),
        dangling=np.asarray(dangling, dtype=np.int64),
    )

    logger.info(
        "Transition model built: %d packages, %d edges, %d dangling, "
        "%d unresolved dependency references dropped.",
        model.size,
        model.number_of_edges,
        len(dangling),
        unresolved,
    )
    return model


def build_dependency_digraph(records: Sequence[PackageRecord]) -> nx.DiGraph:
    """
    Build the named dependency graph for a package collection.

    Node attributes:
        vers, yanked, declared_dependencies (count, duplicates included),
        node_type='Package'

    Edge attributes (one edge per distinct in-collection dependency):
        edge_type='depends_on', req, kind, optional, alias (local name of a
        renamed dependency, else None) — taken from the first
        declaration when a dependency name is repeated.

    Graph attributes:
        G.graph['unresolved_dependencies'] — references to crates outside
        the collection (dropped, as in the transition model).
    """
    G = nx.DiGraph()

    for record in records:
        G.add_node(
            record.name,
            node_type="Package",
            vers=record.vers,
            yanked=record.yanked,
            declared_dependencies=len(record.deps),
        )

    unresolved = 0
    for record in records:
        for dep in record.deps:
            target = dep.crate_name
            if target not in G:
                unresolved += 1
                continue
            if G.has_edge(record.name, target):
                continue
            G.add_edge(
                record.name,
                target,
                edge_type="depends_on",
                alias=dep.name if dep.package else None,
                req=dep.req,
                kind=dep.kind or "normal",
                optional=dep.optional,
            )

    G.graph["unresolved_dependencies"] = unresolved

    logger.debug(
        "Dependency graph built: %d nodes, %d edges.",
        G.number_of_nodes(),
        G.number_of_edges(),
    )
    return G


def summarize_dependency_graph(G: nx.DiGraph, model: TransitionModel) -> dict:
    """
    Structural statistics for reports and the `stats` command.

    Returns:
        Dict with keys: packages, dependency_edges, dangling_packages,
        self_dependencies, unresolved_dependencies,
        weakly_connected_components, largest_component_size,
        most_depended_on (name, dependent count) or None.
    """
    components = list(nx.weakly_connected_components(G))
    in_degrees = sorted(G.in_degree(), key=lambda item: (-item[1], item[0]))
    most_depended_on = in_degrees[0] if in_degrees and in_degrees[0][1] > 0 else None

    return {
        "packages": G.number_of_nodes(),
        "dependency_edges": G.number_of_edges(),
        "dangling_packages": int(model.dangling.shape[0]),
        "self_dependencies": nx.number_of_selfloops(G),
        "unresolved_dependencies": G.graph.get("unresolved_dependencies", 0),
        "weakly_connected_components": len(components),
        "largest_component_size": max((len(c) for c in components), default=0),
        "most_depended_on": most_depended_on,
    }
