# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Dependency graph tracking.

Nodes are every registered or resolved key. An edge ``(caller, callee)`` means
the caller's factory required the callee during a successful resolution;
declared-but-unused dependencies never become edges.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from wiring.injection.keys import TypeKey


def find_cycles(
    nodes: Iterable[TypeKey], edges: Iterable[tuple[TypeKey, TypeKey]]
) -> list[list[TypeKey]]:
    """Depth-first search for cycles.

    Each cycle is reported once, as a closed path ``[a, b, ..., a]`` rotated to
    start at the node seen first.
    """
    order: dict[TypeKey, int] = {}
    adjacency: dict[TypeKey, list[TypeKey]] = {}
    for node in nodes:
        order.setdefault(node, len(order))
        adjacency.setdefault(node, [])
    for caller, callee in edges:
        for node in (caller, callee):
            order.setdefault(node, len(order))
            adjacency.setdefault(node, [])
        adjacency[caller].append(callee)

    visited: set[TypeKey] = set()
    on_path: dict[TypeKey, int] = {}
    path: list[TypeKey] = []
    seen_cycles: set[tuple[TypeKey, ...]] = set()
    cycles: list[list[TypeKey]] = []

    def visit(node: TypeKey) -> None:
        visited.add(node)
        on_path[node] = len(path)
        path.append(node)
        for dependency in adjacency[node]:
            if dependency in on_path:
                cycle = path[on_path[dependency]:]
                pivot = min(range(len(cycle)), key=lambda i: order[cycle[i]])
                canonical = tuple(cycle[pivot:] + cycle[:pivot])
                if canonical not in seen_cycles:
                    seen_cycles.add(canonical)
                    cycles.append([*canonical, canonical[0]])
            elif dependency not in visited:
                visit(dependency)
        path.pop()
        del on_path[node]

    for node in sorted(order, key=order.__getitem__):
        if node not in visited:
            visit(node)
    return cycles


@dataclass(frozen=True)
class GraphAnalysis:
    """Summary of a dependency graph."""

    total_nodes: int
    total_dependencies: int
    max_depth: int
    cycles: list[list[TypeKey]]
    roots: list[TypeKey]
    leaves: list[TypeKey]

    @property
    def has_circular_dependencies(self) -> bool:
        return bool(self.cycles)


@dataclass(frozen=True)
class DependencyGraph:
    """Snapshot of the observed dependency graph."""

    nodes: frozenset[TypeKey] = field(default_factory=frozenset)
    edges: frozenset[tuple[TypeKey, TypeKey]] = field(default_factory=frozenset)

    def dependencies_of(self, key: TypeKey) -> set[TypeKey]:
        """Keys the given key's factory required."""
        return {callee for caller, callee in self.edges if caller == key}

    def dependents_of(self, key: TypeKey) -> set[TypeKey]:
        """Keys whose factories required the given key."""
        return {caller for caller, callee in self.edges if callee == key}

    def depth_of(self, key: TypeKey) -> int:
        """Length of the longest dependency chain below ``key``.

        Edges closing a cycle are not followed.
        """
        adjacency: dict[TypeKey, list[TypeKey]] = {}
        for caller, callee in self.edges:
            adjacency.setdefault(caller, []).append(callee)
        memo: dict[TypeKey, int] = {}

        def depth(node: TypeKey, trail: frozenset[TypeKey]) -> int:
            if node in memo:
                return memo[node]
            best = 0
            for dependency in adjacency.get(node, ()):
                if dependency in trail:
                    continue
                best = max(best, 1 + depth(dependency, trail | {dependency}))
            memo[node] = best
            return best

        return depth(key, frozenset({key}))

    def find_cycles(self) -> list[list[TypeKey]]:
        return find_cycles(self.nodes, self.edges)

    def analyze(self) -> GraphAnalysis:
        callers = {caller for caller, _ in self.edges}
        callees = {callee for _, callee in self.edges}
        return GraphAnalysis(
            total_nodes=len(self.nodes),
            total_dependencies=len(self.edges),
            max_depth=max((self.depth_of(node) for node in self.nodes), default=0),
            cycles=self.find_cycles(),
            roots=[node for node in self.nodes if node not in callees],
            leaves=[node for node in self.nodes if node not in callers],
        )


class GraphTracker:
    """Accumulates nodes and deduplicated edges.

    Append-only; the owner serializes mutation.
    """

    def __init__(self) -> None:
        # dicts keep first-seen order for stable diagnostics
        self._nodes: dict[TypeKey, None] = {}
        self._edges: dict[tuple[TypeKey, TypeKey], None] = {}

    def record_node(self, key: TypeKey) -> None:
        self._nodes.setdefault(key, None)

    def record_edge(self, caller: TypeKey, callee: TypeKey) -> None:
        self.record_node(caller)
        self.record_node(callee)
        self._edges.setdefault((caller, callee), None)

    def snapshot(self) -> DependencyGraph:
        return DependencyGraph(
            nodes=frozenset(self._nodes), edges=frozenset(self._edges)
        )

    def detect_cycles(self) -> list[list[TypeKey]]:
        """Find cycles in the recorded edges without resolving anything."""
        return find_cycles(self._nodes, self._edges)

    def clear_edges(self) -> None:
        self._edges.clear()

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
