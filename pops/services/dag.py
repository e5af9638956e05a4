"""DAG utilities for ordering sync sources by declared dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

WHITE, GRAY, BLACK = 0, 1, 2


class CycleError(ValueError):
    """The dependency graph contains a cycle."""


def topological_order(dependencies: Mapping[str, Sequence[str]]) -> list[str]:
    """Order nodes so that every node comes after all of its dependencies.

    Uses iterative DFS with white/gray/black coloring. O(V+E) time. Nodes with
    no ordering constraint between them keep the order in which they appear
    in ``dependencies``. Dependencies that are not themselves keys are
    ignored, so a caller may order a subset of a larger graph.

    Args:
        dependencies: node -> nodes that must come first.

    Raises:
        CycleError: If a dependency cycle exists (a back-edge to a GRAY node).
    """
    color: dict[str, int] = {node: WHITE for node in dependencies}
    order: list[str] = []

    for start in dependencies:
        if color[start] != WHITE:
            continue
        # Stack entries: (node, dep_index). dep_index tracks iteration
        # progress through dependencies[node].
        stack: list[tuple[str, int]] = [(start, 0)]
        color[start] = GRAY
        while stack:
            node, idx = stack[-1]
            deps = [d for d in dependencies[node] if d in color]
            if idx < len(deps):
                stack[-1] = (node, idx + 1)
                dep = deps[idx]
                if color[dep] == GRAY:
                    msg = f"Dependency cycle through {node!r} -> {dep!r}"
                    raise CycleError(msg)
                if color[dep] == WHITE:
                    color[dep] = GRAY
                    stack.append((dep, 0))
            else:
                color[node] = BLACK
                order.append(node)
                stack.pop()

    return order
