"""
Usage derivation — pure functions only.

Turns method-level INVOKES facts into component-level USES edges.

A call from a method of component T1 to a method m2 declared on type I
resolves to every component that is I itself or reaches I through one or
more IMPLEMENTS/EXTENDS hops. Calls through an interface therefore land on
each concrete implementor, not only on the static target.

Output shape (UsesEdges):
    {(source_id, target_id): {"via": [declaring type ids],
                              "invocations": [[caller_method, callee_method], ...]}}
Both lists are sorted; the result is a pure function of the base graph.
"""
from __future__ import annotations

from collections import deque
from concurrent.futures import ThreadPoolExecutor

import networkx as nx

from layergraph.analytics.graph import (
    COMPONENT,
    DECLARES,
    INHERITANCE_KINDS,
    INVOKES,
    GraphStore,
)

UsesEdges = dict[tuple[str, str], dict]


def implementors(store: GraphStore, declaring_type: str) -> set[str]:
    """
    declaring_type plus every type that transitively implements/extends it.

    BFS backwards over IMPLEMENTS/EXTENDS with a visited set, so inheritance
    cycles and diamonds visit each type once.
    """
    visited = {declaring_type}
    queue = deque([declaring_type])
    while queue:
        current = queue.popleft()
        for kind in INHERITANCE_KINDS:
            for sub, _ in store.incoming_edges(current, kind):
                if sub not in visited:
                    visited.add(sub)
                    queue.append(sub)
    return visited


def _derive_for_roots(
    store: GraphStore,
    roots: list[str],
    closure: dict[str, frozenset[str]],
) -> dict[tuple[str, str], tuple[set, set]]:
    """Partial result for a slice of source components."""
    partial: dict[tuple[str, str], tuple[set, set]] = {}
    for t1 in roots:
        for m1, _ in store.outgoing_edges(t1, DECLARES):
            for m2, _ in store.outgoing_edges(m1, INVOKES):
                if m2 == m1:
                    continue
                declarer = store.declaring_type(m2)
                if declarer is None:
                    continue
                for t2 in closure[declarer]:
                    if t2 == t1 or not store.has_role(t2, COMPONENT):
                        continue
                    via, calls = partial.setdefault((t1, t2), (set(), set()))
                    via.add(declarer)
                    calls.add((m1, m2))
    return partial


def _chunks(items: list[str], n: int) -> list[list[str]]:
    size = max(1, -(-len(items) // n))
    return [items[i:i + size] for i in range(0, len(items), size)]


def derive_uses(store: GraphStore, workers: int = 1) -> UsesEdges:
    """
    Compute the complete USES edge set between Component types.

    workers — >1 splits the source components across a thread pool; the
              coordinator merges per-worker partials, so the result does not
              depend on the worker count.
    """
    roots = store.components()
    if not roots:
        return {}

    # Implementor closure, computed once per declaring type
    declarers = {
        store.declaring_type(m2)
        for t1 in roots
        for m1, _ in store.outgoing_edges(t1, DECLARES)
        for m2, _ in store.outgoing_edges(m1, INVOKES)
    }
    declarers.discard(None)
    closure = {d: frozenset(implementors(store, d)) for d in sorted(declarers)}

    if workers > 1 and len(roots) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            partials = list(pool.map(
                lambda chunk: _derive_for_roots(store, chunk, closure),
                _chunks(roots, workers),
            ))
    else:
        partials = [_derive_for_roots(store, roots, closure)]

    merged: dict[tuple[str, str], tuple[set, set]] = {}
    for partial in partials:
        for pair, (via, calls) in partial.items():
            m_via, m_calls = merged.setdefault(pair, (set(), set()))
            m_via |= via
            m_calls |= calls

    return {
        pair: {
            "via":         sorted(via),
            "invocations": [list(c) for c in sorted(calls)],
        }
        for pair, (via, calls) in sorted(merged.items())
    }


def uses_pairs(uses: UsesEdges) -> list[tuple[str, str]]:
    return sorted(uses)


def uses_graph(store: GraphStore, uses: UsesEdges) -> nx.DiGraph:
    """Component-level DiGraph of the derived edges, for downstream analysis."""
    G = nx.DiGraph()
    for t in store.components():
        G.add_node(t, label=store.label(t), roles=sorted(store.roles(t)))
    for (src, dst), attrs in uses.items():
        G.add_edge(src, dst, **attrs)
    return G
