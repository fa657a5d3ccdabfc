"""
Hierarchical graph export — pure functions only.

Two views, both shaped
    {"view", "nodes": [{id, label, kind, parent, roles?, children?}],
     "edges": [{source, target, kind, attributes}]}

Package nodes are groups: `children` lists the ids of the contained types,
and every child also appears as its own node entry with `parent` set.
Serialization to disk is left to write_export / the caller.
"""
from __future__ import annotations

import json
from pathlib import Path

from layergraph.analytics.graph import (
    CONTAINS,
    DEPENDS_ON,
    PACKAGE,
    TYPE,
    USES,
    GraphStore,
)
from layergraph.analytics.usage import UsesEdges


def _type_node(store: GraphStore, t: str, parent: str | None) -> dict:
    return {
        "id":           t,
        "label":        store.label(t),
        "kind":         TYPE,
        "parent":       parent,
        "is_interface": store.is_interface(t),
        "roles":        sorted(store.roles(t)),
    }


def _grouped_nodes(store: GraphStore, types: list[str], keep_empty: bool) -> list[dict]:
    """
    Package group nodes followed by their type nodes.

    types      — the type ids that belong in the view
    keep_empty — emit packages with no member in `types`
    """
    members = set(types)
    nodes: list[dict] = []
    placed: set[str] = set()

    for pkg in sorted(store.all_nodes_of_kind(PACKAGE), key=store.sort_key):
        children = sorted(
            (t for t, _ in store.outgoing_edges(pkg, CONTAINS) if t in members and t not in placed),
            key=store.sort_key,
        )
        if not children and not keep_empty:
            continue
        nodes.append({
            "id":       pkg,
            "label":    store.label(pkg),
            "kind":     PACKAGE,
            "parent":   None,
            "children": children,
        })
        for t in children:
            nodes.append(_type_node(store, t, pkg))
        placed.update(children)

    # Types outside any package sit at the top level
    for t in sorted(members - placed, key=store.sort_key):
        nodes.append(_type_node(store, t, None))
    return nodes


def export_layer_view(store: GraphStore, uses: UsesEdges) -> dict:
    """Component types grouped by package, with the derived USES edges."""
    nodes = _grouped_nodes(store, store.components(), keep_empty=False)
    edges = [
        {
            "source":     src,
            "target":     dst,
            "kind":       USES,
            "attributes": dict(attrs),
        }
        for (src, dst), attrs in sorted(uses.items())
    ]
    return {"view": "layers", "nodes": nodes, "edges": edges}


def export_package_view(store: GraphStore) -> dict:
    """Every package with its types as children, plus DEPENDS_ON between types."""
    types = store.all_nodes_of_kind(TYPE)
    nodes = _grouped_nodes(store, types, keep_empty=True)

    edges = []
    for src in types:
        for dst, data in sorted(store.outgoing_edges(src, DEPENDS_ON), key=lambda e: e[0]):
            if dst == src:
                continue
            edges.append({
                "source":     src,
                "target":     dst,
                "kind":       DEPENDS_ON,
                "attributes": {"count": data["count"], "facts": list(data["facts"])},
            })
    return {"view": "packages", "nodes": nodes, "edges": edges}


def write_export(export: dict, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(export, indent=2))
    return path
