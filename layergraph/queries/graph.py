"""
Base graph queries — DB I/O only.
"""
from __future__ import annotations

import json
import sqlite3

from layergraph.analytics.graph import GraphStore, InvalidEdgeError
from layergraph.db import row_to_dict


def fetch_graph_rows(conn: sqlite3.Connection) -> tuple[list[dict], list[dict]]:
    """
    Fetch every node and edge row of the base graph.

    Returns (nodes, edges) as plain lists of dicts. Edge `attributes` JSON is
    decoded to a dict (None when absent).
    """
    cur = conn.cursor()
    cur.execute("SELECT id, kind, name, fqn, is_interface, roles FROM nodes ORDER BY id")
    nodes = [row_to_dict(r) for r in cur.fetchall()]

    cur.execute(
        "SELECT source_id, target_id, kind, attributes FROM edges "
        "ORDER BY kind, source_id, target_id"
    )
    edges = []
    for r in cur.fetchall():
        e = row_to_dict(r)
        raw = e.get("attributes")
        try:
            e["attributes"] = json.loads(raw) if raw else None
        except json.JSONDecodeError as ex:
            raise InvalidEdgeError(
                f"{e['kind']} edge {e['source_id']!r} -> {e['target_id']!r} "
                f"has malformed attributes JSON: {ex.msg}"
            ) from ex
        edges.append(e)

    return nodes, edges


def load_graph_store(conn: sqlite3.Connection) -> GraphStore:
    """Build the validated, immutable GraphStore for one analysis run."""
    nodes, edges = fetch_graph_rows(conn)
    return GraphStore.from_rows(nodes, edges)


def insert_graph_rows(
    conn: sqlite3.Connection,
    nodes: list[dict],
    edges: list[dict],
) -> None:
    """Write node/edge rows (ingestion side; used by fixtures and importers)."""
    conn.executemany(
        "INSERT INTO nodes (id, kind, name, fqn, is_interface, roles) VALUES (?,?,?,?,?,?)",
        [
            (
                n["id"], n["kind"], n.get("name"), n.get("fqn"),
                int(bool(n.get("is_interface"))),
                n["roles"] if isinstance(n.get("roles"), str) else ",".join(n.get("roles") or ()),
            )
            for n in nodes
        ],
    )
    conn.executemany(
        "INSERT INTO edges (source_id, target_id, kind, attributes) VALUES (?,?,?,?)",
        [
            (
                e["source_id"], e["target_id"], e["kind"],
                json.dumps(e["attributes"]) if e.get("attributes") else None,
            )
            for e in edges
        ],
    )
    conn.commit()
