"""
Repo list and overview queries — DB I/O only.
"""
from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path

from layergraph.db import connect


def fetch_repo_list(data_dir: Path) -> list[dict]:
    """Scan data_dir for .db files and return basic stats for each."""
    repos = []
    for db_file in sorted(data_dir.glob("*.db")):
        try:
            with closing(connect(db_file)) as conn:
                node_count = conn.execute("SELECT COUNT(*) as n FROM nodes").fetchone()["n"]
                edge_count = conn.execute("SELECT COUNT(*) as n FROM edges").fetchone()["n"]
        except sqlite3.DatabaseError:
            # not a graph export (or unreadable) — leave it out of the listing
            continue
        repos.append({
            "id":         db_file.stem,
            "name":       db_file.stem,
            "node_count": node_count,
            "edge_count": edge_count,
            "db_path":    str(db_file),
        })
    return repos


def fetch_repo_overview(conn: sqlite3.Connection) -> dict:
    """Node counts per kind, edge counts per kind, and role tag counts."""
    cur = conn.cursor()
    node_counts = {
        r["kind"]: r["n"]
        for r in cur.execute("SELECT kind, COUNT(*) as n FROM nodes GROUP BY kind").fetchall()
    }
    edge_counts = {
        r["kind"]: r["n"]
        for r in cur.execute("SELECT kind, COUNT(*) as n FROM edges GROUP BY kind").fetchall()
    }
    role_counts: dict[str, int] = {}
    for (roles,) in cur.execute(
        "SELECT roles FROM nodes WHERE kind = 'Type' AND roles IS NOT NULL AND roles != ''"
    ).fetchall():
        for role in roles.split(","):
            role = role.strip()
            if role:
                role_counts[role] = role_counts.get(role, 0) + 1
    interface_count = cur.execute(
        "SELECT COUNT(*) as n FROM nodes WHERE kind = 'Type' AND is_interface = 1"
    ).fetchone()["n"]

    return {
        "node_counts":     node_counts,
        "edge_counts":     edge_counts,
        "role_counts":     role_counts,
        "interface_count": interface_count,
    }
