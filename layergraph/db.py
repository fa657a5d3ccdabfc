"""
Database helpers shared across queries and routers.
No analysis logic lives here — only I/O primitives.
"""
import sqlite3
from pathlib import Path

from fastapi import HTTPException

DATA_DIR = Path(__file__).parent.parent / "data"

SCHEMA = """
CREATE TABLE IF NOT EXISTS nodes (
    id            TEXT PRIMARY KEY,
    kind          TEXT NOT NULL,     -- Package | Type | Method
    name          TEXT,
    fqn           TEXT,
    is_interface  INTEGER DEFAULT 0, -- bool
    roles         TEXT DEFAULT ''    -- comma separated: Controller,Service,Repository
);
CREATE TABLE IF NOT EXISTS edges (
    source_id   TEXT NOT NULL,
    target_id   TEXT NOT NULL,
    kind        TEXT NOT NULL,       -- CONTAINS | DECLARES | INVOKES | IMPLEMENTS | EXTENDS | DEPENDS_ON
    attributes  TEXT                 -- optional JSON object, passed through
);
"""


def row_to_dict(row) -> dict:
    return dict(row)


def db_path(repo_id: str) -> Path:
    return DATA_DIR / f"{repo_id}.db"


def connect(path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def get_db(repo_id: str) -> sqlite3.Connection:
    path = db_path(repo_id)
    if not path.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Repo '{repo_id}' not found. Expected graph export at data/{repo_id}.db",
        )
    return connect(path)


def create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
    conn.commit()
