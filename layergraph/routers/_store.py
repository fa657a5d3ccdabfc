from fastapi import HTTPException

from layergraph.analytics.graph import GraphStore, GraphStructureError
from layergraph.db import get_db
from layergraph.queries.graph import load_graph_store


def load_store(repo_id: str) -> GraphStore:
    """Load a repo's base graph, mapping structural errors to 422."""
    conn = get_db(repo_id)
    try:
        return load_graph_store(conn)
    except GraphStructureError as ex:
        raise HTTPException(status_code=422, detail=str(ex)) from ex
    finally:
        conn.close()
