from fastapi import APIRouter

from layergraph import db
from layergraph.queries.repos import fetch_repo_list, fetch_repo_overview

router = APIRouter()


@router.get("/api/repos")
def list_repos():
    repos = fetch_repo_list(db.DATA_DIR)
    return {"repos": repos, "total": len(repos)}


@router.get("/api/repos/{repo_id}/overview")
def repo_overview(repo_id: str):
    conn = db.get_db(repo_id)
    try:
        result = fetch_repo_overview(conn)
    finally:
        conn.close()
    return {"repo_id": repo_id, **result}
