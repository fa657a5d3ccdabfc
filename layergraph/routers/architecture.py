from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from layergraph.analytics.constraints import (
    DEFAULT_CONSTRAINTS,
    evaluate_constraints,
    get_constraint,
)
from layergraph.analytics.pipeline import run_analysis, uses_rows
from layergraph.analytics.usage import derive_uses
from layergraph.routers._store import load_store

router = APIRouter()


class CheckRequest(BaseModel):
    constraints: Optional[list[str]] = None
    workers:     int                 = Field(1, ge=1, le=32)


def _resolve(names: Optional[list[str]]):
    if not names:
        return DEFAULT_CONSTRAINTS
    try:
        return tuple(get_constraint(n) for n in names)
    except KeyError as ex:
        raise HTTPException(status_code=400, detail=ex.args[0]) from ex


@router.get("/api/repos/{repo_id}/uses")
def repo_uses(repo_id: str):
    store = load_store(repo_id)
    uses  = derive_uses(store)
    return {"edges": uses_rows(store, uses), "total": len(uses)}


@router.get("/api/repos/{repo_id}/violations")
def repo_violations(
    repo_id:    str,
    constraint: Optional[list[str]] = Query(None),
):
    constraints = _resolve(constraint)
    store   = load_store(repo_id)
    reports = evaluate_constraints(store, derive_uses(store), constraints)
    return {
        "reports":         reports,
        "violation_count": sum(r["violation_count"] for r in reports),
    }


@router.post("/api/repos/{repo_id}/check")
def repo_check(repo_id: str, req: CheckRequest):
    constraints = _resolve(req.constraints)
    store = load_store(repo_id)
    return {"repo_id": repo_id, **run_analysis(store, constraints, workers=req.workers)}
