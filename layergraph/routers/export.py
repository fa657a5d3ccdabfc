from fastapi import APIRouter

from layergraph.analytics.export import export_layer_view, export_package_view
from layergraph.analytics.usage import derive_uses
from layergraph.routers._store import load_store

router = APIRouter()


@router.get("/api/repos/{repo_id}/export/layers")
def layer_view(repo_id: str):
    store = load_store(repo_id)
    return export_layer_view(store, derive_uses(store))


@router.get("/api/repos/{repo_id}/export/packages")
def package_view(repo_id: str):
    return export_package_view(load_store(repo_id))
