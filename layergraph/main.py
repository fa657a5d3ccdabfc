"""
Layergraph — FastAPI Backend
Serves layering analysis of component graphs stored as SQLite exports.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from layergraph.routers import architecture, export, repos

app = FastAPI(title="Layergraph API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(repos.router)
app.include_router(architecture.router)
app.include_router(export.router)
