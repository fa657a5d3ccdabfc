"""
One analysis run: derive USES once, then evaluate constraints and build both
export views against that cached derivation.
"""
from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from layergraph.analytics.constraints import (
    DEFAULT_CONSTRAINTS,
    Constraint,
    evaluate_constraints,
)
from layergraph.analytics.export import export_layer_view, export_package_view
from layergraph.analytics.graph import (
    CONTROLLER,
    NODE_KINDS,
    REPOSITORY,
    SERVICE,
    GraphStore,
)
from layergraph.analytics.usage import UsesEdges, derive_uses


class AnalysisRun:
    """Holds the base graph and its USES derivation for the duration of a run."""

    def __init__(self, store: GraphStore, workers: int = 1):
        self.store   = store
        self.workers = workers
        self._uses: UsesEdges | None = None

    @property
    def uses(self) -> UsesEdges:
        if self._uses is None:
            self._uses = derive_uses(self.store, workers=self.workers)
        return self._uses

    def violations(self, constraints: Iterable[Constraint] = DEFAULT_CONSTRAINTS) -> list[dict]:
        return evaluate_constraints(self.store, self.uses, constraints, workers=self.workers)

    def layer_view(self) -> dict:
        return export_layer_view(self.store, self.uses)

    def package_view(self) -> dict:
        return export_package_view(self.store)

    def summary(self, reports: list[dict]) -> dict:
        store = self.store
        components = store.components()
        violation_count = sum(r["violation_count"] for r in reports)
        return {
            "node_counts":     {k: len(store.all_nodes_of_kind(k)) for k in NODE_KINDS},
            "component_count": len(components),
            "role_counts": {
                role: sum(1 for t in components if store.has_role(t, role))
                for role in (CONTROLLER, SERVICE, REPOSITORY)
            },
            "uses_count":      len(self.uses),
            "violation_count": violation_count,
            "failed":          [r["constraint"] for r in reports if not r["passed"]],
            "passed":          violation_count == 0,
        }


def uses_rows(store: GraphStore, uses: UsesEdges) -> list[dict]:
    return [
        {
            "source":      src,
            "source_name": store.label(src),
            "target":      dst,
            "target_name": store.label(dst),
            **attrs,
        }
        for (src, dst), attrs in sorted(uses.items())
    ]


def run_analysis(
    store: GraphStore,
    constraints: Iterable[Constraint] = DEFAULT_CONSTRAINTS,
    workers: int = 1,
) -> dict:
    """
    Full run over one immutable graph snapshot.

    Returns {summary, uses, violations, layer_view, package_view}.
    Structural errors surface before anything is computed; there is no
    partial result.
    """
    run = AnalysisRun(store, workers=workers)
    constraints = list(constraints)
    uses = run.uses

    if workers > 1:
        with ThreadPoolExecutor(max_workers=3) as pool:
            f_violations = pool.submit(run.violations, constraints)
            f_layers     = pool.submit(run.layer_view)
            f_packages   = pool.submit(run.package_view)
            reports, layer_view, package_view = (
                f_violations.result(), f_layers.result(), f_packages.result()
            )
    else:
        reports      = run.violations(constraints)
        layer_view   = run.layer_view()
        package_view = run.package_view()

    return {
        "summary":      run.summary(reports),
        "uses":         uses_rows(store, uses),
        "violations":   reports,
        "layer_view":   layer_view,
        "package_view": package_view,
    }
