"""
Layering constraints — pure functions only.

Each constraint is a read-only query over the base graph plus the derived
USES edges and returns the distinct (offender, target) pairs that break it.
An empty set means the constraint passes.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from layergraph.analytics.graph import (
    COMPONENT,
    CONTROLLER,
    DECLARES,
    INVOKES,
    REPOSITORY,
    SERVICE,
    GraphStore,
)
from layergraph.analytics.usage import UsesEdges

Pairs = set[tuple[str, str]]


@dataclass(frozen=True)
class Constraint:
    name: str
    description: str
    check: Callable[[GraphStore, UsesEdges], Pairs]


# ── Implementation coupling ──────────────────────────────────────────────────

def _direct_implementation_calls(store: GraphStore, uses: UsesEdges) -> Pairs:
    """Components calling a method declared directly on a concrete peer component."""
    found: Pairs = set()
    for t1 in store.components():
        for m1, _ in store.outgoing_edges(t1, DECLARES):
            for m2, _ in store.outgoing_edges(m1, INVOKES):
                t2 = store.declaring_type(m2)
                if t2 is None or t2 == t1:
                    continue
                if store.has_role(t2, COMPONENT) and not store.is_interface(t2):
                    found.add((t1, t2))
    return found


# ── Layer rules over USES ─────────────────────────────────────────────────────

def layer_constraint(
    name: str,
    description: str,
    source_role: str,
    allowed_roles: Iterable[str],
) -> Constraint:
    """
    USES(T1, T2) with T1 tagged source_role is a violation unless T2 carries
    at least one of allowed_roles.
    """
    allowed = frozenset(allowed_roles)

    def check(store: GraphStore, uses: UsesEdges) -> Pairs:
        return {
            (t1, t2)
            for t1, t2 in uses
            if store.has_role(t1, source_role)
            and not allowed & store.roles(t2)
        }

    return Constraint(name, description, check)


NO_IMPLEMENTATION_COUPLING = Constraint(
    "no-implementation-coupling",
    "Components must call peer components through an interface, "
    "never through a concrete implementation.",
    _direct_implementation_calls,
)

CONTROLLER_LAYER = layer_constraint(
    "controller-layer",
    "Controllers may only use services.",
    CONTROLLER, (SERVICE,),
)

SERVICE_LAYER = layer_constraint(
    "service-layer",
    "Services may only use services or repositories.",
    SERVICE, (SERVICE, REPOSITORY),
)

REPOSITORY_LAYER = layer_constraint(
    "repository-layer",
    "Repositories may only use repositories.",
    REPOSITORY, (REPOSITORY,),
)

DEFAULT_CONSTRAINTS: tuple[Constraint, ...] = (
    NO_IMPLEMENTATION_COUPLING,
    CONTROLLER_LAYER,
    SERVICE_LAYER,
    REPOSITORY_LAYER,
)

_BY_NAME = {c.name: c for c in DEFAULT_CONSTRAINTS}


def get_constraint(name: str) -> Constraint:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(
            f"Unknown constraint {name!r}. Known: {', '.join(sorted(_BY_NAME))}"
        ) from None


# ── Evaluation ────────────────────────────────────────────────────────────────

def _report(store: GraphStore, constraint: Constraint, pairs: Pairs) -> dict:
    ordered = sorted(
        pairs,
        key=lambda p: (store.label(p[0]), store.label(p[1]), p[0], p[1]),
    )
    return {
        "constraint":      constraint.name,
        "description":     constraint.description,
        "passed":          not ordered,
        "violation_count": len(ordered),
        "violations": [
            {
                "offender":      t1,
                "offender_name": store.label(t1),
                "target":        t2,
                "target_name":   store.label(t2),
            }
            for t1, t2 in ordered
        ],
    }


def evaluate_constraints(
    store: GraphStore,
    uses: UsesEdges,
    constraints: Iterable[Constraint] = DEFAULT_CONSTRAINTS,
    workers: int = 1,
) -> list[dict]:
    """
    Run each constraint and return one report per constraint, in input order.

    Constraints are independent read-only queries; with workers > 1 they run
    on a thread pool and the reports are collected in order.
    """
    constraints = list(constraints)
    names = [c.name for c in constraints]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ValueError(f"Duplicate constraint name(s): {', '.join(dupes)}")

    if workers > 1 and len(constraints) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda c: c.check(store, uses), constraints))
    else:
        results = [c.check(store, uses) for c in constraints]

    return [_report(store, c, pairs) for c, pairs in zip(constraints, results)]
