"""
Layering check — command-line analysis run over one graph export.

Loads the base graph from a SQLite export, derives USES edges, evaluates the
layering constraints and writes the full report (violations + both export
views) as JSON.

Usage:
    python3 -m layergraph.check data/myrepo.db
    python3 -m layergraph.check data/myrepo.db --out data/myrepo.report.json
    python3 -m layergraph.check data/myrepo.db --constraint controller-layer --workers 4

Exit status: 0 clean, 1 violations found, 2 malformed graph or bad input.
"""
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from layergraph.analytics.constraints import DEFAULT_CONSTRAINTS, Constraint, get_constraint
from layergraph.analytics.export import write_export
from layergraph.analytics.graph import GraphStructureError
from layergraph.analytics.pipeline import run_analysis
from layergraph.db import connect
from layergraph.queries.graph import load_graph_store


def report_path(db_path: Path) -> Path:
    """Default output path: {stem}.report.json next to the DB."""
    return db_path.parent / (db_path.stem + ".report.json")


def check(
    db_path: Path,
    out_path: Path | None = None,
    constraints: tuple[Constraint, ...] = DEFAULT_CONSTRAINTS,
    workers: int = 1,
    verbose: bool = True,
) -> dict:
    """Run one analysis and write the report; returns the report dict."""
    t0 = time.time()
    out_path = out_path or report_path(db_path)

    if verbose:
        print(f"Loading {db_path.name} ...", flush=True)
    conn = connect(db_path)
    try:
        store = load_graph_store(conn)
    finally:
        conn.close()
    if verbose:
        print(f"  {len(store)} nodes, {store.edge_count()} edges", flush=True)

    report = run_analysis(store, constraints, workers=workers)
    report["elapsed_seconds"] = round(time.time() - t0, 2)

    write_export(report, out_path)

    if verbose:
        summary = report["summary"]
        print(f"  USES edges: {summary['uses_count']}", flush=True)
        for r in report["violations"]:
            status = "ok" if r["passed"] else f"{r['violation_count']} violation(s)"
            print(f"  {r['constraint']}: {status}", flush=True)
            for v in r["violations"][:10]:
                print(f"    {v['offender_name']} -> {v['target_name']}")
        print(f"\nDone in {report['elapsed_seconds']}s → {out_path}", flush=True)

    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check layering constraints on a graph export.")
    parser.add_argument("db", help="Path to the graph .db file")
    parser.add_argument("--out", help="Output JSON path (default: {stem}.report.json)")
    parser.add_argument("--constraint", action="append", dest="constraints",
                        help="Constraint name to evaluate (repeatable; default: all)")
    parser.add_argument("--workers", type=int, default=1,
                        help="Worker threads for derivation and evaluation")
    parser.add_argument("--quiet", action="store_true", help="No progress output")
    args = parser.parse_args(argv)

    db_path = Path(args.db)
    if not db_path.exists():
        print(f"ERROR {db_path}: no such file", file=sys.stderr)
        return 2

    try:
        constraints = (
            tuple(get_constraint(n) for n in args.constraints)
            if args.constraints else DEFAULT_CONSTRAINTS
        )
    except KeyError as ex:
        print(f"ERROR {ex.args[0]}", file=sys.stderr)
        return 2

    try:
        report = check(
            db_path,
            Path(args.out) if args.out else None,
            constraints,
            workers=max(1, args.workers),
            verbose=not args.quiet,
        )
    except GraphStructureError as ex:
        print(f"ERROR {db_path.name}: {ex}", file=sys.stderr)
        return 2

    return 0 if report["summary"]["passed"] else 1


if __name__ == "__main__":
    sys.exit(main())
