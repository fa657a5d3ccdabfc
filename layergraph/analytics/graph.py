"""
Graph store — the read-only typed property graph the analytics run on.

Wraps a networkx MultiDiGraph. Every node carries `kind` (Package | Type |
Method); every edge is keyed by its edge kind, so the same (source, target)
pair can hold one CONTAINS and one DEPENDS_ON edge side by side. Parallel
INVOKES edges between the same two methods collapse into one edge whose
`count` attribute records the call-site multiplicity.

The store is validated once on construction and never mutated afterwards:
analytics hold read references only.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator

import networkx as nx

# ── Kinds ─────────────────────────────────────────────────────────────────────

PACKAGE = "Package"
TYPE    = "Type"
METHOD  = "Method"
NODE_KINDS = (PACKAGE, TYPE, METHOD)

CONTAINS   = "CONTAINS"
DECLARES   = "DECLARES"
INVOKES    = "INVOKES"
IMPLEMENTS = "IMPLEMENTS"
EXTENDS    = "EXTENDS"
DEPENDS_ON = "DEPENDS_ON"
USES       = "USES"      # derived only, never stored here

# edge kind → (source node kind, target node kind)
EDGE_ENDPOINTS: dict[str, tuple[str, str]] = {
    CONTAINS:   (PACKAGE, TYPE),
    DECLARES:   (TYPE,    METHOD),
    INVOKES:    (METHOD,  METHOD),
    IMPLEMENTS: (TYPE,    TYPE),
    EXTENDS:    (TYPE,    TYPE),
    DEPENDS_ON: (TYPE,    TYPE),
}

INHERITANCE_KINDS = (IMPLEMENTS, EXTENDS)

CONTROLLER = "Controller"
SERVICE    = "Service"
REPOSITORY = "Repository"
COMPONENT  = "Component"   # union tag, computed
ROLES = frozenset({CONTROLLER, SERVICE, REPOSITORY})


# ── Structural errors ─────────────────────────────────────────────────────────

class GraphStructureError(ValueError):
    """The base graph is malformed; no trustworthy derivation is possible."""


class DanglingReferenceError(GraphStructureError):
    def __init__(self, edge_kind: str, source: str, target: str, missing: str):
        self.edge_kind = edge_kind
        self.source    = source
        self.target    = target
        self.missing   = missing
        super().__init__(
            f"{edge_kind} edge {source!r} -> {target!r} references unknown node {missing!r}"
        )


class InvalidEdgeError(GraphStructureError):
    pass


class UnknownRoleError(GraphStructureError):
    pass


# ── Row parsing ───────────────────────────────────────────────────────────────

def parse_roles(raw) -> frozenset[str]:
    """Accept a comma separated string or any iterable of role names."""
    if not raw:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.split(",")
    return frozenset(r.strip() for r in raw if r and r.strip())


class GraphStore:
    """Immutable typed graph exposing structural iteration primitives."""

    def __init__(self, graph: nx.MultiDiGraph):
        self._g = graph
        self._declarer: dict[str, str] = {}
        self._validate()
        nx.freeze(self._g)

    @classmethod
    def from_rows(cls, nodes: Iterable[dict], edges: Iterable[dict]) -> "GraphStore":
        """
        Build a store from plain row dicts.

        nodes — {id, kind, name?, fqn?, is_interface?, roles?}
        edges — {source_id, target_id, kind, attributes?}
        """
        G = nx.MultiDiGraph()
        for n in nodes:
            node_id = n["id"]
            kind    = n.get("kind")
            if kind not in NODE_KINDS:
                raise InvalidEdgeError(f"node {node_id!r} has unknown kind {kind!r}")
            roles = parse_roles(n.get("roles"))
            unknown = roles - ROLES
            if unknown:
                raise UnknownRoleError(
                    f"node {node_id!r} carries unknown role(s): {', '.join(sorted(unknown))}"
                )
            if roles and kind != TYPE:
                raise UnknownRoleError(f"role tags are only valid on types, not {kind} {node_id!r}")
            if node_id in G:
                raise InvalidEdgeError(f"node id {node_id!r} appears more than once")
            name = n.get("name") or node_id
            G.add_node(
                node_id,
                kind=kind,
                name=name,
                fqn=n.get("fqn") or name,
                is_interface=bool(n.get("is_interface")),
                roles=roles,
            )

        for e in edges:
            src, dst, kind = e["source_id"], e["target_id"], e["kind"]
            if kind not in EDGE_ENDPOINTS:
                raise InvalidEdgeError(f"edge {src!r} -> {dst!r} has unknown kind {kind!r}")
            for endpoint in (src, dst):
                if endpoint not in G:
                    raise DanglingReferenceError(kind, src, dst, endpoint)
            attrs = e.get("attributes") or {}
            if not isinstance(attrs, dict):
                raise InvalidEdgeError(
                    f"{kind} edge {src!r} -> {dst!r} has attributes that are not an object: {attrs!r}"
                )
            attrs = dict(attrs)
            if G.has_edge(src, dst, key=kind):
                data = G.edges[src, dst, kind]
                data["count"] += 1
                if attrs:
                    data["facts"].append(attrs)
            else:
                G.add_edge(src, dst, key=kind, count=1, facts=[attrs] if attrs else [])
        return cls(G)

    def _validate(self) -> None:
        for src, dst, kind in self._g.edges(keys=True):
            if kind not in EDGE_ENDPOINTS:
                raise InvalidEdgeError(f"edge {src!r} -> {dst!r} has unknown kind {kind!r}")
            # networkx creates bare nodes for unseen edge endpoints
            for endpoint in (src, dst):
                if "kind" not in self._g.nodes[endpoint]:
                    raise DanglingReferenceError(kind, src, dst, endpoint)
            want_src, want_dst = EDGE_ENDPOINTS[kind]
            got_src = self._g.nodes[src]["kind"]
            got_dst = self._g.nodes[dst]["kind"]
            if (got_src, got_dst) != (want_src, want_dst):
                raise InvalidEdgeError(
                    f"{kind} edge {src!r} -> {dst!r} connects {got_src} -> {got_dst}, "
                    f"expected {want_src} -> {want_dst}"
                )
            if kind == DECLARES:
                owner = self._declarer.setdefault(dst, src)
                if owner != src:
                    raise InvalidEdgeError(
                        f"method {dst!r} is declared by both {owner!r} and {src!r}"
                    )

    # ── Primitives ───────────────────────────────────────────────────────────

    def all_nodes_of_kind(self, kind: str) -> list[str]:
        """Node ids of one kind, sorted for deterministic iteration."""
        return sorted(h for h, k in self._g.nodes(data="kind") if k == kind)

    def outgoing_edges(self, node: str, edge_kind: str) -> Iterator[tuple[str, dict]]:
        """Yield (target, data) for every edge of edge_kind leaving node."""
        for _, dst, key, data in self._g.out_edges(node, keys=True, data=True):
            if key == edge_kind:
                yield dst, data

    def incoming_edges(self, node: str, edge_kind: str) -> Iterator[tuple[str, dict]]:
        """Yield (source, data) for every edge of edge_kind entering node."""
        for src, _, key, data in self._g.in_edges(node, keys=True, data=True):
            if key == edge_kind:
                yield src, data

    def has_role(self, node: str, role: str) -> bool:
        roles = self._g.nodes[node]["roles"]
        if role == COMPONENT:
            return bool(roles)
        return role in roles

    # ── Read helpers ─────────────────────────────────────────────────────────

    def __contains__(self, node: str) -> bool:
        return node in self._g

    def __len__(self) -> int:
        return self._g.number_of_nodes()

    def node(self, node: str) -> dict:
        return self._g.nodes[node]

    def kind(self, node: str) -> str:
        return self._g.nodes[node]["kind"]

    def label(self, node: str) -> str:
        return self._g.nodes[node]["fqn"]

    def roles(self, node: str) -> frozenset[str]:
        return self._g.nodes[node]["roles"]

    def is_interface(self, node: str) -> bool:
        return self._g.nodes[node]["is_interface"]

    def declaring_type(self, method: str) -> str | None:
        return self._declarer.get(method)

    def components(self) -> list[str]:
        return [t for t in self.all_nodes_of_kind(TYPE) if self.has_role(t, COMPONENT)]

    def containing_package(self, type_id: str) -> str | None:
        """First containing package by id; ingestion emits at most one."""
        return min((p for p, _ in self.incoming_edges(type_id, CONTAINS)), default=None)

    def edge_count(self, edge_kind: str | None = None) -> int:
        if edge_kind is None:
            return self._g.number_of_edges()
        return sum(1 for _, _, k in self._g.edges(keys=True) if k == edge_kind)

    def sort_key(self, node: str) -> tuple[str, str]:
        return (self.label(node), node)
