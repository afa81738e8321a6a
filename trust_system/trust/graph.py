"""Legacy trust graph with damped iterative propagation.

NOT the inference mechanism. Trust here is transitive: it flows along
explicit edges through intermediaries, the opposite of similarity
diffusion. It is kept only to answer "what path explains this value"
for debugging, and its outputs are never mixed with inference results.

Propagation: each node without direct trust is recomputed as

    new = damping * weighted_mean(incoming source trust) + (1 - damping) * 0.5

where incoming sources are weighted by edge weight, until the largest
per-iteration change drops below the convergence threshold or the
iteration cap is hit. Updates are synchronous (all nodes read the
previous iteration's values).
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from loguru import logger

from trust_system.config.trust_defaults import (
    LEGACY_DEFAULT_TRUST,
    STRUCTURAL_EDGE_WEIGHTS,
    TRUST_CONVERGENCE_THRESHOLD,
    TRUST_DAMPING_FACTOR,
    TRUST_MAX_ITERATIONS,
    TRUST_MAX_PATH_DEPTH,
)
from trust_system.data_management.schemas import Assertion, EntityType, TrustRelationship

_log = logger.bind(component="LegacyTrustGraph")


@dataclass
class TrustEdge:
    """Directed edge; weight is the trust value (0-1)."""

    source: str
    target: str
    weight: float
    edge_type: str = "trust"  # trust, authored, imported


@dataclass
class TrustNode:
    """Graph node.

    Attributes:
        node_id: Entity id
        node_type: Kind of entity
        direct_trust: Explicit trust, if any (never changed by propagation)
        computed_trust: Current propagated value
        edges: Outgoing edges
    """

    node_id: str
    node_type: EntityType
    direct_trust: Optional[float] = None
    computed_trust: float = LEGACY_DEFAULT_TRUST
    edges: List[TrustEdge] = field(default_factory=list)


@dataclass
class PropagationResult:
    iterations: int
    converged: bool
    max_change: float
    changes: Dict[str, float] = field(default_factory=dict)


@dataclass
class TrustPath:
    """A path from source to target; trust is the product of edge weights."""

    path: List[str]
    trust_value: float


@dataclass
class TrustSource:
    """A direct predecessor's contribution: edge weight x its trust."""

    source_id: str
    contribution: float


class TrustGraph:
    """Directed graph of explicit trust edges rooted at one user."""

    def __init__(self, root_user_id: Optional[str] = None):
        self.root_user_id = root_user_id
        self._nodes: Dict[str, TrustNode] = {}
        self._incoming: Dict[str, List[TrustEdge]] = {}

    def add_node(
        self,
        node_id: str,
        node_type: EntityType,
        direct_trust: Optional[float] = None,
    ) -> TrustNode:
        """Add a node, or set direct trust on an existing one."""
        node = self._nodes.get(node_id)
        if node is None:
            node = TrustNode(
                node_id=node_id,
                node_type=EntityType(node_type),
                direct_trust=direct_trust,
                computed_trust=direct_trust if direct_trust is not None else LEGACY_DEFAULT_TRUST,
            )
            self._nodes[node_id] = node
        elif direct_trust is not None:
            node.direct_trust = direct_trust
            node.computed_trust = direct_trust
        return node

    def add_edge(self, source: str, target: str, weight: float, edge_type: str = "trust") -> None:
        """Add or update an edge.

        Raises:
            ValueError: If either endpoint is not in the graph
        """
        if source not in self._nodes:
            raise ValueError(f"Source node not found: {source}")
        if target not in self._nodes:
            raise ValueError(f"Target node not found: {target}")

        for edge in self._nodes[source].edges:
            if edge.target == target:
                edge.weight = weight
                edge.edge_type = edge_type
                return

        edge = TrustEdge(source=source, target=target, weight=weight, edge_type=edge_type)
        self._nodes[source].edges.append(edge)
        self._incoming.setdefault(target, []).append(edge)

    def get_node(self, node_id: str) -> Optional[TrustNode]:
        return self._nodes.get(node_id)

    def get_all_nodes(self) -> List[TrustNode]:
        return list(self._nodes.values())

    def get_nodes_by_type(self, node_type: EntityType) -> List[TrustNode]:
        return [n for n in self._nodes.values() if n.node_type == node_type]

    def get_node_ids(self) -> List[str]:
        return list(self._nodes)

    def get_outgoing_edges(self, node_id: str) -> List[TrustEdge]:
        node = self._nodes.get(node_id)
        return list(node.edges) if node else []

    def get_incoming_edges(self, node_id: str) -> List[TrustEdge]:
        return list(self._incoming.get(node_id, ()))

    def has_direct_trust(self, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        return node is not None and node.direct_trust is not None

    def get_trust_value(self, node_id: str) -> float:
        node = self._nodes.get(node_id)
        return node.computed_trust if node else LEGACY_DEFAULT_TRUST

    def set_computed_trust(self, node_id: str, value: float) -> None:
        node = self._nodes.get(node_id)
        if node is not None:
            node.computed_trust = value

    def get_stats(self) -> Dict[str, float]:
        nodes = self.get_all_nodes()
        return {
            "total_nodes": len(nodes),
            "total_edges": sum(len(n.edges) for n in nodes),
            "nodes_with_direct_trust": sum(1 for n in nodes if n.direct_trust is not None),
            "average_trust": sum(n.computed_trust for n in nodes) / (len(nodes) or 1),
        }


def build_trust_graph_from_data(
    user_id: str,
    relationships: Iterable[TrustRelationship],
    assertions: Iterable[Assertion] = (),
) -> TrustGraph:
    """
    Build a user's trust graph.

    The user is the root (direct trust 1.0) with one edge per trust
    relationship. Each assertion gets an "authored" edge from its source
    and, when imported, an "imported" edge from its bot.
    """
    graph = TrustGraph(user_id)
    graph.add_node(user_id, EntityType.USER, 1.0)

    for rel in relationships:
        graph.add_node(
            rel.target_id,
            rel.target_type,
            rel.trust_value if rel.is_explicit else None,
        )
        graph.add_edge(user_id, rel.target_id, rel.trust_value, "trust")

    for assertion in assertions:
        graph.add_node(assertion.assertion_id, EntityType.ASSERTION)
        graph.add_node(assertion.source_id, assertion.source_type)
        graph.add_edge(
            assertion.source_id,
            assertion.assertion_id,
            STRUCTURAL_EDGE_WEIGHTS["authored"],
            "authored",
        )
        if assertion.imported_by:
            graph.add_node(assertion.imported_by, EntityType.BOT)
            graph.add_edge(
                assertion.imported_by,
                assertion.assertion_id,
                STRUCTURAL_EDGE_WEIGHTS["imported"],
                "imported",
            )

    return graph


def propagate_trust(
    graph: TrustGraph,
    damping_factor: float = TRUST_DAMPING_FACTOR,
    convergence_threshold: float = TRUST_CONVERGENCE_THRESHOLD,
    max_iterations: int = TRUST_MAX_ITERATIONS,
) -> PropagationResult:
    """
    Iteratively propagate trust until convergence or the iteration cap.

    Nodes with direct trust are fixed. Nodes without incoming edges keep
    their current value.

    Returns:
        PropagationResult; changes maps every recomputed node to its final value
    """
    iterations = 0
    max_change = 0.0
    converged = False
    changes: Dict[str, float] = {}

    while iterations < max_iterations:
        iterations += 1
        updates: Dict[str, float] = {}

        for node in graph.get_all_nodes():
            if node.direct_trust is not None:
                continue
            incoming = graph.get_incoming_edges(node.node_id)
            total_weight = sum(e.weight for e in incoming)
            if total_weight <= 0:
                continue
            weighted = sum(e.weight * graph.get_trust_value(e.source) for e in incoming) / total_weight
            updates[node.node_id] = (
                damping_factor * weighted + (1.0 - damping_factor) * LEGACY_DEFAULT_TRUST
            )

        max_change = 0.0
        for node_id, value in updates.items():
            max_change = max(max_change, abs(value - graph.get_trust_value(node_id)))
            graph.set_computed_trust(node_id, value)
            changes[node_id] = value

        if max_change < convergence_threshold:
            converged = True
            break

    _log.debug(
        f"Propagation finished after {iterations} iterations",
        converged=converged,
        max_change=max_change,
        nodes=len(changes),
    )
    return PropagationResult(
        iterations=iterations,
        converged=converged,
        max_change=max_change,
        changes=changes,
    )


def find_trust_paths(
    graph: TrustGraph,
    source_id: str,
    target_id: str,
    max_depth: int = TRUST_MAX_PATH_DEPTH,
) -> List[TrustPath]:
    """
    Breadth-first search for cycle-free paths of at most max_depth edges.

    Returns:
        Paths sorted by trust value (product of edge weights), descending
    """
    paths: List[TrustPath] = []
    queue = deque([(source_id, [source_id], 1.0)])

    while queue:
        current, nodes, trust = queue.popleft()
        if len(nodes) - 1 >= max_depth:
            continue

        for edge in graph.get_outgoing_edges(current):
            if edge.target in nodes:
                continue
            path_trust = trust * edge.weight
            if edge.target == target_id:
                paths.append(TrustPath(path=nodes + [edge.target], trust_value=path_trust))
                continue
            queue.append((edge.target, nodes + [edge.target], path_trust))

    paths.sort(key=lambda p: p.trust_value, reverse=True)
    return paths


def identify_trust_sources(
    graph: TrustGraph,
    node_id: str,
    min_contribution: float = 0.1,
) -> List[TrustSource]:
    """Direct predecessors contributing at least min_contribution, strongest first."""
    sources = [
        TrustSource(
            source_id=edge.source,
            contribution=edge.weight * graph.get_trust_value(edge.source),
        )
        for edge in graph.get_incoming_edges(node_id)
    ]
    sources = [s for s in sources if s.contribution >= min_contribution]
    sources.sort(key=lambda s: s.contribution, reverse=True)
    return sources


__all__ = [
    "TrustEdge",
    "TrustNode",
    "TrustGraph",
    "PropagationResult",
    "TrustPath",
    "TrustSource",
    "build_trust_graph_from_data",
    "propagate_trust",
    "find_trust_paths",
    "identify_trust_sources",
]
