"""
Dependency graph and topological ordering for node lists.

If node B references an output of node A, A must be computed before B,
so the graph holds the edge A -> B. Ordering is a depth-first postorder
walk started from every node in list order, so the same list always
yields the same order.

Cycles are tolerated, not repaired: the walk stops descending when it
meets a node that is still in progress. The nodes that lie on a cycle are
reported alongside the order so callers can apply their own policy.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Union

import networkx as nx

from calcgraph.nodes import Node

logger = logging.getLogger(__name__)

Adjacency = Dict[str, List[str]]


@dataclass(frozen=True)
class Sorted:
    """Acyclic graph: producers strictly precede consumers."""
    order: List[str]


@dataclass(frozen=True)
class CycleDetected:
    """At least one reference cycle; `involved` lists every node on a cycle."""
    order: List[str]
    involved: List[str] = field(default_factory=list)


SortResult = Union[Sorted, CycleDetected]


def build_dependency_graph(nodes: Sequence[Node]) -> Adjacency:
    """
    Producer -> consumer adjacency from reference inputs.

    References to nodes that are not in the list add no edge; the input
    resolver substitutes 0 for them instead.
    """
    adjacency: Adjacency = {node.id: [] for node in nodes}

    for consumer in nodes:
        for ref in consumer.references():
            edges = adjacency.get(ref.node_id)
            if edges is None:
                continue
            if consumer.id not in edges:
                edges.append(consumer.id)

    return adjacency


def cycle_members(nodes: Sequence[Node], adjacency: Adjacency) -> List[str]:
    """Ids of nodes lying on a reference cycle, in list order."""
    graph = nx.DiGraph()
    graph.add_nodes_from(adjacency)
    for producer, consumers in adjacency.items():
        graph.add_edges_from((producer, consumer) for consumer in consumers)

    involved = set()
    for component in nx.strongly_connected_components(graph):
        if len(component) > 1:
            involved.update(component)
    involved.update(u for u, _ in nx.selfloop_edges(graph))

    return [node.id for node in nodes if node.id in involved]


def topological_sort(nodes: Sequence[Node], adjacency: Adjacency = None) -> SortResult:
    """
    Order node ids so producers precede consumers.

    Iterative depth-first postorder. A node is prepended to the result once
    all of its consumers are done, which yields producer-before-consumer
    order directly. Roots are taken in list order.
    """
    if adjacency is None:
        adjacency = build_dependency_graph(nodes)

    done = set()
    in_progress = set()
    order: List[str] = []
    cycle_found = False

    for root in nodes:
        if root.id in done:
            continue

        in_progress.add(root.id)
        stack = [(root.id, iter(adjacency.get(root.id, ())))]

        while stack:
            node_id, edges = stack[-1]
            advanced = False
            for next_id in edges:
                if next_id in done:
                    continue
                if next_id in in_progress:
                    cycle_found = True
                    continue
                in_progress.add(next_id)
                stack.append((next_id, iter(adjacency.get(next_id, ()))))
                advanced = True
                break

            if not advanced:
                stack.pop()
                in_progress.discard(node_id)
                done.add(node_id)
                order.append(node_id)

    order.reverse()

    if not cycle_found:
        return Sorted(order)

    involved = cycle_members(nodes, adjacency)
    logger.warning("Reference cycle between nodes: %s", ', '.join(involved))
    return CycleDetected(order, involved)
