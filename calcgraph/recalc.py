"""
Recalculation pass over a full node list.

Every mutation is followed by one synchronous pass:

1. Build the dependency graph and topological order.
2. Copy the list into a snapshot keyed by node id.
3. For each node in order, dispatch to its active strategy, resolve its
   inputs against the snapshot (so producers computed earlier in the pass
   are visible), run the calculation and write the outcome back.
4. Return the nodes in their original list order.

A failing calculation only affects its own node: outputs are cleared, the
error message is recorded and the pass moves on. Consumers of a failed
node see 0 for its missing outputs.

Nodes on a reference cycle are not computed. They receive empty outputs
and a "Circular reference" error, which keeps repeated passes over the
same list identical.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Union

from calcgraph.definitions import Calculate
from calcgraph.graph import CycleDetected, build_dependency_graph, topological_sort
from calcgraph.nodes import InputSlot, Node
from calcgraph.registry import NodeTypeRegistry
from calcgraph.resolver import as_number, resolve_inputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    outputs: Dict[str, float]


@dataclass(frozen=True)
class Err:
    reason: str


CalcResult = Union[Ok, Err]


@dataclass
class RecalcReport:
    """Outcome of one pass."""
    nodes: List[Node]
    order: List[str]
    cycle_members: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


def numeric_outputs(raw: Mapping[str, Any]) -> Dict[str, float]:
    """Keep only the real-number entries of a calculation result."""
    outputs = {}
    for key, value in raw.items():
        number = as_number(value)
        if number is not None:
            outputs[str(key)] = number
    return outputs


def invoke_calculation(
    calculate: Calculate,
    inputs: Dict[str, float],
    raw_inputs: Dict[str, InputSlot],
) -> CalcResult:
    """Run a calculation function and capture its outcome as Ok/Err."""
    try:
        raw = calculate(inputs, raw_inputs)
    except Exception as e:
        logger.debug("Calculation raised", exc_info=True)
        return Err(str(e) or e.__class__.__name__)

    if raw is None:
        return Ok({})
    if not isinstance(raw, Mapping):
        return Err(f"Calculation returned {type(raw).__name__}, expected a mapping")
    return Ok(numeric_outputs(raw))


def _cycle_message(members: Sequence[str], snapshot: Mapping[str, Node]) -> str:
    names = [snapshot[m].alias or m for m in members]
    return "Circular reference: " + ', '.join(names)


def recalculate(nodes: Sequence[Node], registry: NodeTypeRegistry) -> RecalcReport:
    """Run one full pass and report order, cycles and failures."""
    adjacency = build_dependency_graph(nodes)
    result = topological_sort(nodes, adjacency)

    snapshot: Dict[str, Node] = {node.id: node for node in nodes}
    cyclic = set()
    involved: List[str] = []
    failures: Dict[str, str] = {}

    if isinstance(result, CycleDetected):
        involved = list(result.involved)
        cyclic = set(involved)
        message = _cycle_message(result.involved, snapshot)
        for node_id in result.involved:
            snapshot[node_id] = snapshot[node_id].with_result({}, message)
            failures[node_id] = message

    for node_id in result.order:
        node = snapshot.get(node_id)
        if node is None or node_id in cyclic:
            continue

        definition = registry.get(node.type)
        if definition is None:
            snapshot[node_id] = node.with_result({})
            continue

        active = definition.dispatch(node)
        if active.calculate is None:
            snapshot[node_id] = node.with_result({})
            continue

        inputs = resolve_inputs(node, active.schema, snapshot)
        outcome = invoke_calculation(active.calculate, inputs, node.inputs)

        if isinstance(outcome, Ok):
            snapshot[node_id] = node.with_result(outcome.outputs)
        else:
            logger.warning(
                "Calculation failed for node '%s' (%s): %s",
                node.alias or node.id, node.type, outcome.reason,
            )
            snapshot[node_id] = node.with_result({}, outcome.reason)
            failures[node_id] = outcome.reason

    return RecalcReport(
        nodes=[snapshot[node.id] for node in nodes],
        order=list(result.order),
        cycle_members=involved,
        failures=failures,
    )


def recalculate_all(nodes: Sequence[Node], registry: NodeTypeRegistry) -> List[Node]:
    """New node list with every node's outputs/error recomputed."""
    return recalculate(nodes, registry).nodes
