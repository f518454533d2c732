"""
Input resolution: turns a node's stored input slots into plain numbers.

Resolution happens in two phases. The schema is determined first, because
a strategy node's schema depends on the selector values stored among its
own inputs. Values are then resolved for every schema key, followed by any
stored keys the schema does not declare (user-appended rows and legacy
inputs).

Nothing here raises: malformed literals, dangling references and
non-numeric outputs all degrade to 0.
"""

import math
import numbers
from typing import Any, Dict, Mapping, Optional

from calcgraph.definitions import NodeTypeDefinition, Schema
from calcgraph.nodes import InputSlot, LiteralInput, Node, ReferenceInput


def as_number(value: Any) -> Optional[float]:
    """Float value of a finite real number (numpy scalars included), else None."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a literal as a float.

    Strings are stripped and parsed strictly; empty text, words, booleans,
    NaN, infinities and arbitrary objects all give None.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return as_number(float(text))
        except ValueError:
            return None
    return as_number(value)


def resolve_reference(ref: ReferenceInput, snapshot: Mapping[str, Node]) -> float:
    producer = snapshot.get(ref.node_id)
    if producer is None:
        return 0.0
    value = as_number(producer.outputs.get(ref.output_key))
    return 0.0 if value is None else value


def resolve_slot(
    slot: Optional[InputSlot],
    snapshot: Mapping[str, Node],
    default: Any = None,
) -> float:
    """Resolve a single slot; `default` applies to empty or non-numeric literals."""
    if isinstance(slot, ReferenceInput):
        return resolve_reference(slot, snapshot)

    if isinstance(slot, LiteralInput):
        value = parse_number(slot.value)
        if value is not None:
            return value

    fallback = parse_number(default)
    return 0.0 if fallback is None else fallback


def resolve_schema(definition: NodeTypeDefinition, node: Node) -> Schema:
    """Active schema for a node (first phase of resolution)."""
    return definition.dispatch(node).schema


def resolve_inputs(
    node: Node,
    schema: Schema,
    snapshot: Mapping[str, Node],
) -> Dict[str, float]:
    """Resolved numeric inputs for `node` against the current snapshot."""
    resolved: Dict[str, float] = {}

    for key, config in schema.items():
        resolved[key] = resolve_slot(node.inputs.get(key), snapshot, config.default)

    for key, slot in node.inputs.items():
        if key in resolved:
            continue
        resolved[key] = resolve_slot(slot, snapshot)

    return resolved
