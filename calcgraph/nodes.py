"""
Node model for the calculation graph.

A node (card) is a typed calculation unit. Its inputs are slots that hold
either a literal value, a reference to another node's output, or an opaque
model object that is passed through untouched to the calculation function.
Outputs are always a flat mapping of numbers and are owned by the
recalculation pass.
"""

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Union


@dataclass(frozen=True)
class LiteralInput:
    """A literal value typed by the user (parsed as a number at resolution time)."""
    value: Union[str, int, float, None] = ''


@dataclass(frozen=True)
class ReferenceInput:
    """A reference to `output_key` on the node identified by `node_id`."""
    node_id: str
    output_key: str


@dataclass(frozen=True)
class OpaqueInput:
    """A non-numeric model object (resolves like an empty slot)."""
    payload: Any = None


InputSlot = Union[LiteralInput, ReferenceInput, OpaqueInput]


@dataclass
class Node:
    """A calculation card in the graph."""
    id: str
    type: str
    alias: str = ''
    inputs: Dict[str, InputSlot] = field(default_factory=dict)
    outputs: Dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None

    def references(self) -> List[ReferenceInput]:
        return [s for s in self.inputs.values() if isinstance(s, ReferenceInput)]

    def with_inputs(self, inputs: Dict[str, InputSlot]) -> 'Node':
        return replace(self, inputs=dict(inputs))

    def with_result(self, outputs: Dict[str, float], error: Optional[str] = None) -> 'Node':
        return replace(self, outputs=dict(outputs), error=error)


def literal(value: Union[str, int, float, None] = '') -> LiteralInput:
    return LiteralInput(value)


def reference(node_id: str, output_key: str) -> ReferenceInput:
    return ReferenceInput(node_id, output_key)


def copy_inputs(inputs: Dict[str, InputSlot]) -> Dict[str, InputSlot]:
    """
    Deep-copy an input mapping.

    Literal and reference slots are immutable, but opaque payloads may be
    mutable model objects shared with a type definition's defaults.
    """
    copied = {}
    for key, slot in inputs.items():
        if isinstance(slot, OpaqueInput):
            copied[key] = OpaqueInput(copy.deepcopy(slot.payload))
        else:
            copied[key] = slot
    return copied


def slot_from_dict(data: Dict[str, Any]) -> InputSlot:
    """
    Build an InputSlot from its plain-record form.

    Accepts ``{'value': x}``, ``{'ref': {'node_id': ..., 'output_key': ...}}``
    or ``{'opaque': payload}``. A record carrying both a value and a ref is
    treated as a reference, since setting a reference clears the literal.
    """
    ref = data.get('ref')
    if ref:
        return ReferenceInput(str(ref['node_id']), str(ref['output_key']))
    if 'opaque' in data:
        return OpaqueInput(data['opaque'])
    return LiteralInput(data.get('value', ''))


def slot_to_dict(slot: InputSlot) -> Dict[str, Any]:
    """Inverse of slot_from_dict."""
    if isinstance(slot, ReferenceInput):
        return {'ref': {'node_id': slot.node_id, 'output_key': slot.output_key}}
    if isinstance(slot, OpaqueInput):
        return {'opaque': slot.payload}
    return {'value': slot.value}


def indexed_keys(keys: Iterable[str], prefix: str) -> List[int]:
    """Sorted row indices n of keys named `prefix_n`."""
    indices = []
    marker = prefix + '_'
    for key in keys:
        if key.startswith(marker) and key[len(marker):].isdigit():
            indices.append(int(key[len(marker):]))
    return sorted(set(indices))
