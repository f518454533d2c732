"""
Project: the node list plus its metadata, and every mutation on it.

Each mutation builds a new node list, runs one full recalculation pass
over it and only then swaps it in, so readers always see either the
previous list or the fully recomputed one.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence

from calcgraph.errors import NodeNotFoundError, UnknownNodeTypeError
from calcgraph.nodes import LiteralInput, Node, ReferenceInput, copy_inputs, indexed_keys
from calcgraph.recalc import RecalcReport, recalculate
from calcgraph.registry import NodeTypeRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProjectMeta:
    title: str = 'Untitled'
    author: str = ''


class Project:
    """An ordered list of nodes kept consistent by recalculation."""

    def __init__(
        self,
        registry: NodeTypeRegistry,
        nodes: Optional[Sequence[Node]] = None,
        meta: Optional[ProjectMeta] = None,
    ):
        self.registry = registry
        self.meta = meta or ProjectMeta()
        self._nodes: List[Node] = []
        self.last_report: Optional[RecalcReport] = None
        if nodes:
            self._commit(list(nodes))

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def get_node(self, node_id: str) -> Node:
        for node in self._nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(node_id)

    def find_by_alias(self, alias: str) -> Optional[Node]:
        for node in self._nodes:
            if node.alias == alias:
                return node
        return None

    # --- Internals ---

    def _index(self, node_id: str) -> int:
        for i, node in enumerate(self._nodes):
            if node.id == node_id:
                return i
        raise NodeNotFoundError(node_id)

    def _commit(self, nodes: List[Node]) -> RecalcReport:
        ids = [node.id for node in nodes]
        if len(set(ids)) != len(ids):
            raise ValueError("Node ids must be unique within a project")
        report = recalculate(nodes, self.registry)
        self._nodes = report.nodes
        self.last_report = report
        return report

    def _update_inputs(self, node_id: str, update) -> Node:
        index = self._index(node_id)
        nodes = list(self._nodes)
        node = nodes[index]
        inputs = dict(node.inputs)
        update(inputs)
        nodes[index] = node.with_inputs(inputs)
        self._commit(nodes)
        return self._nodes[index]

    # --- Mutations ---

    def recalculate(self) -> RecalcReport:
        """Recompute without changing anything."""
        return self._commit(list(self._nodes))

    def create_node(self, type_id: str, alias: Optional[str] = None) -> Node:
        """Append a node of `type_id` initialised from its default inputs."""
        definition = self.registry.get(type_id)
        if definition is None:
            raise UnknownNodeTypeError(type_id)

        node = Node(
            id=str(uuid.uuid4()),
            type=type_id,
            alias=alias or f'{type_id.lower()}_{len(self._nodes) + 1}',
            inputs=copy_inputs(definition.default_inputs),
        )
        self._commit(self._nodes + [node])
        logger.debug("Created node %s (%s)", node.alias, type_id)
        return self._nodes[-1]

    def delete_node(self, node_id: str) -> None:
        """
        Remove a node. References to it stay in place and resolve to 0 until
        they are cleared or re-pointed.
        """
        index = self._index(node_id)
        self._commit(self._nodes[:index] + self._nodes[index + 1:])

    def set_literal_input(self, node_id: str, key: str, value: Any) -> Node:
        """Store a literal under `key`, replacing any reference there."""
        def update(inputs):
            inputs[key] = LiteralInput(value)
        return self._update_inputs(node_id, update)

    def set_reference_input(self, node_id: str, key: str, producer_id: str, producer_key: str) -> Node:
        """Point `key` at `producer_key` on another node, replacing any literal there."""
        def update(inputs):
            inputs[key] = ReferenceInput(producer_id, producer_key)
        return self._update_inputs(node_id, update)

    def clear_reference(self, node_id: str, key: str) -> Node:
        """Turn a reference slot back into an empty literal."""
        def update(inputs):
            if isinstance(inputs.get(key), ReferenceInput):
                inputs[key] = LiteralInput('')
        return self._update_inputs(node_id, update)

    def delete_input(self, node_id: str, key: str) -> Node:
        def update(inputs):
            inputs.pop(key, None)
        return self._update_inputs(node_id, update)

    def reorder_nodes(self, new_order: Sequence[str]) -> None:
        """Reorder by a full list of node ids."""
        by_id = {node.id: node for node in self._nodes}
        if len(new_order) != len(by_id) or set(new_order) != set(by_id):
            raise ValueError("New order must list every node id exactly once")
        self._commit([by_id[node_id] for node_id in new_order])

    def move_node(self, active_id: str, over_id: str) -> None:
        """Move `active_id` into the position currently held by `over_id`."""
        old_index = self._index(active_id)
        new_index = self._index(over_id)
        if old_index == new_index:
            return
        nodes = list(self._nodes)
        nodes.insert(new_index, nodes.pop(old_index))
        self._commit(nodes)

    def rename_node(self, node_id: str, alias: str) -> Node:
        """Change a node's alias. Aliases do not affect results, so no pass runs."""
        index = self._index(node_id)
        self._nodes = list(self._nodes)
        self._nodes[index] = replace(self._nodes[index], alias=alias)
        return self._nodes[index]

    def add_input_row(self, node_id: str) -> int:
        """
        Append one row of the node type's row template at the next free index.

        Returns the new row index.
        """
        node = self.get_node(node_id)
        definition = self.registry.get(node.type)
        if definition is None or not definition.row_template:
            raise ValueError(f"Node type '{node.type}' has no input rows")

        used = set()
        for prefix in definition.row_template:
            used.update(indexed_keys(node.inputs.keys(), prefix))
        n = max(used, default=0) + 1

        def update(inputs):
            for prefix, slot in copy_inputs(definition.row_template).items():
                inputs[f'{prefix}_{n}'] = slot

        self._update_inputs(node_id, update)
        return n

    def load_nodes(self, nodes: Sequence[Node], meta: Optional[ProjectMeta] = None) -> RecalcReport:
        """Replace the whole node list (and optionally the metadata)."""
        report = self._commit(list(nodes))
        if meta is not None:
            self.meta = ProjectMeta(
                title=meta.title or self.meta.title,
                author=meta.author or self.meta.author,
            )
        logger.info("Loaded %d nodes into project '%s'", len(nodes), self.meta.title)
        return report
