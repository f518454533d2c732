"""
Node-type registry.

The registry is an explicit dispatch table: build it once at startup and
hand it to the orchestrator and to each Project.
"""

import logging
from typing import Dict, Iterable, List, Optional

from calcgraph.definitions import NodeTypeDefinition
from calcgraph.nodes import slot_to_dict

logger = logging.getLogger(__name__)


class NodeTypeRegistry:
    """Maps a type id to its NodeTypeDefinition."""

    def __init__(self, definitions: Iterable[NodeTypeDefinition] = ()):
        self._definitions: Dict[str, NodeTypeDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: NodeTypeDefinition) -> None:
        if definition.type in self._definitions:
            logger.warning("Node type %s is already registered. Overwriting.", definition.type)
        self._definitions[definition.type] = definition

    def get(self, type_id: str) -> Optional[NodeTypeDefinition]:
        return self._definitions.get(type_id)

    def get_definition(self, type_id: str) -> NodeTypeDefinition:
        """Get a definition by type id; raises ValueError for unknown types."""
        if type_id not in self._definitions:
            raise ValueError(
                f"Unknown node type '{type_id}'. Available: {list(self._definitions.keys())}"
            )
        return self._definitions[type_id]

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def list_node_types(self, category: Optional[str] = None) -> List[Dict]:
        """Catalog of registered types, optionally filtered by category."""
        result = []
        for definition in self._definitions.values():
            if category and definition.category != category:
                continue
            entry = {
                'type': definition.type,
                'title': definition.title,
                'description': definition.description,
                'category': definition.category,
                'default_inputs': {k: slot_to_dict(s) for k, s in definition.default_inputs.items()},
                'inputs': [
                    {
                        'key': key,
                        'label': f.label,
                        'unit': f.unit,
                        'kind': f.kind,
                        'default': f.default,
                        'options': [{'value': value, 'label': label} for value, label in f.options],
                    }
                    for key, f in definition.input_schema.items()
                ],
                'outputs': [
                    {'key': key, 'label': o.label, 'unit': o.unit, 'hidden': o.hidden}
                    for key, o in definition.output_config.items()
                ],
                'row_prefixes': list(definition.row_template.keys()),
                'variants': [],
            }
            if definition.strategy is not None:
                entry['variants'] = [
                    {
                        'id': variant.id,
                        'label': variant.label,
                        'inputs': list(variant.input_schema.keys()),
                    }
                    for variant in definition.strategy.variants
                ]
            result.append(entry)
        return result


def build_default_registry() -> NodeTypeRegistry:
    """Registry holding the built-in structural node types."""
    from calcgraph.cards import CARD_DEFINITIONS
    return NodeTypeRegistry(CARD_DEFINITIONS)
