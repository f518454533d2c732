"""
Node-type definitions and strategy dispatch.

A node-type definition bundles everything the engine needs to compute a
node: default inputs for new nodes, an input schema (static, dynamic, or
both), the declared outputs, and a calculation function.

Strategy types specialise a definition along one or more selector axes.
Every variant is keyed by the ordered tuple of its axis values, e.g.
``('cantilever', 'point')``; its display id joins those values with ``_``.
Lookup always compares tuples, so an axis value containing the separator
can never collide with another combination.
"""

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from calcgraph.nodes import InputSlot, LiteralInput, Node, literal

VARIANT_SEPARATOR = '_'


@dataclass(frozen=True)
class InputField:
    """Schema entry for one input slot."""
    label: str
    default: Any = None
    unit: str = 'none'
    kind: str = 'number'  # 'number', 'text' or 'select'
    options: Tuple[Tuple[str, str], ...] = ()  # (value, label)


@dataclass(frozen=True)
class OutputField:
    """Declared output key (for downstream consumers and the catalog)."""
    label: str
    unit: str = 'none'
    hidden: bool = False


Schema = Dict[str, InputField]
Calculate = Callable[..., Dict[str, Any]]


@dataclass(frozen=True)
class StrategyAxis:
    """A named selector with an enumerated option set."""
    key: str
    label: str
    options: Tuple[Tuple[str, str], ...]
    default: str

    @property
    def values(self) -> List[str]:
        return [value for value, _ in self.options]


@dataclass(frozen=True)
class StrategyVariant:
    """One concrete schema + calculate pair of a strategy type."""
    values: Tuple[str, ...]
    label: str
    input_schema: Schema
    calculate: Callable[[Dict[str, float]], Dict[str, Any]]

    def __post_init__(self):
        if isinstance(self.values, str):
            object.__setattr__(self, 'values', (self.values,))
        else:
            object.__setattr__(self, 'values', tuple(self.values))

    @property
    def id(self) -> str:
        return VARIANT_SEPARATOR.join(self.values)


@dataclass(frozen=True)
class ActiveStrategy:
    """Result of dispatch: what the orchestrator should run for a node."""
    variant_id: Optional[str]
    schema: Schema
    calculate: Optional[Calculate]


def _selector_value(slot: Optional[InputSlot]) -> Optional[str]:
    """Stored axis value, or None when the slot is unset."""
    if not isinstance(slot, LiteralInput):
        return None
    if slot.value is None or slot.value == '':
        return None
    return str(slot.value)


class StrategySet:
    """Axes plus the variants declared for them."""

    def __init__(self, axes: Sequence[StrategyAxis], variants: Sequence[StrategyVariant]):
        if not variants:
            raise ValueError("A strategy needs at least one variant")
        self.axes = list(axes)
        self.variants = list(variants)
        self._by_key: Dict[Tuple[str, ...], StrategyVariant] = {}

        for variant in self.variants:
            if len(variant.values) != len(self.axes):
                raise ValueError(
                    f"Variant '{variant.id}' has {len(variant.values)} axis values, "
                    f"expected {len(self.axes)}"
                )
            for axis, value in zip(self.axes, variant.values):
                if value not in axis.values:
                    raise ValueError(
                        f"Variant '{variant.id}': '{value}' is not an option of axis '{axis.key}'"
                    )
            if variant.values in self._by_key:
                raise ValueError(f"Duplicate variant '{variant.id}'")
            self._by_key[variant.values] = variant

        if len(self.axes) > 1:
            missing = [
                combo for combo in itertools.product(*(axis.values for axis in self.axes))
                if combo not in self._by_key
            ]
            if missing:
                names = ', '.join(VARIANT_SEPARATOR.join(c) for c in missing)
                raise ValueError(f"Missing variants for axis combinations: {names}")

    @property
    def first(self) -> StrategyVariant:
        return self.variants[0]

    def key_for(self, inputs: Dict[str, InputSlot]) -> Tuple[str, ...]:
        """
        Structured variant key from a node's stored inputs.

        Multi-axis types fall back per axis to the axis default. A single
        axis has no per-axis fallback: an unset selector keys to the
        first-declared variant.
        """
        if len(self.axes) == 1:
            value = _selector_value(inputs.get(self.axes[0].key))
            return (value,) if value is not None else self.first.values
        return tuple(
            _selector_value(inputs.get(axis.key)) or axis.default
            for axis in self.axes
        )

    def select(self, inputs: Dict[str, InputSlot]) -> StrategyVariant:
        """Variant for the stored inputs; unknown keys fall back to the first variant."""
        return self._by_key.get(self.key_for(inputs), self.first)


@dataclass
class NodeTypeDefinition:
    """Complete definition of a node type."""
    type: str
    title: str
    description: str = ''
    default_inputs: Dict[str, InputSlot] = field(default_factory=dict)
    input_schema: Schema = field(default_factory=dict)
    output_config: Dict[str, OutputField] = field(default_factory=dict)
    calculate: Optional[Calculate] = None
    dynamic_schema: Optional[Callable[[Node], Schema]] = None
    strategy: Optional[StrategySet] = None
    # Template for user-appended rows: prefix -> initial slot (keys become prefix_n)
    row_template: Dict[str, InputSlot] = field(default_factory=dict)
    category: str = 'general'

    def schema_for(self, node: Node) -> Schema:
        """Static schema merged with the dynamic one (dynamic wins)."""
        schema = dict(self.input_schema)
        if self.dynamic_schema is not None:
            schema.update(self.dynamic_schema(node))
        return schema

    def dispatch(self, node: Node) -> ActiveStrategy:
        """
        Schema and calculation to run for `node`.

        Simple types use their own calculate and schema. Strategy types
        select a variant from the stored axis values; its fields are added
        to the selector fields.
        """
        if self.strategy is None:
            return ActiveStrategy(None, self.schema_for(node), self.calculate)

        variant = self.strategy.select(node.inputs)
        schema = dict(self.input_schema)
        schema.update(variant.input_schema)

        def calculate(inputs, raw_inputs=None):
            return variant.calculate(inputs)

        return ActiveStrategy(variant.id, schema, calculate)


def create_node_definition(
    type: str,
    title: str,
    calculate: Calculate,
    description: str = '',
    default_inputs: Optional[Dict[str, InputSlot]] = None,
    input_schema: Optional[Schema] = None,
    output_config: Optional[Dict[str, OutputField]] = None,
    dynamic_schema: Optional[Callable[[Node], Schema]] = None,
    row_template: Optional[Dict[str, InputSlot]] = None,
    category: str = 'general',
) -> NodeTypeDefinition:
    """Definition for a simple (non-strategy) node type."""
    return NodeTypeDefinition(
        type=type,
        title=title,
        description=description,
        default_inputs=dict(default_inputs or {}),
        input_schema=dict(input_schema or {}),
        output_config=dict(output_config or {}),
        calculate=calculate,
        dynamic_schema=dynamic_schema,
        row_template=dict(row_template or {}),
        category=category,
    )


def create_strategy_definition(
    type: str,
    title: str,
    variants: Sequence[StrategyVariant],
    output_config: Dict[str, OutputField],
    description: str = '',
    strategy_key: Optional[str] = None,
    axes: Optional[Sequence[StrategyAxis]] = None,
    common_inputs: Optional[Dict[str, InputSlot]] = None,
    category: str = 'general',
) -> NodeTypeDefinition:
    """
    Definition for a strategy node type.

    Pass either `strategy_key` (single axis whose options are the variants
    themselves) or `axes` (one or more explicit axes; with several axes a
    variant must exist for every combination of options).

    The static schema holds one select field per axis. The variant's
    schema and calculation are picked per node by `dispatch`.
    """
    if not strategy_key and not axes:
        raise ValueError(f"Node type {type} must provide either strategy_key or axes")
    if not variants:
        raise ValueError(f"Node type {type} must have at least one variant")

    if axes:
        axis_list = list(axes)
    else:
        axis_list = [StrategyAxis(
            key=strategy_key,
            label=strategy_key.replace('_', ' ').capitalize(),
            options=tuple((v.values[0], v.label) for v in variants),
            default=variants[0].values[0],
        )]

    strategy = StrategySet(axis_list, variants)

    default_inputs: Dict[str, InputSlot] = {
        axis.key: literal(axis.default) for axis in axis_list
    }
    default_inputs.update(common_inputs or {})

    input_schema = {
        axis.key: InputField(
            label=axis.label,
            default=axis.default,
            kind='select',
            options=axis.options,
        )
        for axis in axis_list
    }

    return NodeTypeDefinition(
        type=type,
        title=title,
        description=description,
        default_inputs=default_inputs,
        input_schema=input_schema,
        output_config=dict(output_config),
        strategy=strategy,
        category=category,
    )


def options(*pairs: Union[str, Tuple[str, str]]) -> Tuple[Tuple[str, str], ...]:
    """Normalise axis options given as values or (value, label) pairs."""
    result = []
    for pair in pairs:
        if isinstance(pair, str):
            result.append((pair, pair.replace('_', ' ').title()))
        else:
            result.append((pair[0], pair[1]))
    return tuple(result)
