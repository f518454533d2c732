"""
Tests for node-type definitions and strategy dispatch.

Validates:
1. Single-axis strategies select by stored value, falling back to the first variant
2. Composite (multi-axis) strategies key variants by tuples of axis values
3. Incomplete axis products and bad variants are rejected at build time
4. Registry lookup and catalog listing
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from calcgraph.definitions import (
    InputField,
    OutputField,
    StrategyAxis,
    StrategyVariant,
    create_node_definition,
    create_strategy_definition,
    options,
)
from calcgraph.nodes import Node, literal, reference
from calcgraph.registry import NodeTypeRegistry, build_default_registry


def tagged(tag):
    return lambda inputs: {'tag': tag, 'x': inputs.get('x', 0)}


def single_axis():
    return create_strategy_definition(
        type='SHAPE',
        title='Shape',
        strategy_key='shape',
        variants=[
            StrategyVariant('rect', 'Rectangle', {'x': InputField('x', 1)}, tagged(1)),
            StrategyVariant('circle', 'Circle', {'x': InputField('x', 2)}, tagged(2)),
        ],
        output_config={'tag': OutputField('tag')},
    )


def composite():
    variants = []
    for i, (boundary, load) in enumerate([
        ('simple', 'uniform'), ('simple', 'point'),
        ('cantilever', 'uniform'), ('cantilever', 'point'),
    ]):
        schema = {f'{boundary}_{load}_only': InputField('only', i)}
        variants.append(StrategyVariant((boundary, load), f'{boundary} {load}', schema, tagged(i)))
    return create_strategy_definition(
        type='BEAM',
        title='Beam',
        axes=[
            StrategyAxis('boundary', 'Boundary', options('simple', 'cantilever'), 'simple'),
            StrategyAxis('load', 'Load', options('uniform', 'point'), 'uniform'),
        ],
        variants=variants,
        output_config={'tag': OutputField('tag')},
    )


def node_with(**values):
    return Node(id='n', type='T', inputs={k: literal(v) for k, v in values.items()})


class TestSingleAxis:
    """Test strategies selected by one stored value."""

    def test_default_inputs_hold_first_value(self):
        definition = single_axis()
        assert definition.default_inputs == {'shape': literal('rect')}

    def test_select_by_value(self):
        active = single_axis().dispatch(node_with(shape='circle'))
        assert active.variant_id == 'circle'
        assert active.calculate({'x': 5})['tag'] == 2

    def test_unknown_value_falls_back_to_first(self):
        active = single_axis().dispatch(node_with(shape='hexagon'))
        assert active.variant_id == 'rect'

    def test_unset_value_falls_back_to_first(self):
        active = single_axis().dispatch(Node(id='n', type='T'))
        assert active.variant_id == 'rect'

    def test_schema_includes_selector_and_variant_fields(self):
        active = single_axis().dispatch(node_with(shape='circle'))
        assert list(active.schema) == ['shape', 'x']
        assert active.schema['x'].default == 2
        assert active.schema['shape'].kind == 'select'

    def test_reference_selector_falls_back(self):
        node = Node(id='n', type='T', inputs={'shape': reference('other', 'out')})
        assert single_axis().dispatch(node).variant_id == 'rect'

    def test_selection_only_through_dispatch(self):
        definition = single_axis()
        assert definition.calculate is None
        assert definition.dynamic_schema is None
        active = definition.dispatch(node_with(shape='circle'))
        assert active.calculate({'x': 3}, {'shape': literal('circle')})['tag'] == 2

    def test_requires_key_or_axes(self):
        with pytest.raises(ValueError, match='strategy_key or axes'):
            create_strategy_definition(
                type='X', title='X',
                variants=[StrategyVariant('a', 'A', {}, tagged(0))],
                output_config={},
            )


class TestCompositeStrategy:
    """Test multi-axis strategy resolution."""

    def test_cantilever_point(self):
        active = composite().dispatch(node_with(boundary='cantilever', load='point'))
        assert active.variant_id == 'cantilever_point'
        assert 'cantilever_point_only' in active.schema
        assert 'simple_uniform_only' not in active.schema
        assert active.calculate({})['tag'] == 3

    def test_per_axis_default(self):
        active = composite().dispatch(node_with(load='point'))
        assert active.variant_id == 'simple_point'

    def test_undeclared_combination_falls_back_to_first_variant(self):
        active = composite().dispatch(node_with(boundary='fixed', load='point'))
        assert active.variant_id == 'simple_uniform'

    def test_default_inputs_hold_axis_defaults(self):
        assert composite().default_inputs == {
            'boundary': literal('simple'),
            'load': literal('uniform'),
        }

    def test_separator_in_value_does_not_collide(self):
        axes = [
            StrategyAxis('p', 'P', options('a_b', 'a'), 'a'),
            StrategyAxis('q', 'Q', options('c', 'b_c'), 'c'),
        ]
        variants = [
            StrategyVariant(('a_b', 'c'), '1', {}, tagged(1)),
            StrategyVariant(('a', 'b_c'), '2', {}, tagged(2)),
            StrategyVariant(('a_b', 'b_c'), '3', {}, tagged(3)),
            StrategyVariant(('a', 'c'), '4', {}, tagged(4)),
        ]
        definition = create_strategy_definition(
            type='X', title='X', axes=axes, variants=variants, output_config={},
        )
        active = definition.dispatch(node_with(p='a', q='b_c'))
        assert active.calculate({})['tag'] == 2

    def test_incomplete_product_rejected(self):
        axes = [
            StrategyAxis('boundary', 'B', options('simple', 'cantilever'), 'simple'),
            StrategyAxis('load', 'L', options('uniform', 'point'), 'uniform'),
        ]
        with pytest.raises(ValueError, match='cantilever_point'):
            create_strategy_definition(
                type='X', title='X', axes=axes, output_config={},
                variants=[
                    StrategyVariant(('simple', 'uniform'), '', {}, tagged(0)),
                    StrategyVariant(('simple', 'point'), '', {}, tagged(1)),
                    StrategyVariant(('cantilever', 'uniform'), '', {}, tagged(2)),
                ],
            )

    def test_value_outside_axis_rejected(self):
        axes = [StrategyAxis('shape', 'S', options('rect'), 'rect')]
        with pytest.raises(ValueError, match='not an option'):
            create_strategy_definition(
                type='X', title='X', axes=axes, output_config={},
                variants=[StrategyVariant('oval', '', {}, tagged(0))],
            )


class TestRegistry:
    """Test the explicit registry."""

    def test_get_and_contains(self):
        registry = NodeTypeRegistry([single_axis()])
        assert 'SHAPE' in registry
        assert registry.get('SHAPE').title == 'Shape'
        assert registry.get('NOPE') is None

    def test_get_definition_unknown(self):
        with pytest.raises(ValueError, match='Unknown node type'):
            NodeTypeRegistry().get_definition('NOPE')

    def test_register_overwrites(self):
        registry = NodeTypeRegistry([single_axis()])
        replacement = create_node_definition('SHAPE', 'Other', calculate=lambda i, r=None: {})
        registry.register(replacement)
        assert len(registry) == 1
        assert registry.get('SHAPE').title == 'Other'

    def test_registries_are_independent(self):
        first = build_default_registry()
        second = NodeTypeRegistry()
        assert 'BEAM' in first
        assert 'BEAM' not in second

    def test_catalog(self):
        catalog = build_default_registry().list_node_types()
        by_type = {entry['type']: entry for entry in catalog}
        assert set(by_type) == {
            'MATERIAL', 'SECTION', 'BEAM', 'BEAM_MULTI', 'VERIFY', 'CUSTOM', 'COUPLE',
        }
        beam_variants = [v['id'] for v in by_type['BEAM']['variants']]
        assert beam_variants == [
            'simple_uniform', 'simple_point', 'cantilever_uniform', 'cantilever_point',
        ]
        assert by_type['COUPLE']['row_prefixes'] == ['d']

    def test_catalog_category_filter(self):
        catalog = build_default_registry().list_node_types(category='beam')
        assert {entry['type'] for entry in catalog} == {'BEAM', 'BEAM_MULTI'}
