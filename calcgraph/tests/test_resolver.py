"""
Tests for input resolution.

Validates:
1. Literal parsing (numbers, numeric strings, malformed text)
2. Reference resolution against the snapshot, including dangling refs
3. Schema defaults for empty, missing and non-numeric slots
4. Schema keys resolved first, then extra stored keys
"""

import math

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from calcgraph.definitions import InputField, create_node_definition
from calcgraph.nodes import Node, OpaqueInput, literal, reference
from calcgraph.resolver import (
    as_number,
    parse_number,
    resolve_inputs,
    resolve_schema,
    resolve_slot,
)


class TestParseNumber:
    """Test literal parsing."""

    @pytest.mark.parametrize('value, expected', [
        (5, 5.0),
        (2.5, 2.5),
        ('12', 12.0),
        ('  3.5 ', 3.5),
        ('1e3', 1000.0),
        ('-7', -7.0),
    ])
    def test_numeric(self, value, expected):
        assert parse_number(value) == pytest.approx(expected)

    @pytest.mark.parametrize('value', ['', '   ', 'abc', '12abc', None, True, 'nan', [1]])
    def test_not_numeric(self, value):
        assert parse_number(value) is None

    def test_numpy_scalar(self):
        assert as_number(np.float64(1.5)) == 1.5

    def test_nan_rejected(self):
        assert as_number(math.nan) is None

    @pytest.mark.parametrize('value', ['1e999', '-1e999', 'inf', math.inf, -math.inf, np.float64('inf')])
    def test_infinity_rejected(self, value):
        assert parse_number(value) is None

    def test_infinite_literal_uses_default(self):
        assert resolve_slot(literal('1e999'), {}, 300) == 300.0


class TestResolveSlot:
    """Test single-slot resolution."""

    def setup_method(self):
        self.snapshot = {
            'p': Node(id='p', type='T', outputs={'M': 120.0, 'Z': 4.0}),
        }

    def test_reference(self):
        assert resolve_slot(reference('p', 'M'), self.snapshot) == 120.0

    def test_dangling_producer(self):
        assert resolve_slot(reference('gone', 'M'), self.snapshot) == 0.0

    def test_missing_output_key(self):
        assert resolve_slot(reference('p', 'nope'), self.snapshot) == 0.0

    def test_reference_ignores_default(self):
        assert resolve_slot(reference('gone', 'M'), self.snapshot, default=9) == 0.0

    def test_literal(self):
        assert resolve_slot(literal('42'), self.snapshot) == 42.0

    def test_empty_literal_uses_default(self):
        assert resolve_slot(literal(''), self.snapshot, default=300) == 300.0

    def test_malformed_literal_uses_default(self):
        assert resolve_slot(literal('abc'), self.snapshot, default=7) == 7.0

    def test_missing_slot_uses_default(self):
        assert resolve_slot(None, self.snapshot, default=4000) == 4000.0

    def test_no_default_is_zero(self):
        assert resolve_slot(literal('x'), self.snapshot) == 0.0

    def test_opaque_slot_uses_default(self):
        assert resolve_slot(OpaqueInput({'model': 1}), self.snapshot, default=2) == 2.0


class TestResolveInputs:
    """Test full input resolution for a node."""

    def test_schema_then_extra_keys(self):
        schema = {
            'L': InputField('Span', 4000),
            'w': InputField('Load', 10),
        }
        node = Node(id='n', type='T', inputs={
            'extra': literal('5'),
            'w': literal(''),
        })
        resolved = resolve_inputs(node, schema, {})
        assert list(resolved) == ['L', 'w', 'extra']
        assert resolved == {'L': 4000.0, 'w': 10.0, 'extra': 5.0}

    def test_extra_reference(self):
        snapshot = {'p': Node(id='p', type='T', outputs={'M': 3.0})}
        node = Node(id='n', type='T', inputs={'d_1': reference('p', 'M')})
        assert resolve_inputs(node, {}, snapshot) == {'d_1': 3.0}

    def test_non_numeric_default_is_zero(self):
        schema = {'grade': InputField('Grade', 'ss400', kind='select')}
        node = Node(id='n', type='T')
        assert resolve_inputs(node, schema, {}) == {'grade': 0.0}


class TestResolveSchema:
    """Test the schema phase."""

    def test_dynamic_schema_wins(self):
        definition = create_node_definition(
            type='T',
            title='T',
            calculate=lambda i, r=None: {},
            input_schema={'x': InputField('x', 1)},
            dynamic_schema=lambda node: {
                'x': InputField('x', 2),
                'y': InputField('y', 3),
            },
        )
        schema = resolve_schema(definition, Node(id='n', type='T'))
        assert schema['x'].default == 2
        assert list(schema) == ['x', 'y']
