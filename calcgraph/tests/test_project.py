"""
Tests for Project mutations.

Validates:
1. Node creation from registered defaults, aliases and ids
2. Every input mutation is followed by a recompute
3. Literal and reference slots are mutually exclusive
4. Deleting a producer leaves consumers computing with 0
5. Reordering, moving, renaming and loading
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from calcgraph.errors import CalcGraphError, NodeNotFoundError, UnknownNodeTypeError
from calcgraph.nodes import LiteralInput, Node, OpaqueInput, ReferenceInput, literal, reference
from calcgraph.project import Project, ProjectMeta
from calcgraph.registry import build_default_registry


@pytest.fixture
def project():
    return Project(build_default_registry())


class TestCreateNode:
    """Test node creation."""

    def test_defaults_and_alias(self, project):
        first = project.create_node('BEAM')
        second = project.create_node('SECTION')
        assert first.alias == 'beam_1'
        assert second.alias == 'section_2'
        assert first.inputs == {'boundary': literal('simple'), 'load': literal('uniform')}
        assert first.outputs['M_max'] == pytest.approx(20_000_000)

    def test_unique_ids(self, project):
        ids = {project.create_node('CUSTOM').id for _ in range(5)}
        assert len(ids) == 5

    def test_unknown_type(self, project):
        with pytest.raises(UnknownNodeTypeError):
            project.create_node('NOPE')
        assert len(project) == 0

    def test_unknown_type_is_value_error(self, project):
        with pytest.raises(ValueError):
            project.create_node('NOPE')

    def test_defaults_not_shared(self):
        from calcgraph.definitions import create_node_definition
        from calcgraph.registry import NodeTypeRegistry
        payload = {'items': []}
        registry = NodeTypeRegistry([create_node_definition(
            'OPAQUE', 'Opaque', lambda i, r=None: {},
            default_inputs={'model': OpaqueInput(payload)},
        )])
        project = Project(registry)
        node = project.create_node('OPAQUE')
        node.inputs['model'].payload['items'].append(1)
        assert payload == {'items': []}


class TestInputs:
    """Test input mutations."""

    def test_literal_replaces_reference(self, project):
        beam = project.create_node('BEAM')
        verify = project.create_node('VERIFY')
        project.set_reference_input(verify.id, 'M', beam.id, 'M_max')
        verify = project.set_literal_input(verify.id, 'M', 5)
        assert verify.inputs['M'] == LiteralInput(5)
        assert verify.outputs['M_at_x'] == 5.0

    def test_reference_replaces_literal(self, project):
        beam = project.create_node('BEAM')
        verify = project.create_node('VERIFY')
        project.set_literal_input(verify.id, 'M', 5)
        verify = project.set_reference_input(verify.id, 'M', beam.id, 'M_max')
        assert verify.inputs['M'] == ReferenceInput(beam.id, 'M_max')
        assert verify.outputs['M_at_x'] == pytest.approx(20_000_000)

    def test_clear_reference(self, project):
        beam = project.create_node('BEAM')
        verify = project.create_node('VERIFY')
        project.set_reference_input(verify.id, 'M', beam.id, 'M_max')
        verify = project.clear_reference(verify.id, 'M')
        assert verify.inputs['M'] == LiteralInput('')
        assert verify.outputs['M_at_x'] == 0.0

    def test_clear_reference_keeps_literal(self, project):
        verify = project.create_node('VERIFY')
        project.set_literal_input(verify.id, 'M', 7)
        verify = project.clear_reference(verify.id, 'M')
        assert verify.inputs['M'] == LiteralInput(7)

    def test_delete_input_falls_back_to_default(self, project):
        section = project.create_node('SECTION')
        project.set_literal_input(section.id, 'B', 100)
        section = project.delete_input(section.id, 'B')
        assert 'B' not in section.inputs
        assert section.outputs['A'] == pytest.approx(300 * 600)

    def test_unknown_node(self, project):
        with pytest.raises(NodeNotFoundError):
            project.set_literal_input('missing', 'x', 1)

    def test_not_found_is_key_error(self, project):
        with pytest.raises(KeyError):
            project.get_node('missing')
        with pytest.raises(CalcGraphError):
            project.delete_node('missing')


class TestDelete:
    """Test node deletion."""

    def test_consumer_of_deleted_producer(self, project):
        beam = project.create_node('BEAM')
        verify = project.create_node('VERIFY')
        project.set_reference_input(verify.id, 'M', beam.id, 'M_max')
        project.delete_node(beam.id)

        verify = project.get_node(verify.id)
        assert len(project) == 1
        assert verify.error is None
        assert verify.outputs['M_at_x'] == 0.0
        assert isinstance(verify.inputs['M'], ReferenceInput)


class TestOrdering:
    """Test reorder, move and rename."""

    def test_reorder(self, project):
        a = project.create_node('BEAM')
        b = project.create_node('SECTION')
        project.reorder_nodes([b.id, a.id])
        assert [n.id for n in project.nodes] == [b.id, a.id]

    def test_reorder_requires_permutation(self, project):
        a = project.create_node('BEAM')
        project.create_node('SECTION')
        with pytest.raises(ValueError):
            project.reorder_nodes([a.id])
        with pytest.raises(ValueError):
            project.reorder_nodes([a.id, a.id])

    def test_move(self, project):
        a = project.create_node('BEAM')
        b = project.create_node('SECTION')
        c = project.create_node('VERIFY')
        project.move_node(c.id, a.id)
        assert [n.id for n in project.nodes] == [c.id, a.id, b.id]
        project.move_node(c.id, b.id)
        assert [n.id for n in project.nodes] == [a.id, b.id, c.id]

    def test_order_does_not_change_results(self, project):
        beam = project.create_node('BEAM')
        verify = project.create_node('VERIFY')
        project.set_reference_input(verify.id, 'M', beam.id, 'M_max')
        before = project.get_node(verify.id).outputs
        project.move_node(verify.id, beam.id)
        assert project.get_node(verify.id).outputs == before

    def test_rename(self, project):
        beam = project.create_node('BEAM')
        report = project.last_report
        renamed = project.rename_node(beam.id, 'girder')
        assert renamed.alias == 'girder'
        assert project.find_by_alias('girder').id == beam.id
        assert project.last_report is report


class TestLoad:
    """Test replacing the whole list."""

    def test_load_recomputes(self, project):
        nodes = [
            Node(id='v', type='VERIFY', alias='v', inputs={
                'M': reference('b', 'M_max'), 'Z': literal(1e6), 'fb': literal(150),
            }),
            Node(id='b', type='BEAM', alias='b', inputs={}, outputs={'M_max': -1.0}),
        ]
        project.load_nodes(nodes, ProjectMeta(title='Bridge', author=''))
        assert project.get_node('b').outputs['M_max'] == pytest.approx(20_000_000)
        assert project.get_node('v').outputs['sigma'] == pytest.approx(20.0)
        assert project.meta.title == 'Bridge'

    def test_load_rejects_duplicate_ids(self, project):
        nodes = [Node(id='x', type='BEAM'), Node(id='x', type='SECTION')]
        with pytest.raises(ValueError):
            project.load_nodes(nodes)

    def test_constructor_recomputes(self):
        project = Project(build_default_registry(), [Node(id='s', type='SECTION')])
        assert project.get_node('s').outputs['A'] == pytest.approx(180000)


class TestRows:
    """Test appending input rows."""

    def test_type_without_rows(self, project):
        beam = project.create_node('BEAM')
        with pytest.raises(ValueError, match='no input rows'):
            project.add_input_row(beam.id)

    def test_beam_multi_row(self, project):
        node = project.create_node('BEAM_MULTI')
        assert project.add_input_row(node.id) == 2
        node = project.get_node(node.id)
        assert node.inputs['load_type_2'] == literal('point')
        assert node.inputs['val_2'] == literal(0)
