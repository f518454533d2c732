"""
Built-in structural node types (cards).

Each definition wires the formulas in calcgraph.mechanics to an input
schema and output declaration. Units: mm, N, N/mm, N·mm, N/mm².
"""

from typing import Dict, List

from calcgraph.definitions import (
    InputField,
    NodeTypeDefinition,
    OutputField,
    Schema,
    StrategyAxis,
    StrategyVariant,
    create_node_definition,
    create_strategy_definition,
    options,
)
from calcgraph.formula import evaluate_outputs
from calcgraph.mechanics import (
    STEEL_GRADES,
    LoadRow,
    beam_case,
    bending_check,
    circle_section,
    couple_forces,
    h_section,
    multi_load_beam,
    rect_section,
)
from calcgraph.nodes import LiteralInput, Node, indexed_keys, literal


# --- MATERIAL ---

def _grade(grade: str):
    def calculate(inputs: Dict[str, float]) -> Dict[str, float]:
        return dict(STEEL_GRADES[grade])
    return calculate


MATERIAL = create_strategy_definition(
    type='MATERIAL',
    title='Material',
    description='Select a steel grade to get its design strength and modulus.',
    strategy_key='grade',
    variants=[
        StrategyVariant('ss400', 'SS400', {}, _grade('ss400')),
        StrategyVariant('sn400b', 'SN400B', {}, _grade('sn400b')),
        StrategyVariant('sn490b', 'SN490B', {}, _grade('sn490b')),
        StrategyVariant('sm490', 'SM490', {}, _grade('sm490')),
    ],
    output_config={
        'F': OutputField('Design Strength (F)', 'stress'),
        'E': OutputField("Young's Modulus (E)", 'stress'),
    },
    category='material',
)


# --- SECTION ---

SECTION = create_strategy_definition(
    type='SECTION',
    title='Section',
    description='Section geometry (rectangle, H-beam, circle).',
    strategy_key='shape',
    variants=[
        StrategyVariant(
            'rect', 'Rectangle',
            {
                'B': InputField('Width (B)', 300, 'length'),
                'H': InputField('Height (H)', 600, 'length'),
            },
            lambda i: rect_section(i['B'], i['H']),
        ),
        StrategyVariant(
            'h_beam', 'H-Beam',
            {
                'H': InputField('Height (H)', 200, 'length'),
                'B': InputField('Width (B)', 100, 'length'),
                'tw': InputField('Web thickness (tw)', 6, 'length'),
                'tf': InputField('Flange thickness (tf)', 9, 'length'),
            },
            lambda i: h_section(i['H'], i['B'], i['tw'], i['tf']),
        ),
        StrategyVariant(
            'circle', 'Circle',
            {'D': InputField('Diameter (D)', 100, 'length')},
            lambda i: circle_section(i['D']),
        ),
    ],
    output_config={
        'A': OutputField('Area', 'area'),
        'Ix': OutputField('I_x', 'inertia'),
        'Iy': OutputField('I_y', 'inertia'),
        'Z': OutputField('Z', 'modulus'),
    },
    category='section',
)


# --- BEAM ---

BEAM_OUTPUTS = {
    'M_max': OutputField('M_max', 'moment'),
    'V_max': OutputField('V_max', 'force'),
    'Mx': OutputField('Mx', 'moment'),
    'Qx': OutputField('Qx', 'force'),
}


def _beam_schema(load: str, a_default: float) -> Schema:
    schema = {'L': InputField('Span (L)', 4000, 'length')}
    if load == 'uniform':
        schema['w'] = InputField('Distributed load (w)', 10, 'load')
    else:
        schema['P'] = InputField('Point load (P)', 10000, 'force')
        schema['a'] = InputField('Load position (a)', a_default, 'length')
    schema['x_loc'] = InputField('Check location (x)', 2000, 'length')
    return schema


def _beam_variant(boundary: str, load: str, label: str, a_default: float = 2000) -> StrategyVariant:
    def calculate(inputs: Dict[str, float]) -> Dict[str, float]:
        value = inputs['w'] if load == 'uniform' else inputs['P']
        return beam_case(boundary, load, inputs['L'], value, inputs.get('a', 0.0), inputs['x_loc'])

    return StrategyVariant((boundary, load), label, _beam_schema(load, a_default), calculate)


BEAM = create_strategy_definition(
    type='BEAM',
    title='Beam',
    description='Shear and moment for a single-load beam.',
    axes=[
        StrategyAxis('boundary', 'Support', options('simple', 'cantilever'), 'simple'),
        StrategyAxis('load', 'Load', options('uniform', 'point'), 'uniform'),
    ],
    variants=[
        _beam_variant('simple', 'uniform', 'Simple beam, uniform load'),
        _beam_variant('simple', 'point', 'Simple beam, point load'),
        _beam_variant('cantilever', 'uniform', 'Cantilever, uniform load'),
        _beam_variant('cantilever', 'point', 'Cantilever, point load', a_default=4000),
    ],
    output_config=BEAM_OUTPUTS,
    category='beam',
)


# --- BEAM_MULTI ---

def _load_rows(inputs: Dict[str, float], raw_inputs) -> List[LoadRow]:
    raw_inputs = raw_inputs or {}
    rows = []
    for n in indexed_keys(raw_inputs.keys(), 'load_type'):
        slot = raw_inputs.get(f'load_type_{n}')
        kind = slot.value if isinstance(slot, LiteralInput) and slot.value else 'point'
        rows.append(LoadRow(
            kind=str(kind),
            a=inputs.get(f'a_{n}', 0.0),
            b=inputs.get(f'b_{n}', 0.0),
            value=inputs.get(f'val_{n}', 0.0),
        ))
    return rows


def _calc_beam_multi(inputs, raw_inputs=None):
    """Simple beam with any number of point, moment and distributed loads."""
    return multi_load_beam(inputs['L'], _load_rows(inputs, raw_inputs), inputs['x_loc'])


BEAM_MULTI = create_node_definition(
    type='BEAM_MULTI',
    title='Beam (multiple loads)',
    description='Simply supported beam with superposed load rows.',
    calculate=_calc_beam_multi,
    default_inputs={
        'L': literal(4000),
        'x_loc': literal(2000),
        'load_type_1': literal('point'),
        'a_1': literal(1333),
        'b_1': literal(0),
        'val_1': literal(1000),
    },
    input_schema={
        'L': InputField('Span (L)', 4000, 'length'),
        'x_loc': InputField('Check location (x)', 2000, 'length'),
    },
    output_config=BEAM_OUTPUTS,
    row_template={
        'load_type': literal('point'),
        'a': literal(0),
        'b': literal(0),
        'val': literal(0),
    },
    category='beam',
)


# --- VERIFY ---

def _calc_verify(inputs, raw_inputs=None):
    """Bending stress check."""
    return bending_check(inputs['M'], inputs['Z'], inputs['fb'])


VERIFY = create_node_definition(
    type='VERIFY',
    title='Verify',
    description='Check bending stress against the allowable stress.',
    calculate=_calc_verify,
    default_inputs={
        'M': literal(''),
        'Z': literal(''),
        'fb': literal(''),
        'x_loc': literal(1000),
    },
    input_schema={
        'M': InputField('Moment (M)', 0, 'moment'),
        'Z': InputField('Section modulus (Z)', 0, 'modulus'),
        'fb': InputField('Allowable (fb)', 0, 'stress'),
        'x_loc': InputField('Check location (x)', 1000, 'length'),
    },
    output_config={
        'sigma': OutputField('Stress (σ)', 'stress'),
        'ratio': OutputField('Ratio', 'ratio'),
        'isOk': OutputField('Status'),
        'M_at_x': OutputField('M at x', 'moment'),
    },
    category='verify',
)


# --- CUSTOM ---

def _calc_custom(inputs, raw_inputs=None):
    """Evaluate the formula stored in the `formula` literal."""
    slot = (raw_inputs or {}).get('formula')
    formula = slot.value if isinstance(slot, LiteralInput) else None
    if not isinstance(formula, str) or not formula.strip():
        return {}
    variables = {k: v for k, v in inputs.items() if k != 'formula'}
    return evaluate_outputs(formula, variables)


CUSTOM = create_node_definition(
    type='CUSTOM',
    title='Custom Formula',
    description='Define your own variables and formula.',
    calculate=_calc_custom,
    default_inputs={
        'formula': literal('a + b'),
        'a': literal(1),
        'b': literal(2),
    },
    input_schema={
        'formula': InputField('Formula', kind='text'),
    },
    output_config={
        'result': OutputField('Result'),
    },
    category='general',
)


# --- COUPLE ---

def _couple_schema(node: Node) -> Schema:
    return {
        f'd_{n}': InputField(f'Distance (d_{n})', 0, 'length')
        for n in indexed_keys(node.inputs.keys(), 'd')
    }


def _calc_couple(inputs, raw_inputs=None):
    """Moment to linear couple distribution (N_i proportional to d_i)."""
    distances = [(n, inputs[f'd_{n}']) for n in indexed_keys(inputs.keys(), 'd')]
    return couple_forces(inputs['M'], distances)


COUPLE = create_node_definition(
    type='COUPLE',
    title='Couple',
    description='Convert a bending moment into a linear couple distribution.',
    calculate=_calc_couple,
    default_inputs={
        'M': literal(0),
        'd_1': literal(500),
        'd_2': literal(300),
    },
    input_schema={
        'M': InputField('Moment (M)', 0, 'moment'),
    },
    dynamic_schema=_couple_schema,
    output_config={
        'k': OutputField('k', 'load'),
    },
    row_template={
        'd': literal(500),
    },
    category='verify',
)


CARD_DEFINITIONS: List[NodeTypeDefinition] = [
    MATERIAL,
    SECTION,
    BEAM,
    BEAM_MULTI,
    VERIFY,
    CUSTOM,
    COUPLE,
]
