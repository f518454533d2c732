"""
Structural mechanics formulas used by the built-in node types.

Units follow the card convention: lengths in mm, forces in N, distributed
loads in N/mm, moments in N·mm, stresses in N/mm².

Sign convention: sagging moment positive, shear positive on the left face.
Cantilevers are fixed at x = 0.

References:
- Roark's Formulas for Stress and Strain (8th ed.), Table 8.1
- AIJ Design Standard for Steel Structures (allowable stress design)
"""

import math
from typing import Dict, Iterable, NamedTuple, Sequence, Tuple

import numpy as np

# Steel grades: design strength F (N/mm²) and Young's modulus E (N/mm²)
STEEL_GRADES = {
    'ss400': {'F': 235.0, 'E': 205000.0},
    'sn400b': {'F': 235.0, 'E': 205000.0},
    'sn490b': {'F': 325.0, 'E': 205000.0},
    'sm490': {'F': 325.0, 'E': 205000.0},
}

# Segments used when scanning a superposed beam for its extreme values
SCAN_SEGMENTS = 500


class BeamResult(NamedTuple):
    M: float  # moment (N·mm)
    Q: float  # shear (N)


class LoadRow(NamedTuple):
    """One load on a multi-load simple beam."""
    kind: str  # 'point', 'moment' or 'dist'
    a: float
    b: float
    value: float


# --- Section properties ---

def rect_section(B: float, H: float) -> Dict[str, float]:
    """Solid rectangle of width B and height H."""
    return {
        'A': B * H,
        'Ix': B * H ** 3 / 12,
        'Iy': H * B ** 3 / 12,
        'Z': B * H ** 2 / 6,
    }


def h_section(H: float, B: float, tw: float, tf: float) -> Dict[str, float]:
    """
    Rolled H-section (fillet radius ignored).

    Ix subtracts the two voids beside the web from the enclosing rectangle.
    """
    if H <= 0:
        raise ValueError(f"Section height H must be positive, got {H}")
    web_h = H - 2 * tf
    A = 2 * B * tf + web_h * tw
    Ix = B * H ** 3 / 12 - (B - tw) * web_h ** 3 / 12
    Iy = 2 * tf * B ** 3 / 12 + web_h * tw ** 3 / 12
    return {'A': A, 'Ix': Ix, 'Iy': Iy, 'Z': Ix / (H / 2)}


def circle_section(D: float) -> Dict[str, float]:
    """Solid circle of diameter D."""
    I = np.pi * D ** 4 / 64
    return {
        'A': np.pi * D ** 2 / 4,
        'Ix': I,
        'Iy': I,
        'Z': np.pi * D ** 3 / 32,
    }


# --- Single-load beams ---

def _check_span(L: float) -> None:
    if L <= 0:
        raise ValueError(f"Span L must be positive, got {L}")


def simple_uniform(L: float, w: float, x: float) -> BeamResult:
    """Simply supported beam, full-span uniform load w."""
    return BeamResult(w * L * x / 2 - w * x ** 2 / 2, w * L / 2 - w * x)


def simple_point(L: float, P: float, a: float, x: float) -> BeamResult:
    """Simply supported beam, point load P at distance a from the left support."""
    b = L - a
    if x <= a:
        return BeamResult(P * b * x / L, P * b / L)
    return BeamResult(P * a * (L - x) / L, -P * a / L)


def cantilever_uniform(L: float, w: float, x: float) -> BeamResult:
    """Cantilever fixed at x = 0, full-span uniform load w."""
    return BeamResult(-w * (L - x) ** 2 / 2, w * (L - x))


def cantilever_point(L: float, P: float, a: float, x: float) -> BeamResult:
    """Cantilever fixed at x = 0, point load P at distance a."""
    if x <= a:
        return BeamResult(-P * (a - x), P)
    return BeamResult(0.0, 0.0)


def simple_moment(L: float, M0: float, a: float, x: float) -> BeamResult:
    """Simply supported beam, clockwise applied couple M0 at distance a."""
    R_a = -M0 / L
    if x < a:
        return BeamResult(R_a * x, R_a)
    return BeamResult(R_a * x + M0, R_a)


def simple_partial_uniform(L: float, w: float, a: float, b: float, x: float) -> BeamResult:
    """Simply supported beam, uniform load w between a and b."""
    start, end = sorted((min(max(a, 0.0), L), min(max(b, 0.0), L)))
    W = w * (end - start)
    c = (start + end) / 2
    R_a = W * (L - c) / L

    if x <= start:
        return BeamResult(R_a * x, R_a)
    if x <= end:
        return BeamResult(R_a * x - w * (x - start) ** 2 / 2, R_a - w * (x - start))
    return BeamResult(R_a * x - W * (x - c), R_a - W)


def beam_at(boundary: str, load: str, L: float, value: float, a: float, x: float) -> BeamResult:
    """
    Section forces at x for a single-load beam.

    `value` is w for uniform loads and P for point loads; `a` is the point
    load position. Returns zero forces outside the span.
    """
    if x < 0 or x > L:
        return BeamResult(0.0, 0.0)
    if boundary == 'simple' and load == 'uniform':
        return simple_uniform(L, value, x)
    if boundary == 'simple' and load == 'point':
        return simple_point(L, value, a, x)
    if boundary == 'cantilever' and load == 'uniform':
        return cantilever_uniform(L, value, x)
    if boundary == 'cantilever' and load == 'point':
        return cantilever_point(L, value, a, x)
    raise ValueError(f"Unknown beam case '{boundary}_{load}'")


def beam_max(boundary: str, load: str, L: float, value: float, a: float) -> Dict[str, float]:
    """Closed-form extreme moment and shear for a single-load beam."""
    _check_span(L)
    if boundary == 'simple' and load == 'uniform':
        return {'M_max': value * L ** 2 / 8, 'V_max': value * L / 2}
    if boundary == 'simple' and load == 'point':
        b = L - a
        return {'M_max': value * a * b / L, 'V_max': max(value * b / L, value * a / L)}
    if boundary == 'cantilever' and load == 'uniform':
        return {'M_max': -value * L ** 2 / 2, 'V_max': value * L}
    if boundary == 'cantilever' and load == 'point':
        return {'M_max': -value * a, 'V_max': value}
    raise ValueError(f"Unknown beam case '{boundary}_{load}'")


def beam_case(boundary: str, load: str, L: float, value: float, a: float, x_loc: float) -> Dict[str, float]:
    """Extreme values plus section forces at x_loc."""
    result = beam_max(boundary, load, L, value, a)
    Mx, Qx = beam_at(boundary, load, L, value, a, x_loc)
    result['Mx'] = Mx
    result['Qx'] = Qx
    return result


# --- Superposition ---

def superpose(L: float, loads: Iterable[LoadRow], x: float) -> BeamResult:
    """Sum of the section forces of every load on a simple beam."""
    M = 0.0
    Q = 0.0
    for load in loads:
        if load.kind == 'point':
            contrib = simple_point(L, load.value, load.a, x)
        elif load.kind == 'moment':
            contrib = simple_moment(L, load.value, load.a, x)
        elif load.kind == 'dist':
            contrib = simple_partial_uniform(L, load.value, load.a, load.b, x)
        else:
            raise ValueError(f"Unknown load type '{load.kind}' (use point, moment or dist)")
        M += contrib.M
        Q += contrib.Q
    return BeamResult(M, Q)


def multi_load_beam(L: float, loads: Sequence[LoadRow], x_loc: float) -> Dict[str, float]:
    """
    Multi-load simple beam.

    M_max is the signed moment of largest magnitude and V_max the largest
    absolute shear, both found by scanning SCAN_SEGMENTS equal segments.
    """
    _check_span(L)
    Mx, Qx = superpose(L, loads, x_loc) if 0 <= x_loc <= L else (0.0, 0.0)

    M_max = 0.0
    V_max = 0.0
    for x in np.linspace(0.0, L, SCAN_SEGMENTS + 1):
        M, Q = superpose(L, loads, float(x))
        if abs(M) > abs(M_max):
            M_max = M
        if abs(Q) > V_max:
            V_max = abs(Q)

    return {'M_max': M_max, 'V_max': V_max, 'Mx': Mx, 'Qx': Qx}


# --- Stress check ---

def bending_check(M: float, Z: float, fb: float) -> Dict[str, float]:
    """Bending stress |M|/Z against allowable fb (isOk is 1 or 0)."""
    sigma = abs(M) / Z if Z != 0 else 0.0
    ratio = sigma / fb if fb != 0 else 0.0
    return {
        'sigma': sigma,
        'ratio': ratio,
        'isOk': 1 if ratio <= 1.0 else 0,
        'M_at_x': M,
    }


# --- Couple conversion ---

def couple_forces(M: float, distances: Sequence[Tuple[int, float]]) -> Dict[str, float]:
    """
    Convert moment M into forces proportional to lever arm (N_i = k·d_i).

    k = M / Σd². When there are no rows, or every distance is zero, k is 0
    and so is every force.
    """
    outputs: Dict[str, float] = {'k': 0.0}
    if not distances:
        return outputs

    sum_d2 = math.fsum(d * d for _, d in distances)
    if sum_d2 == 0:
        for index, _ in distances:
            outputs[f'n_{index}'] = 0.0
        return outputs

    k = M / sum_d2
    outputs['k'] = k
    for index, d in distances:
        outputs[f'n_{index}'] = k * d
    return outputs
