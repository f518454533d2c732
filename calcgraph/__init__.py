"""
Calcgraph Engine

Dependency-driven recalculation for typed calculation nodes (cards).
Nodes reference each other's outputs; every mutation re-orders the graph
and recomputes every node, isolating failures to the node that raised.

All math is plain deterministic Python/numpy.
"""

from calcgraph.nodes import Node, LiteralInput, ReferenceInput, OpaqueInput, literal, reference
from calcgraph.definitions import (
    InputField, OutputField, StrategyAxis, StrategyVariant, NodeTypeDefinition,
    create_node_definition, create_strategy_definition,
)
from calcgraph.graph import Sorted, CycleDetected, build_dependency_graph, topological_sort
from calcgraph.resolver import resolve_inputs, resolve_schema
from calcgraph.registry import NodeTypeRegistry, build_default_registry
from calcgraph.recalc import Ok, Err, RecalcReport, recalculate, recalculate_all
from calcgraph.errors import CalcGraphError, NodeNotFoundError, UnknownNodeTypeError
from calcgraph.project import Project, ProjectMeta

__version__ = "0.1.0"
