"""Exceptions raised by Project mutations."""


class CalcGraphError(Exception):
    """Base class for calculation-graph errors."""


class NodeNotFoundError(CalcGraphError, KeyError):
    """No node with the given id exists in the project."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self):
        return f"Node '{self.node_id}' not found"


class UnknownNodeTypeError(CalcGraphError, ValueError):
    """The node type is not registered."""

    def __init__(self, type_id: str):
        super().__init__(type_id)
        self.type_id = type_id

    def __str__(self):
        return f"Unknown node type '{self.type_id}'"
