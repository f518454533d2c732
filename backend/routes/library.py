"""Library routes: catalog of registered node types."""

from typing import Optional

from fastapi import APIRouter, Query, Request

router = APIRouter()


@router.get("/node-types")
async def list_node_types(
    request: Request,
    category: Optional[str] = Query(None, description="Filter by category (material, section, beam, verify, general)"),
):
    """List every registered node type with its inputs, outputs and variants."""
    registry = request.app.state.registry
    node_types = registry.list_node_types(category=category)
    return {"node_types": node_types, "total": len(node_types)}
