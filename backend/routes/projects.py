"""Project routes: node graph mutations, export, import and share links."""

import logging
from typing import Any, Callable

from fastapi import APIRouter, HTTPException, Request

from backend.models import (
    AddRowRequest,
    AddRowResponse,
    CreateNodeRequest,
    CreateProjectRequest,
    LiteralInputRequest,
    ProjectListResponse,
    ProjectMetaModel,
    ProjectRecord,
    ProjectResponse,
    ProjectSummary,
    ReferenceInputRequest,
    RenameNodeRequest,
    ReorderRequest,
    ShareOpenRequest,
    ShareResponse,
)
from backend.projects.serialization import (
    decode_share_code,
    encode_share_code,
    node_to_record,
    project_to_record,
    record_to_nodes,
)
from backend.projects.store import ProjectEntry
from calcgraph.errors import NodeNotFoundError
from calcgraph.project import Project, ProjectMeta

logger = logging.getLogger(__name__)

router = APIRouter()


def _store(request: Request):
    return request.app.state.project_store


def _response(entry: ProjectEntry) -> ProjectResponse:
    project = entry.project
    report = project.last_report
    return ProjectResponse(
        id=entry.id,
        meta=ProjectMetaModel(title=project.meta.title, author=project.meta.author),
        nodes=[node_to_record(n) for n in project.nodes],
        order=report.order if report else [],
        cycle_members=report.cycle_members if report else [],
        failures=report.failures if report else {},
        updated_at=entry.updated_at,
    )


async def _get(request: Request, project_id: str) -> ProjectEntry:
    entry = await _store(request).get_project(project_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")
    return entry


async def _mutate(request: Request, project_id: str, action: Callable[[Project], Any]):
    """Run a Project mutation through the store, mapping domain errors to HTTP errors."""
    try:
        outcome = await _store(request).mutate(project_id, action)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if outcome is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")
    return outcome


async def _create_from_record(request: Request, record: ProjectRecord) -> ProjectEntry:
    nodes, meta = record_to_nodes(record)
    store = _store(request)
    project = Project(store.registry, nodes, meta)
    entry = await store.create_project(project=project)
    logger.info("Imported project %s with %d nodes", entry.id, len(project))
    return entry


# --- Projects ---

@router.post("/projects", response_model=ProjectResponse)
async def create_project(body: CreateProjectRequest, request: Request):
    """Create an empty project."""
    entry = await _store(request).create_project(ProjectMeta(title=body.title, author=body.author))
    return _response(entry)


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(request: Request):
    entries = await _store(request).list_projects()
    summaries = [
        ProjectSummary(
            id=e.id,
            title=e.project.meta.title,
            author=e.project.meta.author,
            node_count=len(e.project),
            updated_at=e.updated_at,
        )
        for e in entries
    ]
    return ProjectListResponse(projects=summaries, total=len(summaries))


@router.post("/projects/import", response_model=ProjectResponse)
async def import_project(body: ProjectRecord, request: Request):
    """Create a project from an exported record. Outputs are recomputed."""
    return _response(await _create_from_record(request, body))


@router.post("/projects/share/open", response_model=ProjectResponse)
async def open_share_code(body: ShareOpenRequest, request: Request):
    """Create a project from a share code."""
    try:
        record = decode_share_code(body.code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(await _create_from_record(request, record))


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, request: Request):
    return _response(await _get(request, project_id))


@router.delete("/projects/{project_id}")
async def delete_project(project_id: str, request: Request):
    if not await _store(request).delete_project(project_id):
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")
    return {"deleted": True}


@router.get("/projects/{project_id}/export")
async def export_project(project_id: str, request: Request):
    """Plain project record (version, meta, nodes)."""
    entry = await _get(request, project_id)
    return project_to_record(entry.project).model_dump(mode="json", exclude_unset=True)


@router.get("/projects/{project_id}/share", response_model=ShareResponse)
async def share_project(project_id: str, request: Request):
    entry = await _get(request, project_id)
    return ShareResponse(code=encode_share_code(project_to_record(entry.project)))


# --- Nodes ---

@router.post("/projects/{project_id}/nodes", response_model=ProjectResponse)
async def create_node(project_id: str, body: CreateNodeRequest, request: Request):
    entry, _ = await _mutate(request, project_id, lambda p: p.create_node(body.type, body.alias))
    return _response(entry)


@router.delete("/projects/{project_id}/nodes/{node_id}", response_model=ProjectResponse)
async def delete_node(project_id: str, node_id: str, request: Request):
    entry, _ = await _mutate(request, project_id, lambda p: p.delete_node(node_id))
    return _response(entry)


@router.patch("/projects/{project_id}/nodes/{node_id}", response_model=ProjectResponse)
async def rename_node(project_id: str, node_id: str, body: RenameNodeRequest, request: Request):
    entry, _ = await _mutate(request, project_id, lambda p: p.rename_node(node_id, body.alias))
    return _response(entry)


@router.put("/projects/{project_id}/nodes/{node_id}/inputs/{key}", response_model=ProjectResponse)
async def set_literal_input(project_id: str, node_id: str, key: str, body: LiteralInputRequest, request: Request):
    entry, _ = await _mutate(
        request, project_id, lambda p: p.set_literal_input(node_id, key, body.value),
    )
    return _response(entry)


@router.put("/projects/{project_id}/nodes/{node_id}/inputs/{key}/ref", response_model=ProjectResponse)
async def set_reference_input(
    project_id: str, node_id: str, key: str, body: ReferenceInputRequest, request: Request,
):
    entry, _ = await _mutate(
        request, project_id,
        lambda p: p.set_reference_input(node_id, key, body.node_id, body.output_key),
    )
    return _response(entry)


@router.delete("/projects/{project_id}/nodes/{node_id}/inputs/{key}/ref", response_model=ProjectResponse)
async def clear_reference(project_id: str, node_id: str, key: str, request: Request):
    entry, _ = await _mutate(request, project_id, lambda p: p.clear_reference(node_id, key))
    return _response(entry)


@router.delete("/projects/{project_id}/nodes/{node_id}/inputs/{key}", response_model=ProjectResponse)
async def delete_input(project_id: str, node_id: str, key: str, request: Request):
    entry, _ = await _mutate(request, project_id, lambda p: p.delete_input(node_id, key))
    return _response(entry)


@router.post("/projects/{project_id}/order", response_model=ProjectResponse)
async def reorder_nodes(project_id: str, body: ReorderRequest, request: Request):
    """Reorder by full id list, or move one node onto another's position."""
    if body.order is not None:
        action = lambda p: p.reorder_nodes(body.order)  # noqa: E731
    else:
        action = lambda p: p.move_node(body.active_id, body.over_id)  # noqa: E731
    entry, _ = await _mutate(request, project_id, action)
    return _response(entry)


@router.post("/projects/{project_id}/rows", response_model=AddRowResponse)
async def add_input_row(project_id: str, body: AddRowRequest, request: Request):
    """Append one input row to a row-based node (load rows, lever arms)."""
    entry, row = await _mutate(request, project_id, lambda p: p.add_input_row(body.node_id))
    return AddRowResponse(row=row, project=_response(entry))
