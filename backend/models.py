"""Pydantic models for Calcgraph API requests, responses and project records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

RECORD_VERSION = "1.0.0"


# --- Project record (export / import / share) ---

class SlotReference(BaseModel):
    node_id: str = Field(..., min_length=1)
    output_key: str = Field(..., min_length=1)


class SlotRecord(BaseModel):
    """One input slot: a literal value, a reference, or an opaque payload."""
    value: Optional[Union[int, float, str]] = None
    ref: Optional[SlotReference] = None
    opaque: Optional[Any] = None

    @model_validator(mode="after")
    def validate_exclusive(self) -> SlotRecord:
        if self.ref is not None and self.value not in (None, ""):
            raise ValueError("A slot cannot hold both a literal value and a reference")
        if self.ref is not None and "opaque" in self.model_fields_set:
            raise ValueError("A slot cannot hold both an opaque payload and a reference")
        return self


class NodeRecord(BaseModel):
    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    alias: str = ""
    inputs: Dict[str, SlotRecord] = Field(default_factory=dict)
    outputs: Dict[str, float] = Field(default_factory=dict)
    error: Optional[str] = None


class ProjectMetaModel(BaseModel):
    title: str = Field("Untitled", max_length=200)
    author: str = Field("", max_length=200)


class ProjectRecord(BaseModel):
    """Plain, versioned form of a whole project."""
    version: str = RECORD_VERSION
    meta: ProjectMetaModel = Field(default_factory=ProjectMetaModel)
    nodes: List[NodeRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_node_ids(self) -> ProjectRecord:
        ids = [n.id for n in self.nodes]
        if len(ids) != len(set(ids)):
            raise ValueError("Node IDs must be unique within a project")
        return self


# --- Requests ---

class CreateProjectRequest(BaseModel):
    title: str = Field("Untitled", max_length=200)
    author: str = Field("", max_length=200)


class CreateNodeRequest(BaseModel):
    type: str = Field(..., min_length=1, description="Registered node type id (e.g. BEAM)")
    alias: Optional[str] = Field(None, max_length=100)


class RenameNodeRequest(BaseModel):
    alias: str = Field(..., max_length=100)


class LiteralInputRequest(BaseModel):
    value: Optional[Union[int, float, str]] = Field("", description="Literal value, parsed as a number at recalculation")


class ReferenceInputRequest(BaseModel):
    node_id: str = Field(..., min_length=1, description="Producer node id")
    output_key: str = Field(..., min_length=1, description="Producer output key")


class ReorderRequest(BaseModel):
    """Either a full id order, or a drag move of `active_id` onto `over_id`."""
    order: Optional[List[str]] = None
    active_id: Optional[str] = None
    over_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_one_form(self) -> ReorderRequest:
        has_move = self.active_id is not None and self.over_id is not None
        if (self.order is None) == (not has_move):
            raise ValueError("Provide either 'order' or both 'active_id' and 'over_id'")
        return self


class AddRowRequest(BaseModel):
    node_id: str = Field(..., min_length=1)


class ShareOpenRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=200_000)


# --- Responses ---

class ProjectResponse(BaseModel):
    id: str
    meta: ProjectMetaModel
    nodes: List[NodeRecord]
    order: List[str] = Field(default_factory=list, description="Last recalculation order")
    cycle_members: List[str] = Field(default_factory=list)
    failures: Dict[str, str] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


class ProjectSummary(BaseModel):
    id: str
    title: str
    author: str
    node_count: int
    updated_at: datetime


class ProjectListResponse(BaseModel):
    projects: List[ProjectSummary]
    total: int


class AddRowResponse(BaseModel):
    row: int
    project: ProjectResponse


class ShareResponse(BaseModel):
    code: str
