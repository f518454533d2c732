"""
Project records and share codes.

A project serialises to a plain versioned record (see backend.models.ProjectRecord).
Share codes are the same record as compact JSON, zlib-deflated and encoded
with URL-safe base64 (padding stripped).
"""

import base64
import binascii
import json
import logging
import zlib
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from backend.models import RECORD_VERSION, NodeRecord, ProjectMetaModel, ProjectRecord, SlotRecord
from calcgraph.nodes import InputSlot, LiteralInput, Node, OpaqueInput, ReferenceInput, slot_to_dict
from calcgraph.project import Project, ProjectMeta

logger = logging.getLogger(__name__)


def slot_from_record(slot: SlotRecord) -> InputSlot:
    if slot.ref is not None:
        return ReferenceInput(slot.ref.node_id, slot.ref.output_key)
    if "opaque" in slot.model_fields_set:
        return OpaqueInput(slot.opaque)
    return LiteralInput("" if slot.value is None else slot.value)


def node_to_record(node: Node) -> NodeRecord:
    return NodeRecord(
        id=node.id,
        type=node.type,
        alias=node.alias,
        inputs={key: SlotRecord(**slot_to_dict(slot)) for key, slot in node.inputs.items()},
        outputs=dict(node.outputs),
        error=node.error,
    )


def node_from_record(record: NodeRecord) -> Node:
    return Node(
        id=record.id,
        type=record.type,
        alias=record.alias,
        inputs={key: slot_from_record(slot) for key, slot in record.inputs.items()},
        outputs=dict(record.outputs),
        error=record.error,
    )


def project_to_record(project: Project) -> ProjectRecord:
    return ProjectRecord(
        version=RECORD_VERSION,
        meta=ProjectMetaModel(title=project.meta.title, author=project.meta.author),
        nodes=[node_to_record(n) for n in project.nodes],
    )


def record_to_nodes(record: ProjectRecord) -> Tuple[List[Node], ProjectMeta]:
    """Nodes and metadata from a record. Outputs are stale until recomputed."""
    if record.version != RECORD_VERSION:
        logger.info("Reading project record version %s (current %s)", record.version, RECORD_VERSION)
    nodes = [node_from_record(n) for n in record.nodes]
    meta = ProjectMeta(title=record.meta.title, author=record.meta.author)
    return nodes, meta


def parse_record(data: Dict[str, Any]) -> ProjectRecord:
    """Validate a plain dict as a ProjectRecord; raises ValueError."""
    try:
        return ProjectRecord.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid project record: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


# --- Share codes ---

def encode_share_code(record: ProjectRecord) -> str:
    payload = json.dumps(record.model_dump(mode="json", exclude_unset=True), separators=(",", ":"))
    compressed = zlib.compress(payload.encode("utf-8"), 9)
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def decode_share_code(code: str) -> ProjectRecord:
    """Inverse of encode_share_code; raises ValueError for anything undecodable."""
    code = code.strip()
    padded = code + "=" * (-len(code) % 4)
    try:
        compressed = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(zlib.decompress(compressed).decode("utf-8"))
    except (binascii.Error, zlib.error, UnicodeError, json.JSONDecodeError) as e:
        raise ValueError("Invalid share code") from e
    if not isinstance(data, dict):
        raise ValueError("Invalid share code")
    return parse_record(data)
