"""
Project stores.

Both stores funnel every mutation through one asyncio.Lock, so a project's
mutation and its recalculation pass always complete before the next
mutation starts.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from backend.projects.serialization import parse_record, project_to_record, record_to_nodes
from calcgraph.project import Project, ProjectMeta
from calcgraph.registry import NodeTypeRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProjectEntry:
    id: str
    project: Project
    created_at: datetime
    updated_at: datetime


class InMemoryProjectStore:
    def __init__(self, registry: NodeTypeRegistry):
        self.registry = registry
        self._entries: Dict[str, ProjectEntry] = {}
        self._lock = asyncio.Lock()

    async def create_project(self, meta: Optional[ProjectMeta] = None, project: Optional[Project] = None) -> ProjectEntry:
        now = _now()
        entry = ProjectEntry(
            id=str(uuid.uuid4()),
            project=project or Project(self.registry, meta=meta),
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            self._entries[entry.id] = entry
        return entry

    async def get_project(self, project_id: str) -> Optional[ProjectEntry]:
        async with self._lock:
            return self._entries.get(project_id)

    async def mutate(self, project_id: str, action: Callable[[Project], T]) -> Optional[Tuple[ProjectEntry, T]]:
        """Apply `action` under the lock. Returns (entry, result), or None for unknown ids."""
        async with self._lock:
            entry = self._entries.get(project_id)
            if entry is None:
                return None
            result = action(entry.project)
            entry.updated_at = _now()
            return entry, result

    async def delete_project(self, project_id: str) -> bool:
        async with self._lock:
            return self._entries.pop(project_id, None) is not None

    async def list_projects(self) -> List[ProjectEntry]:
        async with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.updated_at, reverse=True)


class SQLiteProjectStore:
    """Persistent project store backed by SQLite via SQLAlchemy."""

    def __init__(self, registry: NodeTypeRegistry, session_factory=None):
        if session_factory is None:
            from backend.database import SessionLocal
            session_factory = SessionLocal
        self.registry = registry
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    def _to_entry(self, row) -> ProjectEntry:
        """Convert ORM ProjectRow to a recomputed ProjectEntry."""
        record = parse_record(json.loads(row.record_json) if row.record_json else {})
        nodes, meta = record_to_nodes(record)
        return ProjectEntry(
            id=row.id,
            project=Project(self.registry, nodes, meta),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _write(self, row, project: Project) -> None:
        row.title = project.meta.title
        row.author = project.meta.author
        row.record_json = project_to_record(project).model_dump_json(exclude_unset=True)
        row.updated_at = _now()

    async def create_project(self, meta: Optional[ProjectMeta] = None, project: Optional[Project] = None) -> ProjectEntry:
        from backend.models_db import ProjectRow
        project = project or Project(self.registry, meta=meta)
        async with self._lock:
            db = self._session_factory()
            try:
                row = ProjectRow(id=str(uuid.uuid4()))
                self._write(row, project)
                row.created_at = row.updated_at
                db.add(row)
                db.commit()
                entry = ProjectEntry(row.id, project, row.created_at, row.updated_at)
            finally:
                db.close()
        logger.info("Created project %s (%d nodes)", entry.id, len(project))
        return entry

    async def get_project(self, project_id: str) -> Optional[ProjectEntry]:
        from backend.models_db import ProjectRow
        async with self._lock:
            db = self._session_factory()
            try:
                row = db.query(ProjectRow).filter(ProjectRow.id == project_id).first()
                if not row:
                    return None
                return self._to_entry(row)
            finally:
                db.close()

    async def mutate(self, project_id: str, action: Callable[[Project], T]) -> Optional[Tuple[ProjectEntry, T]]:
        """Load, apply `action`, and persist under the lock. Returns (entry, result) or None."""
        from backend.models_db import ProjectRow
        async with self._lock:
            db = self._session_factory()
            try:
                row = db.query(ProjectRow).filter(ProjectRow.id == project_id).first()
                if not row:
                    return None
                entry = self._to_entry(row)
                result = action(entry.project)
                self._write(row, entry.project)
                db.commit()
                entry.updated_at = row.updated_at
                logger.debug("Saved project %s", project_id)
                return entry, result
            finally:
                db.close()

    async def delete_project(self, project_id: str) -> bool:
        from backend.models_db import ProjectRow
        async with self._lock:
            db = self._session_factory()
            try:
                row = db.query(ProjectRow).filter(ProjectRow.id == project_id).first()
                if not row:
                    return False
                db.delete(row)
                db.commit()
                return True
            finally:
                db.close()

    async def list_projects(self) -> List[ProjectEntry]:
        from backend.models_db import ProjectRow
        async with self._lock:
            db = self._session_factory()
            try:
                rows = db.query(ProjectRow).order_by(ProjectRow.updated_at.desc()).all()
                return [self._to_entry(r) for r in rows]
            finally:
                db.close()
