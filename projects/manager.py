"""
projects/manager.py

Save, load, list, export and import projects.

A project bundles the notation source with the full map snapshot
(overlays and reveal sequence included). Records are stored as JSON under
their project name in an injected :class:`projects.storage.StorageBackend`.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Callable, List, Optional

from debug_trace import trace
from models import ProjectRecord, WardleyMap
from projects.storage import StorageBackend
from schemas import validate_project

PROJECT_NAME_PREFIX = "WardleyMap"


class ProjectNotFoundError(LookupError):
    """Raised when a named project does not exist."""


class ProjectImportError(ValueError):
    """Raised when imported project JSON is malformed or incomplete."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_project_name(now: Optional[datetime] = None) -> str:
    """Default project name, e.g. ``WardleyMap_2024-05-01_14-30`` (UTC)."""
    moment = (now or _utc_now()).astimezone(timezone.utc)
    return f"{PROJECT_NAME_PREFIX}_{moment:%Y-%m-%d_%H-%M}"


class ProjectManager:
    """Project persistence on top of a key-value store.

    Args:
        storage: Backend providing get/set/delete/list_keys.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(self, storage: StorageBackend, clock: Callable[[], datetime] = _utc_now):
        self.storage = storage
        self._clock = clock

    def save_project(self, name: str, raw_text: str, wmap: WardleyMap) -> ProjectRecord:
        """Create or overwrite a project, keeping its original creation time."""
        if not name:
            raise ValueError("Project name must not be empty")
        now = iso_timestamp(self._clock())
        existing = self.load_project(name)
        record = ProjectRecord(
            name=name,
            raw_text=raw_text,
            map=wmap,
            created_at=existing.created_at if existing and existing.created_at else now,
            updated_at=now,
        )
        self.storage.set(name, json.dumps(record.to_dict(), ensure_ascii=False))
        trace(f"Saved project {name!r}", "PROJECT")
        return record

    def load_project(self, name: str) -> Optional[ProjectRecord]:
        """Return the project, or None if missing or unreadable."""
        raw = self.storage.get(name)
        if raw is None:
            return None
        try:
            return ProjectRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            trace(f"Unreadable project {name!r}: {e}", "ERROR")
            return None

    def delete_project(self, name: str) -> None:
        self.storage.delete(name)
        trace(f"Deleted project {name!r}", "PROJECT")

    def project_names(self) -> List[str]:
        return sorted(self.storage.list_keys())

    def export_project(self, name: str) -> str:
        """Pretty-printed JSON of a stored project.

        Raises:
            ProjectNotFoundError: if no such project exists.
        """
        record = self.load_project(name)
        if record is None:
            raise ProjectNotFoundError(f"Project not found: {name}")
        return json.dumps(record.to_dict(), indent=2, ensure_ascii=False)

    def import_project(self, json_text: str) -> ProjectRecord:
        """Validate and store a project exported by :meth:`export_project`.

        Raises:
            ProjectImportError: with a description of what is wrong.
        """
        try:
            data = json.loads(json_text)
        except ValueError as e:
            raise ProjectImportError(f"Failed to import project: invalid JSON ({e})") from e

        is_valid, errors = validate_project(data)
        if not is_valid:
            raise ProjectImportError("Failed to import project: " + "; ".join(errors))

        try:
            record = ProjectRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ProjectImportError(f"Failed to import project: {e}") from e

        return self.save_project(record.name, record.raw_text, record.map)
