"""
projects package

Project records and their key-value storage.
"""

from projects.manager import (
    ProjectImportError,
    ProjectManager,
    ProjectNotFoundError,
    generate_project_name,
)
from projects.storage import JsonDirectoryStorage, MemoryStorage, StorageBackend

__all__ = [
    "ProjectImportError",
    "ProjectManager",
    "ProjectNotFoundError",
    "generate_project_name",
    "JsonDirectoryStorage",
    "MemoryStorage",
    "StorageBackend",
]
