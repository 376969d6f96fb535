"""
schemas/__init__.py

JSON Schema definitions and validation utilities for WardleySync project
files. Used when importing a project exported from another machine.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator

# Schema file paths
SCHEMA_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_SCHEMA_PATH = os.path.join(SCHEMA_DIR, "project_schema.json")

# Cached schema
_project_schema: Optional[Dict] = None


def get_project_schema() -> Dict:
    """Load and return the project schema."""
    global _project_schema
    if _project_schema is None:
        with open(PROJECT_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _project_schema = json.load(f)
    return _project_schema


def _format_errors(errors) -> List[str]:
    error_messages = []
    for error in errors:
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        error_messages.append(f"{path}: {error.message}")
    return error_messages


def validate_project(data: Any) -> Tuple[bool, List[str]]:
    """
    Validate an imported project document.

    Args:
        data: The decoded JSON data

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft202012Validator(get_project_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

    if not errors:
        return True, []
    return False, _format_errors(errors)

