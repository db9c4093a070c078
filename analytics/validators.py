# validators.py — Input validation & JSON sanitizing
# File type checks, table shape checks, report serialization guards
"""
validators.py — Input Validation & Sanitization

Production implementation for:
- Upload file type validation
- Table shape validation (rows + column names)
- Report sanitizing for strict JSON output
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np


# =============================================================================
# CONSTANTS
# =============================================================================

ALLOWED_EXTENSIONS = {".csv", ".xlsx", ".xls", ".json"}


# =============================================================================
# EXCEPTIONS
# =============================================================================

class AnalysisError(Exception):
    """Base exception for analyzer errors."""
    pass


class InvalidInputError(AnalysisError):
    """Raised when rows or column names are not well-formed sequences."""
    pass


# =============================================================================
# FILE VALIDATION
# =============================================================================

def get_extension(filename: str) -> str:
    """Lower-cased extension including the dot, or "" when there is none."""
    return "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_file_extension(filename: str) -> tuple[bool, str | None]:
    """
    Validate that file has an allowed extension.

    Returns:
        (is_valid, error_message)
    """
    if not filename:
        return False, "No filename provided"

    ext = get_extension(filename)

    if ext not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        return False, f"Invalid file type: {ext or '(none)'}. Allowed: {allowed}"

    return True, None


# =============================================================================
# TABLE VALIDATION
# =============================================================================

def _is_sequence(obj: Any) -> bool:
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes, bytearray))


def validate_table(rows: Any, columns: Any) -> tuple[bool, str | None]:
    """
    Validate that rows and column names form an analyzable table.

    Rows must be a list/tuple of mappings and columns a list/tuple of
    strings. An empty table is valid.

    Returns:
        (is_valid, error_message)
    """
    if not _is_sequence(rows):
        return False, f"Rows must be a sequence of mappings, got {type(rows).__name__}"

    if not _is_sequence(columns):
        return False, f"Columns must be a sequence of names, got {type(columns).__name__}"

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            return False, f"Row {index} is not a mapping ({type(row).__name__})"

    for index, column in enumerate(columns):
        if not isinstance(column, str):
            return False, f"Column name at position {index} is not a string ({column!r})"

    return True, None


def ensure_valid_table(rows: Any, columns: Any) -> None:
    """
    Raise InvalidInputError unless rows/columns pass validate_table().
    """
    is_valid, error = validate_table(rows, columns)
    if not is_valid:
        raise InvalidInputError(error)


# =============================================================================
# OUTPUT SANITIZATION
# =============================================================================

def sanitize_report_for_json(obj: Any) -> Any:
    """
    Recursively sanitize a report for strict JSON serialization.
    Handles numpy types, NaN, Inf and tuples.
    """
    if obj is None:
        return None

    if isinstance(obj, dict):
        return {str(k): sanitize_report_for_json(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [sanitize_report_for_json(v) for v in obj]

    if isinstance(obj, np.ndarray):
        return sanitize_report_for_json(obj.tolist())

    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, (float, np.floating)):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return float(obj)

    return obj
