# data_loader.py — Upload parsing
# Turns CSV / Excel / JSON uploads into (rows, columns) tables
"""
data_loader.py — Upload Parsing

Production implementation for safe table loading with:
- Encoding detection
- Size and row limits
- CSV, Excel (first sheet) and JSON (array of records) support
- Conversion of numpy/pandas cells to plain Python values
"""

from __future__ import annotations

import io
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO

import numpy as np
import pandas as pd

from analytics.config import get_config
from analytics.validators import get_extension


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

SUPPORTED_ENCODINGS = ["utf-8", "latin-1", "cp1252", "iso-8859-1"]
MAX_ROWS = 10_000  # Larger uploads are rejected, not truncated
EXCEL_EXTENSIONS = {".xlsx", ".xls"}


@dataclass
class Table:
    """Parsed upload: row mappings plus column names in header order."""
    rows: list[dict[str, Any]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return len(self.columns)


# =============================================================================
# CELL CONVERSION
# =============================================================================

def _to_native(value: Any) -> Any:
    """Convert a pandas/numpy cell to a plain Python value (NaN -> None)."""
    if value is None or value is pd.NaT:
        return None

    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()

    if isinstance(value, np.generic):
        value = value.item()

    if isinstance(value, float) and math.isnan(value):
        return None

    return value


def _frame_to_table(df: pd.DataFrame) -> Table:
    columns = [str(col).strip() for col in df.columns]
    rows = [
        {col: _to_native(value) for col, value in zip(columns, record)}
        for record in df.itertuples(index=False, name=None)
    ]
    return Table(rows=rows, columns=columns)


# =============================================================================
# FORMAT PARSERS
# =============================================================================

def _decode(raw_bytes: bytes) -> str:
    last_error = None
    for encoding in SUPPORTED_ENCODINGS:
        try:
            return raw_bytes.decode(encoding)
        except UnicodeDecodeError as e:
            last_error = e
            continue
    raise ValueError(f"Could not decode file with any supported encoding: {last_error}")


def _parse_csv(raw_bytes: bytes) -> tuple[Table | None, str | None]:
    """Parse CSV keeping every cell as text (empty cell -> "")."""
    try:
        text = _decode(raw_bytes)
    except ValueError as e:
        return None, str(e)

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            on_bad_lines="warn",
        )
    except pd.errors.EmptyDataError:
        return None, "CSV file contains no data"
    except pd.errors.ParserError as e:
        return None, f"CSV parsing error: {e}"

    # Rows where every cell is blank
    if len(df.columns) > 0:
        df = df[~(df == "").all(axis=1)]

    return _frame_to_table(df), None


def _parse_excel(raw_bytes: bytes) -> tuple[Table | None, str | None]:
    """Parse the first sheet; empty cells become None, numbers stay numbers."""
    try:
        df = pd.read_excel(io.BytesIO(raw_bytes), sheet_name=0)
    except Exception as e:
        return None, f"Excel parsing error: {str(e)}"

    df = df.dropna(how="all")
    return _frame_to_table(df), None


def _parse_json(raw_bytes: bytes) -> tuple[Table | None, str | None]:
    """Parse an array of records; keys missing from a record stay missing."""
    try:
        payload = json.loads(_decode(raw_bytes))
    except ValueError as e:
        return None, f"JSON parsing error: {str(e)}"

    if not isinstance(payload, list):
        return None, "JSON file must contain an array of records"

    columns: list[str] = []
    seen = set()
    rows = []
    for index, record in enumerate(payload):
        if not isinstance(record, dict):
            return None, f"JSON record {index} is not an object"
        for key in record:
            if key not in seen:
                seen.add(key)
                columns.append(key)
        rows.append(dict(record))

    return Table(rows=rows, columns=columns), None


# =============================================================================
# DATA LOADING
# =============================================================================

def _read_bytes(file: BinaryIO | bytes | str) -> bytes:
    if isinstance(file, str):
        # File path
        with open(file, "rb") as f:
            return f.read()

    if isinstance(file, (bytes, bytearray)):
        return bytes(file)

    # File-like object
    raw_bytes = file.read()
    if hasattr(file, "seek"):
        file.seek(0)  # Reset for potential re-read
    return raw_bytes


def safe_load_table(
    file: BinaryIO | bytes | str,
    filename: str = "unknown.csv",
    max_file_size_mb: int | None = None,
) -> tuple[Table | None, str | None]:
    """
    Safely load an uploaded CSV, Excel or JSON file as a table.

    Args:
        file: File-like object, bytes, or file path
        filename: Original filename (its extension picks the parser)
        max_file_size_mb: Size limit, defaults to the configured limit

    Returns:
        Tuple of (Table or None, error_message or None)
        - On success: (table, None)
        - On failure: (None, error_string)
    """
    if max_file_size_mb is None:
        max_file_size_mb = get_config().max_file_size_mb

    try:
        raw_bytes = _read_bytes(file)
    except OSError as e:
        return None, f"Failed to read file: {str(e)}"

    # Check file size
    if len(raw_bytes) > max_file_size_mb * 1024 * 1024:
        return None, f"File exceeds {max_file_size_mb}MB limit ({len(raw_bytes) / 1024 / 1024:.1f}MB)"

    # Check if file is empty
    if len(raw_bytes) == 0:
        return None, "File is empty"

    ext = get_extension(filename)

    if ext in EXCEL_EXTENSIONS:
        table, error = _parse_excel(raw_bytes)
    elif ext == ".json":
        table, error = _parse_json(raw_bytes)
    else:
        table, error = _parse_csv(raw_bytes)

    if error:
        logger.warning("Could not load %s: %s", filename, error)
        return None, error

    if table.col_count == 0:
        return None, "File contains no columns"

    if table.row_count > MAX_ROWS:
        error = f"File contains too many rows ({table.row_count}). Maximum allowed is {MAX_ROWS} rows."
        logger.warning("Could not load %s: %s", filename, error)
        return None, error

    logger.info("Loaded %s: %d rows, %d columns", filename, table.row_count, table.col_count)
    return table, None


def get_file_info(file: BinaryIO | bytes, filename: str = "unknown.csv") -> dict:
    """
    Get basic file information without parsing.

    Args:
        file: File-like object or bytes
        filename: Original filename

    Returns:
        dict with file metadata
    """
    max_bytes = get_config().max_file_size_bytes

    if isinstance(file, (bytes, bytearray)):
        size_bytes = len(file)
    else:
        file.seek(0, 2)  # Seek to end
        size_bytes = file.tell()
        file.seek(0)  # Reset

    return {
        "filename": filename,
        "extension": get_extension(filename),
        "size_bytes": size_bytes,
        "size_mb": round(size_bytes / 1024 / 1024, 2),
        "is_valid_size": size_bytes <= max_bytes,
    }
