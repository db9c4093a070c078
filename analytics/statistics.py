# statistics.py — Tabular analysis engine
# Column typing, basic stats, correlations, time series, distributions, patterns
"""
statistics.py — Core Tabular Analysis Engine

Production implementation of the client-side dataset analyzer.
Implements: Numeric Classification, Basic Statistics, Pairwise Correlation,
            Time-Series Trend, Categorical Distribution, Pattern Detection

Input is a plain table (list of row mappings + column names) as produced by
the upload parsers. Output keys follow the dashboard's JSON contract
(camelCase) and must not be renamed.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from decimal import Decimal
from typing import Any, Mapping, Sequence

import numpy as np

from analytics.config import DEFAULT_TIME_COLUMN
from analytics.validators import ensure_valid_table


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Signed decimal literal or Infinity, used whole-string and as a prefix
DECIMAL_LITERAL = re.compile(
    r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
)
# Unsigned hex / octal / binary integers, whole-string conversion only
RADIX_LITERAL = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
# Whitespace trimmed before conversion, byte order mark included
LEADING_SPACE = re.compile(r"^[\s\ufeff]+")
TRAILING_SPACE = re.compile(r"[\s\ufeff]+$")


class _Missing:
    """Marker for a key absent from a row (distinct from an explicit None)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()
_NAN_KEY = ("nan",)


# =============================================================================
# VALUE COERCION
# =============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _as_float(value: Any) -> float:
    """float(value), saturating ints too large for a double to ±inf."""
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _to_number(text: str) -> float:
    """Convert a whole string to a number, NaN when any part is not numeric."""
    stripped = TRAILING_SPACE.sub("", LEADING_SPACE.sub("", text))
    if stripped == "":
        return 0.0

    if DECIMAL_LITERAL.fullmatch(stripped):
        return float(stripped.replace("Infinity", "inf"))

    if RADIX_LITERAL.fullmatch(stripped):
        return _as_float(int(stripped, 0))

    return math.nan


def parse_float(value: Any) -> float:
    """
    Parse the leading numeric prefix of a value.

    Numbers pass through unchanged; strings are parsed from their first
    non-whitespace character up to the longest valid decimal literal
    ("12abc" -> 12.0, "1e3" -> 1000.0). Everything else parses to NaN.
    """
    if _is_number(value):
        return _as_float(value)

    if not isinstance(value, str):
        return math.nan

    match = DECIMAL_LITERAL.match(LEADING_SPACE.sub("", value))
    if match is None:
        return math.nan

    return float(match.group(0).replace("Infinity", "inf"))


def is_numeric(value: Any) -> bool:
    """
    Decide whether a single cell counts as numeric.

    Numbers (NaN included) are numeric. A string is numeric when both the
    whole-string conversion and the prefix parse succeed, so "1e3" and
    " 12 " pass while "12abc" and "" do not.
    """
    if _is_number(value):
        return True

    if not isinstance(value, str):
        return False

    return not math.isnan(_to_number(value)) and not math.isnan(parse_float(value))


def _number_text(number: float) -> str:
    """
    Shortest round-trip text of a double, laid out like a browser prints it.

    Plain notation for 1e-7 <= |x| < 1e21, otherwise exponent notation with
    an explicit sign ("1e+21", "1.5e-7").
    """
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "0"

    sign = "-" if number < 0 else ""
    decimal = Decimal(repr(abs(number))).normalize().as_tuple()
    digits = "".join(str(d) for d in decimal.digits)
    k = len(digits)
    n = decimal.exponent + k  # number == 0.<digits> * 10**n

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        exponent = n - 1
        mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
        text = f"{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"

    return sign + text


def _to_text(value: Any) -> str:
    """Render a cell the way it appears as a mapping key or sort key."""
    if value is None or value is MISSING:
        return ""

    if isinstance(value, str):
        return value

    if isinstance(value, bool):
        return "true" if value else "false"

    if _is_number(value):
        return _number_text(_as_float(value))

    return str(value)


def _is_truthy(value: Any) -> bool:
    """Truthiness of a raw cell: None, "", 0, NaN and False are empty."""
    if value is None or value is MISSING:
        return False

    if isinstance(value, bool):
        return value

    if _is_number(value):
        return value != 0 and not math.isnan(_as_float(value))

    if isinstance(value, str):
        return value != ""

    return True


def _is_null(value: Any) -> bool:
    return value is None or value is MISSING or (isinstance(value, str) and value == "")


def _identity_key(value: Any) -> Any:
    """Key under which two cells count as the same distinct value."""
    if isinstance(value, bool):
        return ("bool", value)

    if _is_number(value) and math.isnan(_as_float(value)):
        return _NAN_KEY

    try:
        hash(value)
    except TypeError:
        return ("object", id(value))

    return value


def _cell(row: Mapping[str, Any], column: str) -> Any:
    return row.get(column)


def _raw_cell(row: Mapping[str, Any], column: str) -> Any:
    return row[column] if column in row else MISSING


# =============================================================================
# ARITHMETIC HELPERS
# =============================================================================

def _accumulate(values: Sequence[float]) -> float:
    """Left-to-right sum starting from zero."""
    total = 0.0
    for value in values:
        total += value
    return total


def _divide(numerator: float, denominator: float) -> float:
    """IEEE division: x/0 gives ±inf, 0/0 gives NaN instead of raising."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(numerator) / np.float64(denominator))


def _parsed_values(rows: Sequence[Mapping[str, Any]], column: str) -> list[float]:
    """Prefix-parse a column and drop values that do not parse."""
    parsed = (parse_float(_cell(row, column)) for row in rows)
    return [value for value in parsed if not math.isnan(value)]


def _population_std(values: Sequence[float], mean: float) -> float:
    squared = _accumulate([(value - mean) * (value - mean) for value in values])
    return math.sqrt(squared / len(values))


# =============================================================================
# COLUMN CLASSIFICATION
# =============================================================================

def is_numeric_column(rows: Sequence[Mapping[str, Any]], column: str) -> bool:
    """A column is numeric only when every row's cell is numeric."""
    return all(is_numeric(_cell(row, column)) for row in rows)


def classify_columns(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
) -> tuple[list[str], list[str]]:
    """
    Partition columns into numeric and categorical.

    A single missing or non-numeric cell demotes the whole column to
    categorical. With zero rows every column is numeric.

    Returns:
        (numeric_columns, categorical_columns), each in header order
    """
    numeric_columns = [col for col in columns if is_numeric_column(rows, col)]
    categorical_columns = [col for col in columns if col not in numeric_columns]
    return numeric_columns, categorical_columns


# =============================================================================
# BASIC STATISTICS
# =============================================================================

def calculate_basic_stats(
    rows: Sequence[Mapping[str, Any]],
    column: str,
) -> dict | None:
    """
    Compute min/max/mean/median/sum/count over a column's parseable values.

    Args:
        rows: Table rows
        column: Column name

    Returns:
        dict {min, max, mean, median, sum, count}, or None when no value
        in the column parses as a number
    """
    values = _parsed_values(rows, column)

    if not values:
        return None

    ordered = sorted(values)
    count = len(values)
    total = _accumulate(values)
    middle = count // 2

    if count % 2 == 0:
        median = (ordered[middle - 1] + ordered[middle]) / 2
    else:
        median = ordered[middle]

    return {
        "min": ordered[0],
        "max": ordered[-1],
        "mean": total / count,
        "median": median,
        "sum": total,
        "count": count,
    }


# =============================================================================
# CORRELATION ANALYSIS
# =============================================================================

def _aligned_values(
    rows: Sequence[Mapping[str, Any]],
    col1: str,
    col2: str,
) -> tuple[list[float], list[float]]:
    values1, values2 = [], []
    for row in rows:
        value1 = parse_float(_cell(row, col1))
        value2 = parse_float(_cell(row, col2))
        if math.isnan(value1) or math.isnan(value2):
            continue
        values1.append(value1)
        values2.append(value2)
    return values1, values2


def calculate_correlation(
    rows: Sequence[Mapping[str, Any]],
    col1: str,
    col2: str,
    align_rows: bool = False,
) -> float | None:
    """
    Pearson correlation (population form) between two columns.

    By default each column is filtered independently and the surviving
    values are paired by position, so columns that drop different rows are
    compared out of step; iteration follows the first series and a missing
    partner is NaN. Pass ``align_rows=True`` to keep only rows where both
    cells parse.

    Returns:
        Correlation coefficient (NaN or ±inf when a series is constant),
        or None when either series is empty
    """
    if align_rows:
        values1, values2 = _aligned_values(rows, col1, col2)
    else:
        values1 = _parsed_values(rows, col1)
        values2 = _parsed_values(rows, col2)

    if not values1 or not values2:
        return None

    mean1 = _accumulate(values1) / len(values1)
    mean2 = _accumulate(values2) / len(values2)

    products = []
    for i, value1 in enumerate(values1):
        value2 = values2[i] if i < len(values2) else math.nan
        products.append((value1 - mean1) * (value2 - mean2))
    covariance = _accumulate(products) / len(values1)

    std1 = _population_std(values1, mean1)
    std2 = _population_std(values2, mean2)

    return _divide(covariance, std1 * std2)


def correlation_matrix(
    rows: Sequence[Mapping[str, Any]],
    numeric_columns: Sequence[str],
    align_rows: bool = False,
) -> dict[str, float | None]:
    """
    Correlate every pair of numeric columns once.

    Keys are "colA-colB" with colA earlier in the column order than colB;
    no self-pairs, no reversed duplicates.
    """
    correlations = {}
    for i, col_a in enumerate(numeric_columns):
        for col_b in numeric_columns[i + 1:]:
            correlations[f"{col_a}-{col_b}"] = calculate_correlation(
                rows, col_a, col_b, align_rows=align_rows
            )
    return correlations


# =============================================================================
# TIME SERIES
# =============================================================================

def analyze_time_series(
    rows: Sequence[Mapping[str, Any]],
    time_column: str,
    value_column: str,
) -> dict | None:
    """
    Order a numeric column along a time column and measure its trend.

    Rows whose value does not parse are dropped; time values are kept as
    they are and ordered as plain strings (not as dates).

    Args:
        rows: Table rows
        time_column: Column holding the time labels
        value_column: Numeric column to follow

    Returns:
        dict {data: [{time, value}], mean, trend, isIncreasing, isDecreasing},
        or None when no value parses
    """
    points = []
    for row in rows:
        value = parse_float(_cell(row, value_column))
        if math.isnan(value):
            continue
        points.append({"time": _cell(row, time_column), "value": value})

    if not points:
        return None

    points.sort(key=lambda point: _to_text(point["time"]))

    values = [point["value"] for point in points]
    trend = values[-1] - values[0]

    return {
        "data": points,
        "mean": _accumulate(values) / len(values),
        "trend": trend,
        "isIncreasing": trend > 0,
        "isDecreasing": trend < 0,
    }


# =============================================================================
# CATEGORICAL DISTRIBUTION
# =============================================================================

def analyze_distribution(
    rows: Sequence[Mapping[str, Any]],
    column: str,
) -> dict:
    """
    Rank the values of a categorical column by frequency.

    Empty cells (None, "", 0, NaN, False) are not counted. Values are keyed
    by their text form, so 5 and "5" fall in the same bucket. Ties keep the
    order in which values were first seen.

    Returns:
        dict {distribution: [{value, count, percentage}], total, uniqueValues}
    """
    counts: dict[str, int] = {}
    for row in rows:
        value = _cell(row, column)
        if not _is_truthy(value):
            continue
        key = _to_text(value)
        counts[key] = counts.get(key, 0) + 1

    total = sum(counts.values())

    distribution = [
        {
            "value": value,
            "count": count,
            "percentage": count / total * 100,
        }
        for value, count in counts.items()
    ]
    distribution.sort(key=lambda entry: entry["count"], reverse=True)

    return {
        "distribution": distribution,
        "total": total,
        "uniqueValues": len(distribution),
    }


# =============================================================================
# PATTERN DETECTION
# =============================================================================

def detect_patterns(
    rows: Sequence[Mapping[str, Any]],
    column: str,
) -> dict:
    """
    Summarize nullness, duplication and uniqueness of a column's raw cells.

    Absent keys, None and "" count as null. Distinct values are compared by
    identity of value: 1 and "1" differ, NaN matches NaN, and an absent key
    is a different value from an explicit None.

    Returns:
        dict {isNumeric, hasNulls, nullPercentage, hasDuplicates,
              duplicatePercentage, uniqueCount}
    """
    values = [_raw_cell(row, column) for row in rows]
    unique_count = len({_identity_key(value) for value in values})
    null_count = sum(1 for value in values if _is_null(value))
    duplicate_count = len(values) - unique_count

    return {
        "isNumeric": all(is_numeric(value) for value in values),
        "hasNulls": null_count > 0,
        "nullPercentage": _divide(null_count, len(values)) * 100,
        "hasDuplicates": duplicate_count > 0,
        "duplicatePercentage": _divide(duplicate_count, len(values)) * 100,
        "uniqueCount": unique_count,
    }


# =============================================================================
# REPORT ORCHESTRATOR
# =============================================================================

def analyze(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    time_column: str = DEFAULT_TIME_COLUMN,
    align_rows: bool = False,
) -> dict:
    """
    Run every analysis over a table and assemble the report.

    Args:
        rows: Table rows (mappings from column name to cell value)
        columns: Column names in header order
        time_column: Header that triggers time-series analysis when present
        align_rows: Pair correlation values by row instead of by position

    Returns:
        dict:
        {
            basic: {totalRows, totalColumns, numericColumns,
                    categoricalColumns, columnTypes},
            correlations: {"A-B": float | None},
            timeSeries: {column: dict | None},
            distributions: {column: dict},
            patterns: {column: dict}
        }

    Raises:
        InvalidInputError: rows or columns are not well-formed sequences
    """
    ensure_valid_table(rows, columns)

    numeric_columns, categorical_columns = classify_columns(rows, columns)

    basic_stats = {
        col: calculate_basic_stats(rows, col) for col in numeric_columns
    }

    correlations = correlation_matrix(rows, numeric_columns, align_rows=align_rows)

    time_series = {}
    if time_column in columns:
        for col in numeric_columns:
            if col != time_column:
                time_series[col] = analyze_time_series(rows, time_column, col)

    distributions = {
        col: analyze_distribution(rows, col) for col in categorical_columns
    }

    patterns = {col: detect_patterns(rows, col) for col in columns}

    column_types = {
        col: {
            "type": "numeric" if col in basic_stats else "categorical",
            "stats": basic_stats.get(col),
        }
        for col in columns
    }

    logger.debug(
        "Analyzed %d rows: %d numeric, %d categorical, %d correlations, %d series",
        len(rows), len(numeric_columns), len(categorical_columns),
        len(correlations), len(time_series),
    )

    return {
        "basic": {
            "totalRows": len(rows),
            "totalColumns": len(columns),
            "numericColumns": numeric_columns,
            "categoricalColumns": categorical_columns,
            "columnTypes": column_types,
        },
        "correlations": correlations,
        "timeSeries": time_series,
        "distributions": distributions,
        "patterns": patterns,
    }
