# nodes.py — Analysis pipeline steps
# ingest → validate → analyze → summarize, plus the failure exit
"""
nodes.py — Pipeline Steps

Every step is a plain function of the state that returns only the keys it
changes. A step that cannot continue returns _failure(...), which sets
error / error_type / failed_node / recovery_hint; the graph router then
sends the run to handle_error_node.

Error types:
    DATA_MISSING     nothing to work on (no upload, no table, no report)
    DATA_INVALID     upload rejected or table malformed
    ANALYSIS_FAILED  analyze() raised
"""

from __future__ import annotations

import logging
import math

from analytics.config import DEFAULT_TIME_COLUMN
from analytics.data_loader import safe_load_table
from analytics.statistics import analyze
from analytics.validators import (
    AnalysisError,
    sanitize_report_for_json,
    validate_file_extension,
    validate_table,
)


logger = logging.getLogger(__name__)


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _report_progress(state: dict, node: str, progress: float, message: str, status: str = "running") -> None:
    """
    Log a progress step and pass it to the run's callback, if any.

    A callback that raises is logged and ignored; the step carries on.

    Args:
        progress: Fraction of the run completed (0.0 - 1.0)
        status: "running" | "complete" | "failed"
    """
    logger.debug("[%s] %.0f%% %s", node, progress * 100, message)

    callback = state.get("progress_callback")
    if not callable(callback):
        return

    event = {"node": node, "status": status, "progress": progress, "message": message}
    try:
        callback(event)
    except Exception as e:
        logger.warning("Progress callback failed in %s: %s", node, e)


def _failure(node: str, message: str, error_type: str, hint: str) -> dict:
    """State update that diverts the run to handle_error."""
    logger.error("%s failed (%s): %s", node, error_type, message)
    return dict(
        error=message,
        error_type=error_type,
        failed_node=node,
        recovery_hint=hint,
        current_node=node,
    )


# =============================================================================
# STEP: INGEST
# =============================================================================

def ingest_data_node(state: dict) -> dict:
    """
    Parse the upload into rows and columns.

    Reads raw_file and filename; writes rows, columns, row_count, col_count.
    Missing bytes are DATA_MISSING; a rejected extension or a parse failure
    is DATA_INVALID.
    """
    step = "ingest_data"
    _report_progress(state, step, 0.05, "Loading your data...")

    raw_file = state.get("raw_file")
    filename = state.get("filename") or "unknown.csv"

    if raw_file is None:
        return _failure(
            step, "No file provided", "DATA_MISSING",
            "Please upload a CSV, Excel or JSON file to analyze.",
        )

    extension_ok, extension_error = validate_file_extension(filename)
    if not extension_ok:
        return _failure(
            step, extension_error, "DATA_INVALID",
            "Please upload a .csv, .xlsx, .xls or .json file.",
        )

    table, load_error = safe_load_table(raw_file, filename)
    if load_error:
        return _failure(
            step, load_error, "DATA_INVALID",
            "Check that the file is well-formed and within the size limit.",
        )

    _report_progress(state, step, 0.25, "Data loaded successfully", "complete")

    return dict(
        rows=table.rows,
        columns=table.columns,
        row_count=table.row_count,
        col_count=table.col_count,
        current_node=step,
        progress=0.25,
        progress_message=f"Loaded {table.row_count:,} rows × {table.col_count} columns",
    )


# =============================================================================
# STEP: VALIDATE
# =============================================================================

def validate_data_node(state: dict) -> dict:
    """Check the table shape. A header without data rows only adds a warning."""
    step = "validate_data"
    _report_progress(state, step, 0.30, "Validating table...")

    rows, columns = state.get("rows"), state.get("columns")

    if rows is None or columns is None:
        return _failure(
            step, "No table available for validation", "DATA_MISSING",
            "Please re-upload your file.",
        )

    table_ok, table_error = validate_table(rows, columns)
    if not table_ok:
        return _failure(
            step, table_error, "DATA_INVALID",
            "The file must contain a header row and one record per row.",
        )

    warnings = [*state.get("warnings", [])]
    if len(rows) == 0:
        warnings.append("The file has a header but no data rows")

    _report_progress(state, step, 0.40, "Table is valid", "complete")

    return dict(
        warnings=warnings,
        current_node=step,
        progress=0.40,
        progress_message=f"Validated {len(columns)} columns",
    )


# =============================================================================
# STEP: ANALYZE
# =============================================================================

def analyze_data_node(state: dict) -> dict:
    """Run analyze() with the run's time column and pairing option; writes report."""
    step = "analyze_data"
    _report_progress(state, step, 0.50, "Running statistical analysis...")

    try:
        report = analyze(
            state.get("rows"),
            state.get("columns"),
            time_column=state.get("time_column", DEFAULT_TIME_COLUMN),
            align_rows=state.get("align_rows", False),
        )
    except AnalysisError as e:
        return _failure(
            step, f"Analysis failed: {e}", "ANALYSIS_FAILED",
            "The table could not be analyzed. Check for malformed rows.",
        )
    except Exception as e:
        logger.exception("Unexpected error while analyzing the table")
        return _failure(
            step, f"Analysis failed: {e}", "ANALYSIS_FAILED",
            "An unexpected error occurred. Please try again or use a different file.",
        )

    basic = report["basic"]
    _report_progress(state, step, 0.80, "Analysis complete", "complete")

    return dict(
        report=report,
        current_node=step,
        progress=0.80,
        progress_message=(
            f"Analyzed {len(basic['numericColumns'])} numeric and "
            f"{len(basic['categoricalColumns'])} categorical columns"
        ),
    )


# =============================================================================
# STEP: SUMMARIZE
# =============================================================================

def _strongest_correlation_highlight(correlations: dict) -> dict | None:
    """Highlight the pair with the largest finite |r|."""
    finite = {
        pair: r for pair, r in correlations.items()
        if r is not None and math.isfinite(r)
    }
    if not finite:
        return None

    pair, r = max(finite.items(), key=lambda item: abs(item[1]))
    direction = "positive" if r > 0 else "negative"

    return {
        "title": "Strongest Correlation",
        "body": f"{pair} shows a {direction} correlation (r = {r:.2f}).",
        "severity": "info",
        "category": "correlation",
        "supporting_data": {"pair": pair, "correlation": r},
    }


def _trend_highlights(time_series: dict, time_column: str) -> list[dict]:
    highlights = []
    for column, series in time_series.items():
        if series is None or not (series["isIncreasing"] or series["isDecreasing"]):
            continue

        direction = "increased" if series["isIncreasing"] else "decreased"
        first, last = series["data"][0], series["data"][-1]
        highlights.append({
            "title": f"{column} Trend",
            "body": (
                f"{column} {direction} by {abs(series['trend']):,.2f} "
                f"from {time_column} {first['time']} to {last['time']}."
            ),
            "severity": "info",
            "category": "trend",
            "supporting_data": {"trend": series["trend"], "mean": series["mean"]},
        })
    return highlights


def _distribution_highlights(distributions: dict) -> list[dict]:
    highlights = []
    for column, dist in distributions.items():
        if not dist["distribution"]:
            continue

        top = dist["distribution"][0]
        highlights.append({
            "title": f"Most Common {column}",
            "body": (
                f"'{top['value']}' is the most common {column} value "
                f"({top['percentage']:.1f}% of {dist['total']:,} entries, "
                f"{dist['uniqueValues']} distinct)."
            ),
            "severity": "info",
            "category": "distribution",
            "supporting_data": top,
        })
    return highlights


def _quality_warnings(report: dict) -> list[str]:
    warnings = []

    for column, info in report["basic"]["columnTypes"].items():
        if info["type"] == "numeric" and info["stats"] is None:
            warnings.append(f"Column '{column}' has no valid numeric values")

    null_columns = [
        column for column, pattern in report["patterns"].items()
        if pattern["hasNulls"]
    ]
    if null_columns:
        warnings.append(
            f"Missing values in: {', '.join(null_columns[:5])}"
            + (f" and {len(null_columns)-5} more" if len(null_columns) > 5 else "")
        )

    # Constant columns
    for column, pattern in report["patterns"].items():
        if pattern["hasDuplicates"] and pattern["uniqueCount"] == 1:
            warnings.append(f"Column '{column}' has the same value in every row")

    return warnings


def _generate_summary(report: dict, highlights: list) -> str:
    """Generate one-paragraph summary."""
    basic = report["basic"]
    summary = (
        f"Analyzed **{basic['totalRows']:,} rows** across **{basic['totalColumns']} columns** "
        f"({len(basic['numericColumns'])} numeric, {len(basic['categoricalColumns'])} categorical). "
        f"Computed {len(report['correlations'])} correlations"
    )
    if report["timeSeries"]:
        summary += f" and {len(report['timeSeries'])} time series"
    summary += "."

    if highlights:
        summary += f" {highlights[0]['body']}"

    return summary


def summarize_report_node(state: dict) -> dict:
    """
    Turn the raw report into highlights, warnings, a summary and ui_payload.

    ui_payload is passed through sanitize_report_for_json, so NaN and ±inf
    in the report come out as null.
    """
    step = "summarize_report"
    _report_progress(state, step, 0.85, "Summarizing results...")

    report = state.get("report")
    if report is None:
        return _failure(
            step, "No report available to summarize", "DATA_MISSING",
            "Please re-run the analysis from the beginning.",
        )

    time_column = state.get("time_column", DEFAULT_TIME_COLUMN)

    correlation = _strongest_correlation_highlight(report["correlations"])
    highlights = [correlation] if correlation else []
    highlights += _trend_highlights(report["timeSeries"], time_column)
    highlights += _distribution_highlights(report["distributions"])

    warnings = [*state.get("warnings", []), *_quality_warnings(report)]
    summary = _generate_summary(report, highlights)

    ui_payload = sanitize_report_for_json(dict(
        is_error=False,
        filename=state.get("filename"),
        row_count=state.get("row_count", 0),
        col_count=state.get("col_count", 0),
        time_column=time_column,
        report=report,
        highlights=highlights,
        summary=summary,
        warnings=warnings,
    ))

    _report_progress(state, step, 1.0, "Done", "complete")

    return dict(
        highlights=highlights,
        summary=summary,
        warnings=warnings,
        ui_payload=ui_payload,
        current_node=step,
        progress=1.0,
        progress_message=f"Generated {len(highlights)} highlights",
    )


# =============================================================================
# STEP: HANDLE ERROR
# =============================================================================

def handle_error_node(state: dict) -> dict:
    """Terminal step for failed runs: builds the error ui_payload."""
    step = "handle_error"
    _report_progress(state, step, 1.0, "Handling error...", "failed")

    error_type = state.get("error_type") or "UNKNOWN"

    ui_payload = sanitize_report_for_json(dict(
        is_error=True,
        error_message=state.get("error") or "An unknown error occurred",
        error_type=error_type,
        failed_node=state.get("failed_node") or "unknown",
        recovery_hint=state.get("recovery_hint") or "Please try again.",
        warnings=state.get("warnings", []),
    ))

    return dict(
        ui_payload=ui_payload,
        current_node=step,
        progress=1.0,
        progress_message=f"Error: {error_type}",
    )
