# graph.py — Analysis pipeline wiring
# Linear LangGraph pipeline with a shared failure exit
"""
graph.py — Analysis Pipeline Graph

Steps run in PIPELINE_STEPS order. After every step the router either moves
on to the next step or diverts to handle_error:

    START → ingest_data → validate_data → analyze_data → summarize_report → END
                 └──────────────┴──────────────┴───────────────┴──→ handle_error → END

A step diverts by putting a message in state["error"].
"""

from __future__ import annotations

from typing import Callable, Iterator, Literal

from langgraph.graph import END, START, StateGraph

from analytics.config import DEFAULT_TIME_COLUMN
from analytics.logging_config import log_execution_time
from workflow.state import AnalysisState, create_initial_state
from workflow.nodes import (
    ingest_data_node,
    validate_data_node,
    analyze_data_node,
    summarize_report_node,
    handle_error_node,
)


PIPELINE_STEPS = [
    ("ingest_data", ingest_data_node),
    ("validate_data", validate_data_node),
    ("analyze_data", analyze_data_node),
    ("summarize_report", summarize_report_node),
]
ERROR_STEP = "handle_error"


# =============================================================================
# ROUTING
# =============================================================================

def route_after_node(state: AnalysisState) -> Literal["continue", "error"]:
    """Send the run to the failure exit once a step has recorded an error."""
    return "error" if state.get("error") else "continue"


# =============================================================================
# CONSTRUCTION
# =============================================================================

def build_analysis_graph() -> StateGraph:
    """
    Wire the pipeline steps and the failure exit into a StateGraph.

    Returns:
        Uncompiled StateGraph over AnalysisState
    """
    graph = StateGraph(AnalysisState)

    for name, node in PIPELINE_STEPS:
        graph.add_node(name, node)
    graph.add_node(ERROR_STEP, handle_error_node)

    step_names = [name for name, _ in PIPELINE_STEPS]
    graph.add_edge(START, step_names[0])

    for name, successor in zip(step_names, step_names[1:] + [END]):
        graph.add_conditional_edges(
            name,
            route_after_node,
            {"continue": successor, "error": ERROR_STEP},
        )

    graph.add_edge(ERROR_STEP, END)
    return graph


def compile_analysis_graph():
    """Compile a fresh pipeline (supports .invoke() and .stream())."""
    return build_analysis_graph().compile()


_compiled_graph = None


def get_compiled_graph():
    """Compile the pipeline on first use and reuse it afterwards."""
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = compile_analysis_graph()
    return _compiled_graph


# =============================================================================
# ENTRY POINTS
# =============================================================================

@log_execution_time
def run_analysis(
    raw_file: bytes,
    filename: str,
    time_column: str = DEFAULT_TIME_COLUMN,
    align_rows: bool = False,
    progress_callback: Callable[[dict], None] | None = None,
) -> dict:
    """
    Analyze one uploaded file from bytes to dashboard payload.

    Args:
        raw_file: File contents
        filename: Upload name; its extension selects the parser
        time_column: Header that triggers time-series analysis
        align_rows: Pair correlation values by row instead of by position
        progress_callback: Receives {node, status, progress, message} dicts

    Returns:
        Final AnalysisState. state["ui_payload"]["is_error"] tells success
        from failure; on success the payload carries the report, highlights,
        summary and warnings.

    Example:
        with open("sales.csv", "rb") as f:
            payload = run_analysis(f.read(), "sales.csv")["ui_payload"]
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        time_column=time_column,
        align_rows=align_rows,
        progress_callback=progress_callback,
    )
    return get_compiled_graph().invoke(initial_state)


def stream_analysis(
    raw_file: bytes,
    filename: str,
    time_column: str = DEFAULT_TIME_COLUMN,
    align_rows: bool = False,
    progress_callback: Callable[[dict], None] | None = None,
) -> Iterator[tuple[str, dict]]:
    """
    Run the pipeline step by step.

    Yields:
        (step_name, state) after each step, where state has every update
        applied so far
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        time_column=time_column,
        align_rows=align_rows,
        progress_callback=progress_callback,
    )
    state = dict(initial_state)

    for event in get_compiled_graph().stream(initial_state):
        for step_name, update in event.items():
            state.update(update or {})
            yield step_name, state
