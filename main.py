import argparse
import json
import sys
from pathlib import Path

from analytics.config import get_config
from analytics.logging_config import setup_logging
from workflow.graph import run_analysis


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tabular data analyzer")
    parser.add_argument("--data-path", required=True, help="Path to a CSV, Excel or JSON file")
    parser.add_argument("--time-column", help="Column that drives time-series analysis (default: Year)")
    parser.add_argument("--align-rows", action="store_true",
                        help="Pair correlation values by row instead of by position")
    parser.add_argument("--output", help="Write the JSON payload to this file instead of stdout")
    parser.add_argument("--log-level", help="Logging level")
    return parser


def main(argv=None) -> int:
    """Main entry point for the analyzer CLI"""
    args = build_parser().parse_args(argv)
    config = get_config()

    setup_logging(log_level=args.log_level or config.log_level, log_file=config.log_file)

    data_path = Path(args.data_path)
    if not data_path.exists():
        print(f"Error: Data file not found at {data_path}", file=sys.stderr)
        return 1

    result = run_analysis(
        raw_file=data_path.read_bytes(),
        filename=data_path.name,
        time_column=args.time_column or config.time_column,
        align_rows=args.align_rows or config.align_correlation_rows,
    )

    payload = result.get("ui_payload") or {}
    output = json.dumps(payload, indent=2, allow_nan=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
    else:
        print(output)

    if payload.get("is_error"):
        print(f"Analysis failed: {payload.get('error_message')}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
