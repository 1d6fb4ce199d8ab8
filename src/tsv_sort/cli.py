# Command-line interface: loads configuration, runs the local import job.
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tsv_sort.core.config import SortConfig, load_config
from tsv_sort.core.errors import TsvSortError
from tsv_sort.core.job import run_job


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging to write to stderr."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tsv-sort",
        description="Sort delimited text into per-family sorted cell segments",
    )
    p.add_argument("inputs", type=Path, nargs="+", help="Input delimited text files")
    p.add_argument("-o", "--output", type=Path, required=True, help="Output directory")
    p.add_argument("--config", type=Path, help="TOML configuration file")
    p.add_argument(
        "--columns",
        help="Column specification, e.g. HBASE_ROW_KEY,d:c1,d:c2",
    )
    p.add_argument("--separator", help="Field separator (default: tab)")
    p.add_argument("--separator-b64", help="Base64-encoded field separator")
    p.add_argument("--timestamp", type=int, help="Default cell timestamp")
    p.add_argument(
        "--skip-bad-lines",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Count and skip malformed lines (default: true)",
    )
    p.add_argument(
        "--threshold-bytes",
        type=int,
        help="Estimated batch size at which a row is cut (default: 1 GB)",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(getattr(logging, args.log_level))

    overrides = {
        "columns": args.columns,
        "separator": args.separator,
        "separator_b64": args.separator_b64,
        "timestamp": args.timestamp,
        "skip_bad_lines": args.skip_bad_lines,
        "threshold_bytes": args.threshold_bytes,
    }

    try:
        if args.config is not None:
            config = load_config(args.config, **overrides)
        else:
            config = SortConfig.from_dict({k: v for k, v in overrides.items() if v is not None})
        result = run_job(config, args.inputs, args.output)
    except TsvSortError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(
        f"Wrote {result.cells} cells for {result.groups} rows into "
        f"{len(result.segments)} segments under {args.output} "
        f"({result.bad_lines} bad lines)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
