# perfgraphs/cli.py
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib

matplotlib.use('Agg')

from perfgraphs.config import load_settings  # noqa: E402
from perfgraphs.errors import PerfGraphsError  # noqa: E402
from perfgraphs.report import ReportBuilder  # noqa: E402

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] - %(message)s"


def setup_logging(log_file: Optional[Path] = None):
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render load-test report charts from pre-computed metric payloads into PNGs and a Markdown report.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument('--input', required=True, type=Path,
                        help="JSON file keyed by metric key, or a directory of '<metricKey>.json' files.")
    parser.add_argument('--output-dir', required=True, type=Path, help="Directory for plots/ and report.md.")
    parser.add_argument('--config', type=Path, help="Optional YAML settings file.")
    parser.add_argument('--filter', dest='filter_text', help="Only plot series whose label contains this text.")
    parser.add_argument('--charts', nargs='+', metavar='METRIC', help="Metric keys to render besides the default charts.")
    parser.add_argument('--tz-offset-ms', dest='time_zone_offset_ms', type=int,
                        help="Offset added to re-based timestamps (e.g. 36000000 for UTC+10).")
    parser.add_argument('--strict', action='store_true', help="Stop at the first chart that fails to render.")
    parser.add_argument('--log-file', type=Path, help="Also write the log to this file.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file)

    try:
        settings = load_settings(
            args.config,
            filter_text=args.filter_text,
            charts=args.charts,
            time_zone_offset_ms=args.time_zone_offset_ms,
            strict=True if args.strict else None,
        )
        builder = ReportBuilder(args.input, args.output_dir, settings)
        builder.run()
    except PerfGraphsError as e:
        logging.error(str(e))
        return 1

    if builder.failed:
        logging.warning(f"{len(builder.failed)} chart(s) failed to render: {', '.join(builder.failed)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
