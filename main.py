"""Thrive v1.0 — CLI entry point."""

import argparse
import logging
from datetime import datetime

from thrive import analyze, generate_report

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Analyze a file of wellness check-ins.")
    parser.add_argument("path", nargs="?", default="test_data.json")
    parser.add_argument("--now", type=datetime.fromisoformat, default=None,
                        help="analysis time as ISO-8601 (default: current time)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = analyze(args.path, now=args.now)
    print(generate_report(result))
