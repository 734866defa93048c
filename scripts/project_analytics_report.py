#!/usr/bin/env python3
"""
Print the analytics of one ERP project as JSON.

Reads the ERP connection from the same environment/.env settings as the API
server and exits non-zero when the resource list cannot be fetched.
"""
from __future__ import annotations

import argparse
import logging
import sys

from timesheet_analytics.services.analytics import get_project_analytics
from timesheet_analytics.services.collector import ResourceEnumerationError


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("project_code", help="ERP project (job) number, e.g. PR00010")
    parser.add_argument("--verbose", action="store_true", help="log skipped fetches")
    parser.add_argument("--compact", action="store_true", help="single-line JSON output")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        analytics = get_project_analytics(args.project_code)
    except ResourceEnumerationError as exc:
        print(f"Could not load analytics for {args.project_code}: {exc}", file=sys.stderr)
        return 1

    print(analytics.model_dump_json(by_alias=True, indent=None if args.compact else 2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
