#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from datetime import date
from pathlib import Path
import sys

from geo_analytics_agent.reporting import build_text_report
from geo_analytics_agent.workflow import GeoPayloads, analyze_payloads


PAYLOAD_FILES = {
    "report": "report.json",
    "citations": "citations.json",
    "sentiment": "sentiment.json",
    "search_terms": "search_terms.json",
}


def _load_json(path: Path) -> object:
    if not path.exists():
        return None
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def main() -> int:
    parser = argparse.ArgumentParser(description="Render a GEO report from saved Rankscale API payloads.")
    parser.add_argument("--dir", required=True, help="Directory with report.json, citations.json, ...")
    parser.add_argument("--brand-id", default="offline", help="Brand ID shown in the footer link.")
    parser.add_argument("--run-date", help="Report date in YYYY-MM-DD format (default: today)")
    args = parser.parse_args()

    payload_dir = Path(args.dir)
    if not payload_dir.is_dir():
        print(f"Directory not found: {payload_dir}")
        return 1

    try:
        raw = {name: _load_json(payload_dir / filename) for name, filename in PAYLOAD_FILES.items()}
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON payload in {payload_dir}: {exc}")
        return 1
    if raw["report"] is None:
        print(f"Missing {PAYLOAD_FILES['report']} in {payload_dir}")
        return 1

    result = analyze_payloads(args.brand_id, GeoPayloads(**raw))
    run_date = date.fromisoformat(args.run_date) if args.run_date else date.today()
    print(
        build_text_report(
            result.dataset,
            result.insights,
            result.brand_id,
            result.competitors,
            run_date=run_date,
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
