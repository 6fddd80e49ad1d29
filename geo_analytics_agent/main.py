from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from geo_analytics_agent.analysis import (
    analyze_content_gaps,
    analyze_engine_strength,
    compute_reputation_score,
)
from geo_analytics_agent.clients.rankscale_client import (
    ErrorKind,
    RankscaleApiError,
    RankscaleClient,
)
from geo_analytics_agent.config import AgentConfig, resolve_credentials
from geo_analytics_agent.normalization import parse_brands
from geo_analytics_agent.reporting import (
    build_brands_listing,
    build_content_gap_block,
    build_engine_strength_block,
    build_onboarding_text,
    build_reputation_block,
    build_text_report,
    write_docx,
)
from geo_analytics_agent.workflow import GeoRunResult, discover_brand_id, run_geo_report


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rankscale GEO visibility report")
    parser.add_argument("--api-key", dest="api_key", help="Rankscale API key (default: RANKSCALE_API_KEY)")
    parser.add_argument("--brand-id", dest="brand_id", help="Brand ID (default: RANKSCALE_BRAND_ID)")
    parser.add_argument(
        "--brand-name",
        dest="brand_name",
        help="Brand name used to pick a brand during discovery.",
    )
    parser.add_argument(
        "--discover-brands",
        action="store_true",
        help="List all brands on the account and exit.",
    )
    parser.add_argument("--engine-profile", action="store_true", help="Engine strength profile.")
    parser.add_argument("--gap-analysis", action="store_true", help="Content gap analysis.")
    parser.add_argument("--reputation", action="store_true", help="Reputation score and summary.")
    parser.add_argument(
        "--output-docx",
        dest="output_docx",
        help="Also save the printed output as a DOCX file at this path.",
    )
    parser.add_argument(
        "--run-date",
        dest="run_date",
        help="Report date in YYYY-MM-DD format (default: today)",
    )
    return parser.parse_args(argv)


def _parse_run_date(raw: str | None) -> date:
    if not raw:
        return date.today()
    return date.fromisoformat(raw)


def _build_client(config: AgentConfig, api_key: str) -> RankscaleClient:
    return RankscaleClient(
        api_key=api_key,
        base_url=config.api_base_url,
        timeout_sec=config.timeout_sec,
        max_retries=config.max_retries,
        backoff_base_sec=config.backoff_base_sec,
    )


def _fatal_message(exc: RankscaleApiError, context: str, config: AgentConfig) -> str:
    if exc.kind == ErrorKind.AUTH:
        return (
            f"Auth error fetching {context}: {exc}\n"
            f"Verify your key at {config.app_url}/settings/api"
        )
    if exc.kind == ErrorKind.NOT_FOUND:
        return (
            f"Not found ({context}): {exc}\n"
            "Tip: run brand discovery to find valid brand IDs: geo-report --discover-brands"
        )
    return f"Error fetching {context}: {exc}"


def render_output(result: GeoRunResult, args: argparse.Namespace, run_date: date) -> str:
    """Full report by default; only the requested blocks when any block flag is set."""
    dataset = result.dataset
    blocks: list[str] = []
    if args.engine_profile:
        blocks.append(build_engine_strength_block(analyze_engine_strength(dataset.report.engines)))
    if args.gap_analysis:
        blocks.append(
            build_content_gap_block(analyze_content_gaps(dataset.report, dataset.search_terms))
        )
    if args.reputation:
        blocks.append(build_reputation_block(compute_reputation_score(result.sentiment_raw)))
    if blocks:
        return "\n".join(blocks)
    return build_text_report(
        dataset,
        result.insights,
        result.brand_id,
        result.competitors,
        run_date=run_date,
    )


def main(argv: list[str] | None = None) -> None:
    try:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    except Exception:
        pass

    args = _parse_args(argv)
    run_date = _parse_run_date(args.run_date)
    config = AgentConfig.from_env()
    credentials = resolve_credentials(config, api_key=args.api_key, brand_id=args.brand_id)

    if not credentials.api_key:
        print(build_onboarding_text(config.app_url))
        raise SystemExit(1)

    client = _build_client(config, credentials.api_key)

    if args.discover_brands:
        print("Fetching brands from Rankscale...", file=sys.stderr)
        try:
            brands = parse_brands(client.fetch_brands())
        except RankscaleApiError as exc:
            raise SystemExit(_fatal_message(exc, "brands", config)) from exc
        print(build_brands_listing(brands))
        return

    brand_id = credentials.brand_id
    if not brand_id:
        print("RANKSCALE_BRAND_ID not set. Discovering brands...", file=sys.stderr)
        try:
            brand_id = discover_brand_id(client, args.brand_name or config.brand_name)
        except RankscaleApiError as exc:
            raise SystemExit(_fatal_message(exc, "brands", config)) from exc

    try:
        result = run_geo_report(client, brand_id)
    except RankscaleApiError as exc:
        raise SystemExit(_fatal_message(exc, "report", config)) from exc

    output = render_output(result, args, run_date)
    print(output)

    if args.output_docx:
        output_path = Path(args.output_docx)
        if not output_path.is_absolute() and output_path.parent == Path("."):
            output_path = Path(config.output_dir) / output_path
        write_docx(output_path, f"Rankscale GEO Report {run_date.isoformat()}", output)
        print(f"Saved DOCX report: {output_path}", file=sys.stderr)


if __name__ == "__main__":
    main()
