from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from geo_analytics_agent.clients.rankscale_client import (
    ErrorKind,
    RankscaleApiError,
    RankscaleClient,
)
from geo_analytics_agent.interpretation import interpret_geo_data
from geo_analytics_agent.models import Competitor, GeoDataset, Insight
from geo_analytics_agent.normalization import (
    normalize_citations,
    normalize_competitors,
    normalize_report,
    normalize_search_terms,
    normalize_sentiment,
    parse_brands,
)
from geo_analytics_agent.safe_access import is_falsy


FETCH_WORKERS = 4


@dataclass(frozen=True)
class GeoPayloads:
    report: Any
    citations: Any = None
    sentiment: Any = None
    search_terms: Any = None
    degraded_sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class GeoRunResult:
    brand_id: str
    dataset: GeoDataset
    insights: list[Insight] = field(default_factory=list)
    competitors: list[Competitor] = field(default_factory=list)
    sentiment_raw: Any = None
    degraded_sources: tuple[str, ...] = ()


def _fetch_search_terms(client: RankscaleClient, brand_id: str) -> Any:
    try:
        return client.fetch_search_terms_report(brand_id)
    except RankscaleApiError as report_exc:
        print(
            f"Search terms report unavailable ({report_exc}); trying metricsV1SearchTerms.",
            file=sys.stderr,
        )
    return client.fetch_search_terms(brand_id)


def fetch_geo_payloads(client: RankscaleClient, brand_id: str) -> GeoPayloads:
    """Fetch report, citations, sentiment and search terms concurrently.

    Only the report is required; the other sources degrade to None.
    """
    executor = ThreadPoolExecutor(max_workers=FETCH_WORKERS)
    future_report = executor.submit(client.fetch_report, brand_id)
    optional_futures = {
        "citations": executor.submit(client.fetch_citations, brand_id),
        "sentiment": executor.submit(client.fetch_sentiment, brand_id),
        "search_terms": executor.submit(_fetch_search_terms, client, brand_id),
    }

    try:
        report = future_report.result()
    except BaseException as exc:
        if isinstance(exc, RankscaleApiError):
            print(f"Report fetch failed: {exc}", file=sys.stderr)
        # In-flight optional fetches finish in the background.
        executor.shutdown(wait=False, cancel_futures=True)
        raise

    results: dict[str, Any] = {}
    degraded: list[str] = []
    with executor:
        for name, future in optional_futures.items():
            try:
                results[name] = future.result()
            except RankscaleApiError as exc:
                label = name.replace("_", " ").capitalize()
                print(f"{label} source degraded: {exc}", file=sys.stderr)
                results[name] = None
                degraded.append(name)

    return GeoPayloads(
        report=report,
        citations=results["citations"],
        sentiment=results["sentiment"],
        search_terms=results["search_terms"],
        degraded_sources=tuple(degraded),
    )


def build_geo_dataset(
    report_raw: Any,
    citations_raw: Any = None,
    sentiment_raw: Any = None,
    search_terms_raw: Any = None,
) -> GeoDataset:
    """Normalize raw payloads; standalone citations/sentiment win over the
    values embedded in the report."""
    report = normalize_report(report_raw)
    citations = normalize_citations(
        report.citations_fallback if is_falsy(citations_raw) else citations_raw
    )
    sentiment = normalize_sentiment(
        report.sentiment_fallback if is_falsy(sentiment_raw) else sentiment_raw
    )
    return GeoDataset(
        report=report,
        citations=citations,
        sentiment=sentiment,
        search_terms=tuple(normalize_search_terms(search_terms_raw)),
    )


def discover_brand_id(client: RankscaleClient, brand_name: str | None = None) -> str:
    brands = parse_brands(client.fetch_brands())
    if not brands:
        raise RankscaleApiError(
            ErrorKind.NOT_FOUND,
            "No brands found on this account. Please set up a brand at https://app.rankscale.ai",
            endpoint="metricsV1Brands",
        )
    if len(brands) == 1:
        return brands[0].id

    wanted = (brand_name or "").strip().lower()
    if wanted:
        for brand in brands:
            if wanted in brand.name.lower():
                return brand.id

    chosen = brands[0]
    print(f"Multiple brands found. Using: {chosen.name} ({chosen.id})", file=sys.stderr)
    options = ", ".join(f"{brand.name} ({brand.id})" for brand in brands)
    print(f"Set RANKSCALE_BRAND_ID to specify: {options}", file=sys.stderr)
    return chosen.id


def analyze_payloads(brand_id: str, payloads: GeoPayloads) -> GeoRunResult:
    dataset = build_geo_dataset(
        payloads.report,
        payloads.citations,
        payloads.sentiment,
        payloads.search_terms,
    )
    return GeoRunResult(
        brand_id=brand_id,
        dataset=dataset,
        insights=interpret_geo_data(dataset),
        competitors=normalize_competitors(list(dataset.report.competitors), dataset.report.score),
        sentiment_raw=payloads.sentiment,
        degraded_sources=payloads.degraded_sources,
    )


def run_geo_report(client: RankscaleClient, brand_id: str) -> GeoRunResult:
    return analyze_payloads(brand_id, fetch_geo_payloads(client, brand_id))
