"""Map raw Rankscale payloads onto the canonical models.

The provider emits several incompatible shapes per endpoint, so every field is
resolved through an explicit alias chain and coerced with the helpers in
`safe_access`. None of the normalizers raise: malformed input degrades to the
documented defaults.
"""

from __future__ import annotations

import math
from typing import Any

from geo_analytics_agent.constants import SENTIMENT_NEGATIVE_SHARE
from geo_analytics_agent.models import (
    Brand,
    Citations,
    Competitor,
    Report,
    SearchTerm,
    Sentiment,
)
from geo_analytics_agent.safe_access import (
    clamp,
    coalesce,
    is_falsy,
    pick,
    pick_present,
    round_half_up,
    safe_array,
    safe_fixed,
    safe_get,
    safe_num,
)


DEFAULT_BRAND_NAME = "Your Brand"
MAX_SEARCH_TERMS = 10
MAX_COMPETITORS = 3

ENVELOPE_KEYS = ("data",)

SENTIMENT_POSITIVE_ALIASES = ("pos", "positive")
SENTIMENT_NEGATIVE_ALIASES = ("neg", "negative")
SENTIMENT_NEUTRAL_ALIASES = ("neu", "neutral")
SENTIMENT_FLAT_POSITIVE_ALIASES = ("positive", "pos")
SENTIMENT_FLAT_NEGATIVE_ALIASES = ("negative", "neg")
SENTIMENT_FLAT_NEUTRAL_ALIASES = ("neutral", "neu")

CITATION_COUNT_ALIASES = ("count", "total", "citationCount")
CITATION_RATE_ALIASES = ("rate", "citationRate", "percentage")
CITATION_SOURCES_ALIASES = ("sources", "topSources")
CITATION_INDUSTRY_AVG_ALIASES = ("industryAvg", "benchmarkRate")

REPORT_OWN_METRICS_KEYS = ("ownBrandMetrics",)
REPORT_COMPETITORS_KEYS = ("competitorMetrics",)
REPORT_LEGACY_COMPETITORS_KEYS = ("competitors",)
REPORT_TREND_KEYS = ("trends.visibilityScore",)
REPORT_LEGACY_CHANGE_KEYS = ("change", "weeklyDelta", "delta")
REPORT_OWN_SCORE_KEYS = ("visibilityScore", "score")
REPORT_LEGACY_SCORE_KEYS = ("score", "geoScore")
REPORT_BRAND_NAME_KEYS = ("brandName",)
REPORT_LEGACY_BRAND_NAME_KEYS = ("brandName", "brand")
REPORT_ENGINE_SERIES_KEYS = ("daily", "weekly")
REPORT_ENGINE_LABEL_KEYS = ("engineName", "engineId")

SEARCH_TERMS_LIST_KEYS = ("searchTerms", "terms", "results")
SEARCH_TERM_QUERY_ALIASES = ("query", "term", "keyword", "name")
SEARCH_TERM_MENTIONS_ALIASES = ("mentions", "count", "frequency")
SEARCH_TERM_VISIBILITY_ALIASES = ("visibility", "visibilityScore", "detectionRate", "score")

COMPETITOR_NAME_ALIASES = ("name", "brandName", "competitor")
COMPETITOR_SCORE_ALIASES = ("latestValue", "visibilityScore", "score", "geoScore", "visibility")

BRAND_ID_ALIASES = ("id", "brandId")
BRAND_NAME_ALIASES = ("name", "brandName")


def _unwrap(raw: Any) -> Any:
    return pick_present(raw, ENVELOPE_KEYS, default=raw)


def normalize_sentiment(raw: Any) -> Sentiment:
    """Handle the three sentiment shapes the provider returns.

    - nested scores: ``{"scores": {"pos": 61, "neg": 10, "neu": 29}}``
    - fractions: ``{"positive": 0.61, "negative": 0.10, "neutral": 0.29}``
    - percentages: ``{"positive": 61, "negative": 10, "neutral": 29}``

    Fractions are recognised only when all three values are <= 1 and their
    sum is <= 3. The heuristic is ambiguous at the exact boundary (three
    values of 1.0 read as 100% each) and is kept as-is.
    """
    if is_falsy(raw):
        return Sentiment()

    scores = safe_get(raw, "scores")
    if not is_falsy(scores):
        pos = safe_num(pick(scores, SENTIMENT_POSITIVE_ALIASES))
        neg = safe_num(pick(scores, SENTIMENT_NEGATIVE_ALIASES))
        neu = safe_num(pick(scores, SENTIMENT_NEUTRAL_ALIASES))
        total = (pos + neg + neu) or 100
        return Sentiment(
            positive=safe_fixed(pos / total * 100),
            negative=safe_fixed(neg / total * 100),
            neutral=safe_fixed(neu / total * 100),
        )

    pos = safe_num(pick(raw, SENTIMENT_FLAT_POSITIVE_ALIASES))
    neg = safe_num(pick(raw, SENTIMENT_FLAT_NEGATIVE_ALIASES))
    neu = safe_num(pick(raw, SENTIMENT_FLAT_NEUTRAL_ALIASES))

    if pos <= 1 and neg <= 1 and neu <= 1 and (pos + neg + neu) <= 3:
        return Sentiment(
            positive=safe_fixed(pos * 100),
            negative=safe_fixed(neg * 100),
            neutral=safe_fixed(neu * 100),
        )

    return Sentiment(
        positive=safe_fixed(pos),
        negative=safe_fixed(neg),
        neutral=safe_fixed(neu),
    )


def normalize_citations(raw: Any) -> Citations:
    if is_falsy(raw):
        return Citations()
    count = safe_num(pick(raw, CITATION_COUNT_ALIASES, default=0))
    return Citations(
        count=max(0, int(count)),
        rate=float(safe_num(pick(raw, CITATION_RATE_ALIASES, default=0))),
        sources=tuple(safe_array(pick_present(raw, CITATION_SOURCES_ALIASES))),
        industry_avg=safe_num(pick(raw, CITATION_INDUSTRY_AVG_ALIASES), None),
    )


def build_sentiment_from_score(score: Any) -> Sentiment:
    """Split a single 0-100 composite sentiment score into three shares.

    This is a heuristic decomposition, not a measured breakdown: the score is
    taken as the positive share and 30% of the remainder is called negative.
    """
    positive = clamp(safe_fixed(safe_num(score)), 0, 100)
    negative = max(0, safe_fixed((100 - positive) * SENTIMENT_NEGATIVE_SHARE))
    neutral = safe_fixed(100 - positive - negative)
    return Sentiment(positive=positive, negative=negative, neutral=neutral)


def empty_report() -> Report:
    return Report()


def _parse_rank(value: Any) -> int | None:
    rank = safe_num(value, None)
    if rank is None or rank < 1:
        return None
    return int(rank)


def _latest_engine_scores(own: Any) -> dict[str, float]:
    engine_metrics = pick_present(own, ("engineMetricsData",), default={})
    series = safe_array(pick_present(engine_metrics, REPORT_ENGINE_SERIES_KEYS))
    engines: dict[str, float] = {}
    for entry in series:
        values = safe_array(safe_get(entry, "visibilityScore"))
        if not values:
            continue
        label = str(pick_present(entry, REPORT_ENGINE_LABEL_KEYS, default="unknown"))
        # The last sample is the most recent one.
        engines[label] = safe_num(values[-1])
    return engines


def normalize_report(raw: Any) -> Report:
    """Normalize ``metricsV1Report`` output.

    Current shape::

        {"data": {"ownBrandMetrics": {"visibilityScore", "detectionRate",
                   "sentiment", "citations", "trends": {"visibilityScore"},
                   "engineMetricsData": {"daily": [{"engineName",
                   "visibilityScore": [...]}]}},
                  "competitorMetrics": [...]}}

    Legacy flat payloads (``{"score", "rank", "change"}``) are accepted too.
    """
    if is_falsy(raw):
        return empty_report()

    data = _unwrap(raw)
    own = pick_present(data, REPORT_OWN_METRICS_KEYS, default=data)
    competitors_raw = safe_array(
        pick_present(
            data,
            REPORT_COMPETITORS_KEYS,
            default=pick_present(raw, REPORT_LEGACY_COMPETITORS_KEYS),
        )
    )

    change = safe_num(
        coalesce(
            pick(own, REPORT_TREND_KEYS),
            pick(raw, REPORT_LEGACY_CHANGE_KEYS),
        ),
        0,
    )
    detection_rate = safe_num(
        coalesce(safe_get(own, "detectionRate"), safe_get(raw, "detectionRate")),
        None,
    )
    sentiment_score = safe_num(
        coalesce(safe_get(own, "sentiment"), safe_get(raw, "sentiment")),
        None,
    )
    sentiment_fallback = None
    if sentiment_score is not None:
        sentiment_fallback = build_sentiment_from_score(sentiment_score).as_payload()

    return Report(
        score=safe_num(
            coalesce(
                pick(own, REPORT_OWN_SCORE_KEYS),
                pick(raw, REPORT_LEGACY_SCORE_KEYS),
            ),
            0,
        ),
        rank=_parse_rank(coalesce(safe_get(own, "rank"), safe_get(raw, "rank"))),
        change=safe_fixed(change),
        brand_name=str(
            coalesce(
                pick(own, REPORT_BRAND_NAME_KEYS),
                pick(raw, REPORT_LEGACY_BRAND_NAME_KEYS),
                default=DEFAULT_BRAND_NAME,
            )
        ),
        detection_rate=safe_fixed(detection_rate) if detection_rate is not None else None,
        engines=_latest_engine_scores(own),
        competitors=tuple(competitors_raw),
        citations_fallback={
            "count": safe_num(safe_get(own, "citations"), 0),
            # Detection rate doubles as the citation-rate proxy.
            "rate": safe_num(
                coalesce(safe_get(own, "detectionRate"), safe_get(own, "citations")),
                0,
            ),
        },
        sentiment_fallback=sentiment_fallback,
    )


def _query_text(query: Any) -> str:
    # Numeric queries (e.g. a bare year) are kept as text.
    if isinstance(query, str):
        return query
    if isinstance(query, bool) or not isinstance(query, (int, float)):
        return ""
    if isinstance(query, float) and query.is_integer():
        return str(int(query))
    return str(query)


def normalize_search_terms(raw: Any) -> list[SearchTerm]:
    """Deduplicate search terms by query, summing mentions; top 10 by mentions."""
    if is_falsy(raw):
        return []

    data = _unwrap(raw)
    terms = pick_present(data, SEARCH_TERMS_LIST_KEYS)
    if terms is None and isinstance(data, list):
        terms = data

    mentions_by_query: dict[str, float] = {}
    visibility_by_query: dict[str, float] = {}
    for term in safe_array(terms):
        if is_falsy(term):
            continue
        query = _query_text(pick_present(term, SEARCH_TERM_QUERY_ALIASES, default=""))
        if not query:
            continue

        mentions = pick(term, SEARCH_TERM_MENTIONS_ALIASES)
        if mentions is None:
            engines = safe_get(term, "aiSearchEngines")
            mentions = len(engines) if isinstance(engines, list) else 0
        mentions_by_query[query] = mentions_by_query.get(query, 0) + max(0, safe_num(mentions))

        visibility = safe_num(pick(term, SEARCH_TERM_VISIBILITY_ALIASES), None)
        if visibility is not None and query not in visibility_by_query:
            visibility_by_query[query] = visibility

    ranked = sorted(mentions_by_query.items(), key=lambda item: item[1], reverse=True)
    return [
        SearchTerm(query=query, mentions=mentions, visibility=visibility_by_query.get(query))
        for query, mentions in ranked[:MAX_SEARCH_TERMS]
    ]


def normalize_competitors(competitors_raw: Any, brand_score: Any) -> list[Competitor]:
    """Top 3 competitors by score with the brand's lead (+) or lag (-) in percent.

    ``delta = round((brand - competitor) / competitor * 100)``, or None when
    either score is zero or missing.
    """
    if not isinstance(competitors_raw, (list, tuple)) or not competitors_raw:
        return []

    brand = safe_num(brand_score, None)
    competitors: list[Competitor] = []
    for entry in competitors_raw:
        if is_falsy(entry) or not is_falsy(safe_get(entry, "isOwnBrand")):
            continue
        name = str(pick_present(entry, COMPETITOR_NAME_ALIASES, default="Unknown"))
        score = max(0, safe_num(pick(entry, COMPETITOR_SCORE_ALIASES)))
        delta = None
        if score > 0 and brand is not None and brand > 0:
            lead_pct = (brand - score) / score * 100
            if math.isfinite(lead_pct):
                delta = round_half_up(lead_pct)
        competitors.append(Competitor(name=name, score=score, delta=delta))

    competitors.sort(key=lambda competitor: competitor.score, reverse=True)
    return competitors[:MAX_COMPETITORS]


def normalize_brands(raw: Any) -> list[Any]:
    if is_falsy(raw):
        return []
    data = _unwrap(raw)
    brands = pick_present(data, ("brands",))
    if brands is not None:
        return safe_array(brands)
    if isinstance(data, list):
        return data
    return []


def parse_brands(raw: Any) -> list[Brand]:
    brands: list[Brand] = []
    for entry in normalize_brands(raw):
        brand_id = pick_present(entry, BRAND_ID_ALIASES)
        if brand_id is None:
            continue
        brands.append(
            Brand(
                id=str(brand_id),
                name=str(pick_present(entry, BRAND_NAME_ALIASES, default="")),
            )
        )
    return brands
