from __future__ import annotations

import json
from pathlib import Path

import pytest

from geo_analytics_agent.models import Brand, Citations, Report, SearchTerm, Sentiment
from geo_analytics_agent.normalization import (
    build_sentiment_from_score,
    normalize_brands,
    normalize_citations,
    normalize_competitors,
    normalize_report,
    normalize_search_terms,
    normalize_sentiment,
    parse_brands,
)


FIXTURE_PATH = Path(__file__).parent / "fixtures" / "malformed_payload_cases.json"


def _malformed_cases() -> list[tuple[str, object]]:
    cases = json.loads(FIXTURE_PATH.read_text(encoding="utf-8"))
    return [(case["name"], case["payload"]) for case in cases]


@pytest.mark.parametrize("name,payload", _malformed_cases())
def test_normalizers_never_raise_on_malformed_payloads(name: str, payload: object) -> None:
    sentiment = normalize_sentiment(payload)
    citations = normalize_citations(payload)
    report = normalize_report(payload)
    terms = normalize_search_terms(payload)
    competitors = normalize_competitors(payload, 50)
    brands = parse_brands(payload)

    assert isinstance(sentiment, Sentiment), name
    assert isinstance(citations, Citations), name
    assert isinstance(citations.count, int), name
    assert isinstance(citations.rate, float), name
    assert isinstance(report, Report), name
    assert isinstance(report.engines, dict), name
    assert report.rank is None or report.rank >= 1, name
    assert all(isinstance(term, SearchTerm) for term in terms), name
    assert all(competitor.delta is None or isinstance(competitor.delta, int) for competitor in competitors), name
    assert all(isinstance(brand, Brand) for brand in brands), name


def test_sentiment_defaults_to_zero_for_null() -> None:
    assert normalize_sentiment(None) == Sentiment(positive=0, negative=0, neutral=0)


def test_sentiment_scores_guard_zero_total() -> None:
    result = normalize_sentiment({"scores": {"pos": 0, "neg": 0, "neu": 0}})
    assert result == Sentiment(positive=0, negative=0, neutral=0)


def test_sentiment_scores_use_share_of_total() -> None:
    result = normalize_sentiment({"scores": {"positive": 3, "negative": 1, "neutral": 4}})
    assert result == Sentiment(positive=37.5, negative=12.5, neutral=50.0)


def test_sentiment_fraction_and_percentage_branches_agree() -> None:
    fractions = normalize_sentiment({"positive": 0.61, "negative": 0.10, "neutral": 0.29})
    percentages = normalize_sentiment({"positive": 61, "negative": 10, "neutral": 29})

    assert fractions == Sentiment(positive=61, negative=10, neutral=29)
    assert percentages == fractions


def test_sentiment_boundary_heuristic_reads_all_ones_as_fractions() -> None:
    # Known limitation: three values of exactly 1.0 are read as 100% each.
    result = normalize_sentiment({"positive": 1, "negative": 1, "neutral": 1})
    assert result == Sentiment(positive=100, negative=100, neutral=100)


def test_citations_alias_merge() -> None:
    result = normalize_citations(
        {"total": 14, "citationRate": "33.5", "topSources": ["a.com", "b.com"], "benchmarkRate": 41}
    )
    assert result == Citations(count=14, rate=33.5, sources=("a.com", "b.com"), industry_avg=41)


def test_citations_defaults() -> None:
    assert normalize_citations(None) == Citations(count=0, rate=0.0, sources=(), industry_avg=None)
    assert normalize_citations({"count": 5}).industry_avg is None


def test_build_sentiment_from_score_decomposition() -> None:
    assert build_sentiment_from_score(70) == Sentiment(positive=70, negative=9, neutral=21)
    assert build_sentiment_from_score("140") == Sentiment(positive=100, negative=0, neutral=0)
    assert build_sentiment_from_score(None) == Sentiment(positive=0, negative=30, neutral=70)


def test_report_defaults_for_null() -> None:
    report = normalize_report(None)

    assert report.score == 0
    assert report.rank is None
    assert report.change == 0
    assert report.brand_name == "Your Brand"
    assert report.detection_rate is None
    assert report.engines == {}
    assert report.competitors == ()
    assert report.sentiment_fallback is None
    assert report.citations_fallback == {"count": 0, "rate": 0}


def test_report_nested_shape() -> None:
    raw = {
        "data": {
            "ownBrandMetrics": {
                "brandName": "Acme",
                "visibilityScore": 35,
                "detectionRate": 60,
                "citations": 12,
                "sentiment": 70,
                "trends": {"visibilityScore": -8},
                "engineMetricsData": {
                    "daily": [
                        {"engineName": "chatgpt", "visibilityScore": [40, 44, 52]},
                        {"engineId": "gemini", "visibilityScore": [18]},
                        {"engineName": "claude", "visibilityScore": []},
                    ]
                },
            },
            "competitorMetrics": [{"name": "Rival", "latestValue": 70}],
        }
    }

    report = normalize_report(raw)

    assert report.brand_name == "Acme"
    assert report.score == 35
    assert report.change == -8
    assert report.detection_rate == 60
    assert report.engines == {"chatgpt": 52, "gemini": 18}
    assert report.competitors == ({"name": "Rival", "latestValue": 70},)
    assert report.citations_fallback == {"count": 12, "rate": 60}
    assert report.sentiment_fallback == {"positive": 70, "negative": 9, "neutral": 21}


def test_report_legacy_flat_shape() -> None:
    report = normalize_report(
        {"score": "58", "rank": 3, "weeklyDelta": 4.26, "brand": "Legacy Co", "competitors": [{"name": "X"}]}
    )

    assert report.score == 58
    assert report.rank == 3
    assert report.change == 4.3
    assert report.brand_name == "Legacy Co"
    assert report.competitors == ({"name": "X"},)


def test_report_zero_detection_rate_is_kept() -> None:
    report = normalize_report({"data": {"ownBrandMetrics": {"visibilityScore": 10, "detectionRate": 0}}})
    assert report.detection_rate == 0


def test_search_terms_deduplicate_by_summing_mentions() -> None:
    terms = normalize_search_terms({"searchTerms": [{"query": "x", "mentions": 3}, {"query": "x", "mentions": 4}]})
    assert terms == [SearchTerm(query="x", mentions=7)]


def test_search_terms_mentions_fallback_and_ranking() -> None:
    raw = {
        "data": [
            {"term": "best crm", "aiSearchEngines": ["chatgpt", "gemini", "perplexity"]},
            {"keyword": "crm pricing", "count": 5, "visibility": 22},
            {"name": "crm reviews", "aiSearchEngines": "chatgpt"},
            {"query": ""},
            None,
        ]
    }

    terms = normalize_search_terms(raw)

    assert [(term.query, term.mentions) for term in terms] == [
        ("crm pricing", 5),
        ("best crm", 3),
        ("crm reviews", 0),
    ]
    assert terms[0].visibility == 22
    assert terms[1].visibility is None


def test_search_terms_capped_at_ten() -> None:
    raw = [{"query": f"q{index}", "mentions": index} for index in range(15)]
    terms = normalize_search_terms(raw)

    assert len(terms) == 10
    assert terms[0].query == "q14"


def test_competitor_delta_null_for_zero_score() -> None:
    competitors = normalize_competitors([{"name": "A", "score": 0}], 80)
    assert competitors[0].delta is None


def test_competitors_filter_sort_and_delta() -> None:
    raw = [
        {"name": "Own", "score": 99, "isOwnBrand": True},
        None,
        {"brandName": "Big", "visibilityScore": 64},
        {"competitor": "Small", "geoScore": "40"},
        {"name": "Mid", "latestValue": 50},
        {"name": "Tiny", "visibility": 10},
    ]

    competitors = normalize_competitors(raw, 80)

    assert [(item.name, item.score, item.delta) for item in competitors] == [
        ("Big", 64, 25),
        ("Mid", 50, 60),
        ("Small", 40, 100),
    ]


def test_competitor_delta_null_without_brand_score() -> None:
    competitors = normalize_competitors([{"name": "A", "score": 50}], None)
    assert competitors[0].delta is None


def test_brands_unwrap_variants() -> None:
    assert normalize_brands({"data": {"brands": [{"id": "b1"}]}}) == [{"id": "b1"}]
    assert normalize_brands([{"id": "b2"}]) == [{"id": "b2"}]
    assert normalize_brands({"data": {"other": 1}}) == []
    assert parse_brands({"brands": [{"brandId": "b3", "brandName": "Three"}, {"name": "no id"}]}) == [
        Brand(id="b3", name="Three")
    ]


def test_integers_beyond_float_range_fall_back_to_defaults() -> None:
    huge = json.loads("1" + "0" * 400)

    assert normalize_citations({"count": 3, "rate": huge}) == Citations(count=3, rate=0.0)
    assert normalize_report({"score": huge, "change": 2}).score == 0


def test_report_keeps_large_finite_change() -> None:
    assert normalize_report({"change": 1e30}).change == 1e30


def test_search_terms_keep_numeric_queries() -> None:
    terms = normalize_search_terms([{"query": 2024, "mentions": 4}, {"query": 7.5, "mentions": 1}, {"query": True}])

    assert [(term.query, term.mentions) for term in terms] == [("2024", 4), ("7.5", 1)]


def test_competitor_delta_null_when_lead_overflows() -> None:
    competitors = normalize_competitors([{"name": "Tiny", "score": 1e-320}], 1e308)
    assert competitors[0].delta is None
