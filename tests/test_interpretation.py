from __future__ import annotations

from geo_analytics_agent.interpretation import GEO_RULES, GeoRule, interpret_geo_data
from geo_analytics_agent.models import Citations, GeoDataset, Report, Sentiment
from geo_analytics_agent.workflow import build_geo_dataset


def _healthy_dataset(**overrides: object) -> GeoDataset:
    values = {
        "report": Report(score=80, change=1, detection_rate=90),
        "citations": Citations(count=30, rate=55),
        "sentiment": Sentiment(positive=50, negative=10, neutral=40),
    }
    values.update(overrides)
    return GeoDataset(**values)


def test_rule_table_has_ten_unique_rules() -> None:
    ids = [rule.id for rule in GEO_RULES]

    assert ids == [f"R{index}" for index in range(1, 11)]
    assert {rule.severity for rule in GEO_RULES} == {"CRIT", "WARN", "INFO"}


def test_healthy_dataset_triggers_nothing() -> None:
    assert interpret_geo_data(_healthy_dataset()) == []


def test_critical_citation_rate_suppresses_warning() -> None:
    insights = interpret_geo_data(_healthy_dataset(citations=Citations(rate=15)))

    assert [insight.id for insight in insights] == ["R2"]
    assert insights[0].severity == "CRIT"


def test_low_citation_rate_alone_is_a_warning() -> None:
    insights = interpret_geo_data(_healthy_dataset(citations=Citations(rate=30)))
    assert [insight.id for insight in insights] == ["R1"]


def test_output_is_capped_and_ordered_by_severity() -> None:
    dataset = GeoDataset(
        report=Report(
            score=50,
            change=-10,
            detection_rate=40,
            engines={"chatgpt": 90, "gemini": 10},
            competitors=({"name": "Rival", "score": 90},),
        ),
        citations=Citations(rate=10),
        sentiment=Sentiment(positive=30, negative=40, neutral=30),
    )

    insights = interpret_geo_data(dataset)

    # Triggered: R2, R3 (CRIT); R5, R6, R8, R9, R10 (WARN); R1 suppressed.
    assert len(insights) == 5
    assert [insight.id for insight in insights] == ["R2", "R3", "R5", "R6", "R8"]


def test_cap_drops_info_after_crit_and_warn() -> None:
    dataset = GeoDataset(
        report=Report(
            score=30,
            change=5,
            detection_rate=40,
            engines={"chatgpt": 90, "gemini": 10},
            competitors=({"name": "Rival", "score": 90},),
        ),
        citations=Citations(rate=10),
        sentiment=Sentiment(positive=60, negative=10, neutral=30),
    )

    triggered = [insight.id for insight in interpret_geo_data(dataset)]

    # Triggered: R2, R4 (CRIT); R8, R9, R10 (WARN); R7 (INFO); R1 suppressed.
    assert triggered == ["R2", "R4", "R8", "R9", "R10"]


def test_info_sorts_after_crit_when_under_cap() -> None:
    dataset = _healthy_dataset(
        report=Report(score=30, change=5, detection_rate=90),
        sentiment=Sentiment(positive=60, negative=10, neutral=30),
    )

    insights = interpret_geo_data(dataset)

    assert [(insight.id, insight.severity) for insight in insights] == [("R4", "CRIT"), ("R7", "INFO")]


def test_positive_momentum_is_info() -> None:
    dataset = _healthy_dataset(
        report=Report(score=80, change=4, detection_rate=90),
        sentiment=Sentiment(positive=60, negative=5, neutral=35),
    )

    insights = interpret_geo_data(dataset)

    assert [(insight.id, insight.severity) for insight in insights] == [("R7", "INFO")]


def test_unknown_detection_rate_skips_detection_rule() -> None:
    dataset = _healthy_dataset(report=Report(score=80, detection_rate=None))
    assert "R8" not in [insight.id for insight in interpret_geo_data(dataset)]


def test_competitor_benchmark_reads_raw_score_aliases() -> None:
    dataset = _healthy_dataset(
        report=Report(score=60, detection_rate=90, competitors=({"name": "A", "geoScore": "80"}, None))
    )

    ids = [insight.id for insight in interpret_geo_data(dataset)]

    assert "R9" in ids


def test_engine_spread_needs_two_engines() -> None:
    single = _healthy_dataset(report=Report(score=80, detection_rate=90, engines={"chatgpt": 95}))
    spread = _healthy_dataset(report=Report(score=80, detection_rate=90, engines={"chatgpt": 95, "grok": 20}))

    assert interpret_geo_data(single) == []
    assert [insight.id for insight in interpret_geo_data(spread)] == ["R10"]


def test_raising_predicate_counts_as_not_triggered() -> None:
    def _boom(_: GeoDataset) -> bool:
        raise ValueError("broken rule")

    rules = (
        GeoRule(id="X1", name="Broken", severity="CRIT", check=_boom, recommendation="never"),
        GeoRule(id="X2", name="Always", severity="CUSTOM", check=lambda _: True, recommendation="custom"),
        GeoRule(id="X3", name="Warn", severity="WARN", check=lambda _: True, recommendation="warn"),
    )

    insights = interpret_geo_data(_healthy_dataset(), rules=rules)

    assert [insight.id for insight in insights] == ["X3", "X2"]


def test_end_to_end_low_score_and_decline() -> None:
    dataset = build_geo_dataset(
        {
            "data": {
                "ownBrandMetrics": {
                    "visibilityScore": 35,
                    "detectionRate": 60,
                    "citations": 12,
                    "trends": {"visibilityScore": -8},
                }
            }
        },
        {},
        {},
        {},
    )

    assert dataset.report.score == 35
    assert dataset.report.change == -8
    assert dataset.report.detection_rate == 60

    insights = interpret_geo_data(dataset)
    ids = [insight.id for insight in insights]

    assert "R4" in ids
    assert "R6" in ids
    assert ids.index("R4") < ids.index("R6")
    assert insights[0].severity == "CRIT"
