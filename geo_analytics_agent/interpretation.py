from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from geo_analytics_agent.models import GeoDataset, Insight
from geo_analytics_agent.safe_access import pick, safe_num


SEVERITY_CRIT = "CRIT"
SEVERITY_WARN = "WARN"
SEVERITY_INFO = "INFO"
SEVERITY_ORDER = {SEVERITY_CRIT: 0, SEVERITY_WARN: 1, SEVERITY_INFO: 2}
UNKNOWN_SEVERITY_RANK = len(SEVERITY_ORDER)

MAX_INSIGHTS = 5

# Triggered rule id -> rule ids it suppresses (same dimension, lower severity).
SUPPRESSIONS: dict[str, tuple[str, ...]] = {"R2": ("R1",)}

COMPETITOR_BENCHMARK_SCORE_ALIASES = ("score", "visibilityScore", "geoScore")


@dataclass(frozen=True)
class GeoRule:
    id: str
    name: str
    severity: str
    check: Callable[[GeoDataset], bool]
    recommendation: str

    def to_insight(self) -> Insight:
        return Insight(
            id=self.id,
            name=self.name,
            severity=self.severity,
            recommendation=self.recommendation,
        )


def _top_competitor_gap_exceeds(data: GeoDataset, points: float) -> bool:
    competitors = data.report.competitors or ()
    if not competitors:
        return False
    top_score = max(
        safe_num(pick(competitor, COMPETITOR_BENCHMARK_SCORE_ALIASES, default=0))
        for competitor in competitors
    )
    return top_score - data.report.score > points


def _engine_spread_exceeds(data: GeoDataset, points: float) -> bool:
    scores = [
        value
        for value in (data.report.engines or {}).values()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    ]
    if len(scores) < 2:
        return False
    return max(scores) - min(scores) > points


GEO_RULES: tuple[GeoRule, ...] = (
    GeoRule(
        id="R1",
        name="Low Citation Rate",
        severity=SEVERITY_WARN,
        check=lambda data: data.citations.rate < 40,
        recommendation=(
            "Citation rate below 40% target.\n"
            "  Action: Publish 2+ authoritative comparison\n"
            "  articles and press releases this month.\n"
            "  Target sources: industry blogs, news sites."
        ),
    ),
    GeoRule(
        id="R2",
        name="Critical Citation Rate",
        severity=SEVERITY_CRIT,
        check=lambda data: data.citations.rate < 20,
        recommendation=(
            "Citation rate critically low (<20%).\n"
            "  Action: Immediate content blitz needed.\n"
            "  Submit brand to 5+ AI-indexed directories.\n"
            "  Build backlinks from authoritative sources."
        ),
    ),
    GeoRule(
        id="R3",
        name="Negative Sentiment Spike",
        severity=SEVERITY_CRIT,
        check=lambda data: data.sentiment.negative > 25,
        recommendation=(
            "Negative sentiment exceeds 25%.\n"
            "  Action: Audit top negative queries.\n"
            "  Create rebuttal/FAQ content addressing\n"
            "  negative narratives. Monitor weekly."
        ),
    ),
    GeoRule(
        id="R4",
        name="Low GEO Score",
        severity=SEVERITY_CRIT,
        check=lambda data: data.report.score < 40,
        recommendation=(
            "GEO score critically low (<40).\n"
            "  Action: Comprehensive GEO audit needed.\n"
            "  Add schema markup, improve content depth,\n"
            "  and increase citation velocity."
        ),
    ),
    GeoRule(
        id="R5",
        name="Medium GEO Score",
        severity=SEVERITY_WARN,
        check=lambda data: 40 <= data.report.score < 65,
        recommendation=(
            "GEO score in growth zone (40-64).\n"
            "  Action: Focus on 3 high-volume search terms.\n"
            "  Create dedicated landing pages optimized\n"
            "  for AI answer inclusion."
        ),
    ),
    GeoRule(
        id="R6",
        name="Negative Score Trend",
        severity=SEVERITY_WARN,
        check=lambda data: data.report.change < -5,
        recommendation=(
            "GEO score declining (>5 pts drop).\n"
            "  Action: Identify content gaps causing drop.\n"
            "  Review which competitors gained citations\n"
            "  and match their content strategy."
        ),
    ),
    GeoRule(
        id="R7",
        name="Positive Momentum",
        severity=SEVERITY_INFO,
        check=lambda data: data.report.change >= 3 and data.sentiment.positive > 55,
        recommendation=(
            "Strong positive momentum detected.\n"
            "  Action: Maintain current content cadence.\n"
            "  Double down on formats producing citations.\n"
            "  Consider expanding to adjacent topics."
        ),
    ),
    GeoRule(
        id="R8",
        name="Content Gap Investigation",
        severity=SEVERITY_WARN,
        check=lambda data: (
            data.report.detection_rate is not None and data.report.detection_rate < 70
        ),
        recommendation=(
            "Detection rate below 70% - brand not cited\n"
            "  in AI results for many queries.\n"
            "  Action: Research underrepresented topics;\n"
            "  create content targeting those gaps.\n"
            "  Timeline: 2-4 weeks to improve detection."
        ),
    ),
    GeoRule(
        id="R9",
        name="Competitive Benchmark",
        severity=SEVERITY_WARN,
        check=lambda data: _top_competitor_gap_exceeds(data, 15),
        recommendation=(
            "A top competitor is >15 pts ahead in\n"
            "  visibility. Root cause: better content,\n"
            "  more citations, or stronger authority.\n"
            "  Action: Analyze competitor content strategy;\n"
            "  identify differentiation opportunities.\n"
            "  Timeline: 4-8 weeks to close the gap."
        ),
    ),
    GeoRule(
        id="R10",
        name="Engine-Specific Optimization",
        severity=SEVERITY_WARN,
        check=lambda data: _engine_spread_exceeds(data, 30),
        recommendation=(
            "Engine visibility spread >30 pts detected.\n"
            "  Root cause: Engines (e.g., ChatGPT) favor\n"
            "  different content signals than others.\n"
            "  Action: Audit top engine's citations/\n"
            "  keywords; optimize for those signals.\n"
            "  Timeline: 3-6 weeks."
        ),
    ),
)


def _triggered(rule: GeoRule, data: GeoDataset) -> bool:
    try:
        return bool(rule.check(data))
    except Exception:  # noqa: BLE001
        # Predicate errors count as "not triggered".
        return False


def interpret_geo_data(
    data: GeoDataset,
    rules: tuple[GeoRule, ...] = GEO_RULES,
    limit: int = MAX_INSIGHTS,
) -> list[Insight]:
    """Evaluate the rule table and return at most `limit` insights, CRIT first."""
    triggered = [rule for rule in rules if _triggered(rule, data)]

    triggered_ids = {rule.id for rule in triggered}
    suppressed = {
        suppressed_id
        for rule_id in triggered_ids
        for suppressed_id in SUPPRESSIONS.get(rule_id, ())
    }
    kept = [rule for rule in triggered if rule.id not in suppressed]

    # Stable sort: equal severities keep table order.
    kept.sort(key=lambda rule: SEVERITY_ORDER.get(rule.severity, UNKNOWN_SEVERITY_RANK))
    return [rule.to_insight() for rule in kept[:limit]]
