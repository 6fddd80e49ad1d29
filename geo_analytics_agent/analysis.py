from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from geo_analytics_agent.constants import (
    CONTENT_GAP_ENGINE_DROP_PTS,
    CONTENT_GAP_MAX_ENGINES_SHOWN,
    CONTENT_GAP_MAX_TERMS_SHOWN,
    CONTENT_GAP_PRIORITY_TERMS,
    CONTENT_GAP_TERM_VISIBILITY_PCT,
    ENGINE_PROFILE_BAR_WIDTH,
    ENGINE_PROFILE_HIGHLIGHT_COUNT,
    ENGINE_WEIGHT_DEFAULT,
    ENGINE_WEIGHTS,
    REPUTATION_BASE_RATIO_WEIGHT,
    REPUTATION_ENGINE_SCORE_WEIGHT,
    REPUTATION_LABEL_BANDS,
    REPUTATION_LABEL_FLOOR,
    REPUTATION_NEGATIVE_MULTIPLIER,
    REPUTATION_NORM_OFFSET,
    REPUTATION_NORM_SCALE,
    REPUTATION_SEVERITY_PENALTY_WEIGHT,
    REPUTATION_TOP_POSITIVE_KEYWORDS,
    REPUTATION_TOP_RISK_KEYWORDS,
    TREND_ARROWS,
    TREND_DECLINING_TOKENS,
    TREND_IMPROVING_TOKENS,
)
from geo_analytics_agent.models import (
    ContentGapAnalysis,
    EngineGap,
    EngineScore,
    EngineStrengthProfile,
    KeywordCount,
    Report,
    ReputationSummary,
    SearchTerm,
    TermGap,
)
from geo_analytics_agent.safe_access import (
    clamp,
    pick_present,
    round_half_up,
    safe_array,
    safe_fixed,
    safe_get,
    safe_num,
)


def _engine_items(engines: Any) -> list[tuple[str, float]]:
    if not isinstance(engines, Mapping):
        return []
    return [(str(name), safe_num(score)) for name, score in engines.items()]


def analyze_engine_strength(engines: Any) -> EngineStrengthProfile:
    """Rank engines by visibility and flag the top and bottom three.

    Top/bottom membership goes by position in the sorted order, so ties at
    the boundary are split by insertion order rather than by value.
    """
    ranked = sorted(_engine_items(engines), key=lambda item: item[1], reverse=True)
    if not ranked:
        return EngineStrengthProfile()

    scores = [score for _, score in ranked]
    average = sum(scores) / len(scores)
    maximum = max(*scores, 1)

    count = ENGINE_PROFILE_HIGHLIGHT_COUNT
    top_names = {name for name, _ in ranked[:count]}
    bottom_names = {name for name, _ in ranked[-count:]}

    entries = tuple(
        EngineScore(
            name=name,
            score=score,
            bar_length=round_half_up(score / maximum * ENGINE_PROFILE_BAR_WIDTH),
            is_top=name in top_names,
            is_bottom=name in bottom_names,
        )
        for name, score in ranked
    )
    return EngineStrengthProfile(entries=entries, average=average, maximum=maximum)


def analyze_content_gaps(report: Report, search_terms: Sequence[SearchTerm]) -> ContentGapAnalysis:
    """Engines trailing the engine average, and search terms under 50% visibility."""
    engine_items = _engine_items(getattr(report, "engines", None))
    engine_average: float | None = None
    engine_gaps: list[EngineGap] = []
    weakest: EngineGap | None = None

    if engine_items:
        engine_average = sum(score for _, score in engine_items) / len(engine_items)
        by_score = sorted(engine_items, key=lambda item: item[1])
        engine_gaps = [
            EngineGap(engine=name, score=score, gap=safe_fixed(engine_average - score))
            for name, score in by_score
            if engine_average - score > CONTENT_GAP_ENGINE_DROP_PTS
        ]
        weakest_name, weakest_score = by_score[0]
        weakest = EngineGap(
            engine=weakest_name,
            score=weakest_score,
            gap=safe_fixed(engine_average - weakest_score),
        )

    terms = [term for term in safe_array(search_terms) if isinstance(term, SearchTerm)]
    low_visibility = sorted(
        (
            TermGap(term=term.query, visibility=term.visibility)
            for term in terms
            if term.visibility is not None
            and term.visibility < CONTENT_GAP_TERM_VISIBILITY_PCT
        ),
        key=lambda gap: gap.visibility,
    )

    shown_terms = low_visibility[:CONTENT_GAP_MAX_TERMS_SHOWN]
    return ContentGapAnalysis(
        engine_average=engine_average,
        engine_gaps=tuple(engine_gaps[:CONTENT_GAP_MAX_ENGINES_SHOWN]),
        term_gaps=tuple(shown_terms),
        hidden_term_gaps=len(low_visibility) - len(shown_terms),
        total_term_gaps=len(low_visibility),
        terms_analyzed=len(terms),
        weakest_engine=weakest,
        priority_terms=tuple(gap.term for gap in low_visibility[:CONTENT_GAP_PRIORITY_TERMS]),
    )


def _keyword_counts(raw: Any) -> list[KeywordCount]:
    keywords: list[KeywordCount] = []
    for entry in safe_array(raw):
        if isinstance(entry, Mapping):
            keyword = pick_present(entry, ("keyword", "text"), default=entry)
            count = safe_num(pick_present(entry, ("count", "frequency")), 1)
            keywords.append(KeywordCount(keyword=str(keyword), count=count))
        elif entry is not None:
            keywords.append(KeywordCount(keyword=str(entry), count=1))
    return keywords


def _engine_sentiment_score(breakdown: Any) -> float:
    weighted_sum = 0.0
    weight_total = 0.0
    for entry in safe_array(breakdown):
        engine = str(safe_get(entry, "engine", "")).lower()
        weight = ENGINE_WEIGHTS.get(engine, ENGINE_WEIGHT_DEFAULT)
        weighted_sum += safe_num(safe_get(entry, "sentiment")) * weight
        weight_total += weight
    if not weight_total:
        return 0.0
    return weighted_sum / weight_total


def _trend_from(raw: Any) -> str:
    trend = safe_get(raw, "trend")
    if trend in TREND_IMPROVING_TOKENS:
        return "improving"
    if trend in TREND_DECLINING_TOKENS:
        return "declining"
    return "stable"


def _label_for(score: int) -> str:
    for threshold, label in REPUTATION_LABEL_BANDS:
        if score >= threshold:
            return label
    return REPUTATION_LABEL_FLOOR


def _top_keywords(keywords: list[KeywordCount], limit: int) -> tuple[str, ...]:
    ranked = sorted(keywords, key=lambda item: item.count, reverse=True)
    return tuple(item.keyword for item in ranked[:limit])


def compute_reputation_score(sentiment_data: Any) -> ReputationSummary:
    """Score brand reputation 0-100 from keyword sentiment.

    ``raw = base_ratio * 0.60 + engine_score * 0.20 - severity_penalty * 0.20``
    and ``score = round(clamp((raw + 1) * 50, 0, 100))``, where negative
    mentions count double in the base ratio and the severity penalty sums the
    squared share of each negative keyword, so one dominant complaint weighs
    more than many small ones.
    """
    positive = _keyword_counts(safe_get(sentiment_data, "positiveKeywords"))
    negative = _keyword_counts(safe_get(sentiment_data, "negativeKeywords"))
    neutral = _keyword_counts(safe_get(sentiment_data, "neutralKeywords"))

    positive_count = sum(item.count for item in positive)
    negative_count = sum(item.count for item in negative)
    neutral_count = sum(item.count for item in neutral)
    total = max(positive_count + negative_count + neutral_count, 1)

    base_ratio = (positive_count - REPUTATION_NEGATIVE_MULTIPLIER * negative_count) / total
    severity_penalty = sum((item.count / total) ** 2 for item in negative)
    engine_score = _engine_sentiment_score(safe_get(sentiment_data, "engineBreakdown"))

    raw = (
        base_ratio * REPUTATION_BASE_RATIO_WEIGHT
        + engine_score * REPUTATION_ENGINE_SCORE_WEIGHT
        - severity_penalty * REPUTATION_SEVERITY_PENALTY_WEIGHT
    )
    score = round_half_up(clamp((raw + REPUTATION_NORM_OFFSET) * REPUTATION_NORM_SCALE, 0, 100))
    trend = _trend_from(sentiment_data)

    return ReputationSummary(
        score=score,
        label=_label_for(score),
        trend=trend,
        trend_arrow=TREND_ARROWS[trend],
        positive_pct=safe_fixed(positive_count / total * 100),
        negative_pct=safe_fixed(negative_count / total * 100),
        neutral_pct=safe_fixed(neutral_count / total * 100),
        base_ratio=base_ratio,
        severity_penalty=severity_penalty,
        engine_score=engine_score,
        top_positive=_top_keywords(positive, REPUTATION_TOP_POSITIVE_KEYWORDS),
        risk_areas=_top_keywords(negative, REPUTATION_TOP_RISK_KEYWORDS),
    )
