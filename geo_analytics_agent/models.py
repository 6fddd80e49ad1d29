from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Sentiment:
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0

    def as_payload(self) -> dict[str, float]:
        return {
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral,
        }


@dataclass(frozen=True)
class Citations:
    count: int = 0
    rate: float = 0.0
    sources: tuple[Any, ...] = ()
    industry_avg: float | None = None


@dataclass(frozen=True)
class Report:
    score: float = 0
    rank: int | None = None
    change: float = 0
    brand_name: str = "Your Brand"
    detection_rate: float | None = None
    engines: dict[str, float] = field(default_factory=dict)
    competitors: tuple[Any, ...] = ()
    # Stand-ins for the standalone citations/sentiment endpoints.
    citations_fallback: dict[str, float] = field(
        default_factory=lambda: {"count": 0, "rate": 0},
        repr=False,
        compare=False,
    )
    sentiment_fallback: dict[str, float] | None = field(
        default=None,
        repr=False,
        compare=False,
    )


@dataclass(frozen=True)
class SearchTerm:
    query: str
    mentions: float = 0
    visibility: float | None = None


@dataclass(frozen=True)
class Competitor:
    name: str
    score: float
    delta: int | None = None


@dataclass(frozen=True)
class Brand:
    id: str
    name: str


@dataclass(frozen=True)
class Insight:
    id: str
    name: str
    severity: str
    recommendation: str


@dataclass(frozen=True)
class GeoDataset:
    report: Report = field(default_factory=Report)
    citations: Citations = field(default_factory=Citations)
    sentiment: Sentiment = field(default_factory=Sentiment)
    search_terms: tuple[SearchTerm, ...] = ()


@dataclass(frozen=True)
class EngineScore:
    name: str
    score: float
    bar_length: int
    is_top: bool = False
    is_bottom: bool = False


@dataclass(frozen=True)
class EngineStrengthProfile:
    entries: tuple[EngineScore, ...] = ()
    average: float = 0.0
    maximum: float = 1.0

    @property
    def has_data(self) -> bool:
        return bool(self.entries)


@dataclass(frozen=True)
class EngineGap:
    engine: str
    score: float
    gap: float


@dataclass(frozen=True)
class TermGap:
    term: str
    visibility: float


@dataclass(frozen=True)
class ContentGapAnalysis:
    engine_average: float | None = None
    engine_gaps: tuple[EngineGap, ...] = ()
    term_gaps: tuple[TermGap, ...] = ()
    hidden_term_gaps: int = 0
    total_term_gaps: int = 0
    terms_analyzed: int = 0
    weakest_engine: EngineGap | None = None
    priority_terms: tuple[str, ...] = ()

    @property
    def has_engine_data(self) -> bool:
        return self.engine_average is not None

    @property
    def has_data(self) -> bool:
        return self.has_engine_data or self.terms_analyzed > 0


@dataclass(frozen=True)
class KeywordCount:
    keyword: str
    count: float


@dataclass(frozen=True)
class ReputationSummary:
    score: int
    label: str
    trend: str
    trend_arrow: str
    positive_pct: float
    negative_pct: float
    neutral_pct: float
    base_ratio: float
    severity_penalty: float
    engine_score: float
    top_positive: tuple[str, ...] = ()
    risk_areas: tuple[str, ...] = ()

    @property
    def summary(self) -> str:
        text = f"Brand health is {self.label.lower()} ({self.score}/100) and {self.trend}."
        if self.risk_areas:
            text += f" Monitor: {', '.join(self.risk_areas[:2])}."
        return text
