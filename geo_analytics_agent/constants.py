from __future__ import annotations


# Relative reach of each AI answer engine (sums to 1.0).
ENGINE_WEIGHTS: dict[str, float] = {
    "chatgpt": 0.30,
    "perplexity": 0.20,
    "gemini": 0.18,
    "claude": 0.12,
    "deepseek": 0.05,
    "ai_overview": 0.05,
    "grok": 0.04,
    "mistral": 0.03,
    "ai_mode": 0.03,
}
ENGINE_WEIGHT_DEFAULT = 0.02

# Content gap thresholds.
CONTENT_GAP_ENGINE_DROP_PTS = 20
CONTENT_GAP_TERM_VISIBILITY_PCT = 50
CONTENT_GAP_MAX_ENGINES_SHOWN = 5
CONTENT_GAP_MAX_TERMS_SHOWN = 8
CONTENT_GAP_PRIORITY_TERMS = 3

# Engine strength profile.
ENGINE_PROFILE_BAR_WIDTH = 22
ENGINE_PROFILE_HIGHLIGHT_COUNT = 3

# Reputation score: (base_ratio * 0.60 + engine * 0.20 - penalty * 0.20 + 1) * 50.
REPUTATION_BASE_RATIO_WEIGHT = 0.60
REPUTATION_ENGINE_SCORE_WEIGHT = 0.20
REPUTATION_SEVERITY_PENALTY_WEIGHT = 0.20
REPUTATION_NORM_OFFSET = 1
REPUTATION_NORM_SCALE = 50
REPUTATION_NEGATIVE_MULTIPLIER = 2
REPUTATION_TOP_RISK_KEYWORDS = 5
REPUTATION_TOP_POSITIVE_KEYWORDS = 5
REPUTATION_LABEL_BANDS: tuple[tuple[int, str], ...] = (
    (75, "Excellent"),
    (60, "Good"),
    (45, "Fair"),
    (30, "Poor"),
)
REPUTATION_LABEL_FLOOR = "Critical"

TREND_IMPROVING_TOKENS = ("up", "improving")
TREND_DECLINING_TOKENS = ("down", "declining")
TREND_ARROWS = {"improving": "↑", "declining": "↓", "stable": "→"}

# Composite sentiment decomposition: negative share of the non-positive rest.
SENTIMENT_NEGATIVE_SHARE = 0.3
