from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from pathlib import Path

from docx import Document
from docx.shared import Pt

from geo_analytics_agent.constants import ENGINE_PROFILE_BAR_WIDTH
from geo_analytics_agent.models import (
    Brand,
    Competitor,
    ContentGapAnalysis,
    EngineStrengthProfile,
    GeoDataset,
    Insight,
    ReputationSummary,
)
from geo_analytics_agent.safe_access import round_half_up, safe_fixed


WIDTH = 55
REPORT_URL_BASE = "https://rankscale.ai/brands/"
FOOTER_URL_MAX = 40
TOP_TERMS_SHOWN = 5
REPUTATION_BAR_WIDTH = 30


def _fmt_num(value: object) -> str:
    """Render a number without a trailing ``.0`` (45.0 -> "45", 12.5 -> "12.5")."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _fmt_signed(value: float) -> str:
    text = _fmt_num(value)
    return f"+{text}" if value > 0 else text


def line(char: str = "-") -> str:
    return char * WIDTH


def center(text: str) -> str:
    clipped = str(text)[: WIDTH - 2]
    return " " * ((WIDTH - len(clipped)) // 2) + clipped


def _banner(title: str) -> list[str]:
    return [line("="), center(title), line("=")]


def _competitor_rows(competitors: Sequence[Competitor]) -> list[str]:
    if not competitors:
        return []
    rows = [line("-"), "  COMPETITOR COMPARISON"]
    for competitor in competitors:
        name = str(competitor.name)[:20]
        delta_text = ""
        if competitor.delta is not None:
            leading = competitor.delta >= 0
            flag = "🟢" if leading else "🔴"
            sign = "+" if leading else ""
            delta_text = f" {flag} [{sign}{competitor.delta}% vs us]"
        row = f"  {name:<20}: {_fmt_num(competitor.score):>3}{delta_text}"
        rows.append(row[:WIDTH])
    return rows


def build_text_report(
    dataset: GeoDataset,
    insights: Sequence[Insight],
    brand_id: str,
    competitors: Sequence[Competitor] = (),
    run_date: date | None = None,
) -> str:
    report = dataset.report
    citations = dataset.citations
    sentiment = dataset.sentiment
    day = (run_date or date.today()).isoformat()

    lines = [
        line("="),
        center("RANKSCALE GEO REPORT"),
        center(f"Brand: {report.brand_name} | {day}"),
        line("="),
        f"  GEO SCORE:     {_fmt_num(report.score):>3} / 100"
        f"   [{_fmt_signed(report.change)} vs last week]",
    ]

    rate_text = f"{_fmt_num(citations.rate)}%"
    industry_text = (
        f"[Industry avg: {_fmt_num(citations.industry_avg)}%]" if citations.industry_avg else ""
    )
    lines.append(f"  CITATION RATE: {rate_text:<10}{industry_text}")
    lines.append(
        f"  SENTIMENT:     Pos {_fmt_num(sentiment.positive)}%"
        f" | Neu {_fmt_num(sentiment.neutral)}%"
        f" | Neg {_fmt_num(sentiment.negative)}%"
    )

    if report.detection_rate is not None:
        lines.append(f"  DETECTION RATE:{_fmt_num(report.detection_rate):>4}%")

    if report.engines:
        engines_text = " | ".join(
            f"{name}:{_fmt_num(score)}" for name, score in report.engines.items()
        )
        lines.append(f"  ENGINES:       {engines_text[: WIDTH - 17]}")

    lines.extend(_competitor_rows(competitors))

    if dataset.search_terms:
        lines.append(line("-"))
        lines.append("  TOP AI SEARCH TERMS")
        for position, term in enumerate(dataset.search_terms[:TOP_TERMS_SHOWN], start=1):
            quoted = f'"{term.query}"'[:30]
            row = f"  {position}. {quoted:<32} ({_fmt_num(term.mentions)} mentions)"
            lines.append(row[:WIDTH])

    if insights:
        plural = "" if len(insights) == 1 else "s"
        lines.append(line("-"))
        lines.append(f"  GEO INSIGHTS  [{len(insights)} action{plural}]")
        for insight in insights:
            lines.append(f"  [{insight.severity}] {insight.recommendation}")
            lines.append("")

    footer_url = f"{REPORT_URL_BASE}{brand_id}"[:FOOTER_URL_MAX]
    lines.extend([line("-"), f"  Full report: {footer_url}", line("=")])
    return "\n".join(lines)


def build_engine_strength_block(profile: EngineStrengthProfile) -> str:
    if not profile.has_data:
        return "\n".join([line(), " ENGINE STRENGTH PROFILE", line(), "  No engine data available.", line()])

    bar_width = ENGINE_PROFILE_BAR_WIDTH
    average_bar = "─" * round_half_up(profile.average / profile.maximum * bar_width)
    average_text = _fmt_num(safe_fixed(profile.average))

    lines = [
        line(),
        center("ENGINE STRENGTH PROFILE"),
        line(),
        f"  {'Engine':<12} {'Visibility':<{bar_width}}Score",
        f"  {'Average':<12} {average_bar:<{bar_width}}{average_text:>5}",
        line("-"),
    ]
    for entry in profile.entries:
        if entry.is_top:
            tag = " ✦"
        elif entry.is_bottom:
            tag = " ▼"
        else:
            tag = "  "
        bar = "█" * entry.bar_length
        score_text = _fmt_num(safe_fixed(entry.score))
        lines.append(f"  {entry.name:<12.12} {bar:<{bar_width}}{score_text:>5}{tag}")

    lines.extend([line(), "  ✦ Top-3 engines  ▼ Bottom-3 engines"])
    return "\n".join(lines)


def build_content_gap_block(analysis: ContentGapAnalysis) -> str:
    lines = [line(), center("CONTENT GAP ANALYSIS"), line()]

    if analysis.has_engine_data:
        lines.append(f"  ENGINE GAPS (vs avg {_fmt_num(safe_fixed(analysis.engine_average))}):")
        if not analysis.engine_gaps:
            lines.append("  No significant engine gaps detected.")
        for gap in analysis.engine_gaps:
            lines.append(
                f"  ▼ {gap.engine:<14} score:{_fmt_num(safe_fixed(gap.score)):>5}"
                f"  gap:-{_fmt_num(gap.gap)}"
            )
        lines.append("")

    if analysis.terms_analyzed > 0:
        lines.append(f"  LOW-VISIBILITY TERMS (<50%) — {analysis.total_term_gaps} found:")
        if not analysis.term_gaps:
            lines.append("  All terms above 50% visibility. ✓")
        for gap in analysis.term_gaps:
            bar = "░" * round_half_up(gap.visibility / 5)
            visibility = _fmt_num(safe_fixed(gap.visibility, 0))
            lines.append(f"  {gap.term[:22]:<22} {bar:<20}{visibility:>4}%")
        if analysis.hidden_term_gaps > 0:
            lines.append(f"  … and {analysis.hidden_term_gaps} more gaps")
        lines.append("")

        lines.append("  RECOMMENDATIONS:")
        if analysis.priority_terms:
            lines.append(
                f"  1. Create content targeting top {len(analysis.priority_terms)} gap terms:"
            )
            lines.extend(f'     • "{term}"' for term in analysis.priority_terms)
        weakest = analysis.weakest_engine
        if weakest is not None:
            lines.append(
                f"  2. Optimise for {weakest.engine}: score {_fmt_num(safe_fixed(weakest.score))}"
                f" vs avg {_fmt_num(safe_fixed(analysis.engine_average))}"
            )
    elif not analysis.has_engine_data:
        lines.append("  No data available for gap analysis.")

    lines.append(line())
    return "\n".join(lines)


def build_reputation_block(summary: ReputationSummary) -> str:
    filled = round_half_up(summary.score / 100 * REPUTATION_BAR_WIDTH)
    score_bar = "█" * filled + "░" * (REPUTATION_BAR_WIDTH - filled)

    if summary.top_positive:
        positives = f"  Top positive signals:\n    {', '.join(summary.top_positive)}"
    else:
        positives = "  No positive keywords found."
    if summary.risk_areas:
        risks = f"  Risk areas:\n    {', '.join(summary.risk_areas)}"
    else:
        risks = "  No significant risk areas."

    return "\n".join(
        [
            line(),
            center("REPUTATION SCORE & SUMMARY"),
            line(),
            f"  Score:  {score_bar} {summary.score}/100",
            f"  Status: {summary.label}   Trend: {summary.trend_arrow} {summary.trend}",
            "",
            "  Sentiment breakdown:",
            f"    Positive: {_fmt_num(summary.positive_pct)}%"
            f"  Negative: {_fmt_num(summary.negative_pct)}%"
            f"  Neutral: {_fmt_num(summary.neutral_pct)}%",
            "",
            positives,
            "",
            risks,
            "",
            f"  Summary: {summary.summary}",
            line(),
        ]
    )


def build_brands_listing(brands: Sequence[Brand]) -> str:
    if not brands:
        return "  No brands found on this account."
    lines = _banner("AVAILABLE BRANDS")
    for position, brand in enumerate(brands, start=1):
        lines.append(f"  {position}. {brand.name or '(unnamed)'}")
        lines.append(f"     ID: {brand.id}")
    lines.extend([line("-"), "  Set: export RANKSCALE_BRAND_ID=<id>", line("=")])
    return "\n".join(lines)


def build_onboarding_text(app_url: str = "https://app.rankscale.ai") -> str:
    return "\n".join(
        _banner("RANKSCALE SETUP REQUIRED")
        + [
            "",
            "  To use GEO Analytics, you need a Rankscale account.",
            "",
            f"  1. Sign up at: {app_url}/signup",
            "  2. Create your brand profile",
            "  3. Copy your API key from Settings > API",
            "  4. Set environment variables:",
            "",
            "     export RANKSCALE_API_KEY=rk_xxxxx_yyyyy",
            "     export RANKSCALE_BRAND_ID=yyyyy",
            "",
            "  Or pass as flags:",
            "     geo-report --api-key rk_xxxxx --brand-id yyyyy",
            "",
            line("="),
        ]
    )


def write_docx(path: Path, title: str, content: str) -> None:
    """Save the fixed-width report to DOCX, one paragraph per line in a monospace font."""
    doc = Document()
    doc.core_properties.title = title
    try:
        normal = doc.styles["Normal"]
        normal.font.name = "Courier New"
        normal.font.size = Pt(9)
    except KeyError:
        pass

    for raw_line in content.splitlines():
        paragraph = doc.add_paragraph(raw_line.rstrip())
        paragraph.paragraph_format.space_after = Pt(0)
        paragraph.paragraph_format.space_before = Pt(0)

    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(path)
