"""
Response interpreter - turns free-form AI replies into bounded results.

Stateless. Nothing here raises: a reply either yields a JSON object whose
fields are validated, clamped, or defaulted one by one, or it is treated as
malformed and replaced by a table-driven fallback.
"""

import json
import logging
import math
from typing import Any, Optional

from clearday.errors import FailureMode
from clearday.schemas import (
    EvaluationRequest,
    EvaluationResult,
    ProgressAnalysis,
    SkinProgressMetric,
    Trend,
    Verdict,
)
from clearday.services.fallback import fallback_insights

logger = logging.getLogger(__name__)

DEFAULT_FIT_SCORE = 70
FAILURE_FIT_SCORE = 65
MAX_INSIGHTS = 4
DEFAULT_RECOMMENDATION = "Consider patch testing before full use."

DEFAULT_METRIC_VALUE = 50
DEFAULT_METRIC_LABEL = "Unknown"
DEFAULT_PHOTO_INSIGHT = "Continue tracking to see meaningful progress patterns."
MIN_INSIGHT_LENGTH = 10


# ── Embedded JSON extraction ────────────────────────────────────────────────


def extract_embedded_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Parse the outermost {...} span of a reply, if it holds a JSON object."""
    if not text:
        return None

    start_idx = text.find("{")
    end_idx = text.rfind("}")
    if start_idx == -1 or end_idx < start_idx:
        logger.warning("No JSON found in AI response")
        return None

    try:
        parsed = json.loads(text[start_idx:end_idx + 1])
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parsing error: {e}")
        logger.debug(f"Response was: {text}")
        return None

    if not isinstance(parsed, dict):
        logger.warning(f"AI response JSON is not an object: {type(parsed).__name__}")
        return None
    return parsed


# ── Field coercion ──────────────────────────────────────────────────────────


def _clamp_number(value: Any, default: float, low: float = 0, high: float = 100) -> float:
    """Clamp a real number into [low, high]; anything else becomes the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value):
        return default
    return max(low, min(high, value))


def _enum_or(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return default


def _non_blank(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


# ── Product evaluation ──────────────────────────────────────────────────────


def fallback_evaluation(request: EvaluationRequest, mode: FailureMode) -> EvaluationResult:
    """Table-driven evaluation; call failures score lower than unparseable replies."""
    advice = fallback_insights(request.skin_type, request.goals)
    if mode == FailureMode.MALFORMED:
        fit_score, verdict = DEFAULT_FIT_SCORE, Verdict.GOOD
    else:
        fit_score, verdict = FAILURE_FIT_SCORE, Verdict.CAUTION

    return EvaluationResult(
        fit_score=fit_score,
        verdict=verdict,
        insights=list(advice.insights),
        recommendation=advice.recommendation,
    )


def interpret_evaluation(raw: Optional[str], request: EvaluationRequest) -> EvaluationResult:
    parsed = extract_embedded_object(raw)
    if parsed is None:
        logger.info("Using fallback insights for unparseable product evaluation")
        return fallback_evaluation(request, FailureMode.MALFORMED)

    insights = parsed.get("insights")
    if isinstance(insights, list):
        insights = [item.strip() for item in insights if isinstance(item, str) and item.strip()]
    else:
        insights = []

    return EvaluationResult(
        fit_score=round(_clamp_number(parsed.get("fitScore"), DEFAULT_FIT_SCORE)),
        verdict=_enum_or(Verdict, parsed.get("verdict"), Verdict.GOOD),
        insights=insights[:MAX_INSIGHTS],
        recommendation=_non_blank(parsed.get("recommendation"), DEFAULT_RECOMMENDATION),
    )


# ── Photo progress analysis ─────────────────────────────────────────────────


_NEUTRAL_METRICS = [
    ("Acne Reduction", 50, Trend.NEUTRAL),
    ("Redness", 50, Trend.NEUTRAL),
    ("Skin Clarity", 50, Trend.NEUTRAL),
    ("Texture", 50, Trend.NEUTRAL),
]

_CONSERVATIVE_METRICS = [
    ("Acne Reduction", 45, Trend.DOWN),
    ("Redness", 40, Trend.DOWN),
    ("Skin Clarity", 55, Trend.UP),
    ("Texture", 52, Trend.UP),
]


def fallback_photo_analysis(mode: FailureMode) -> ProgressAnalysis:
    if mode == FailureMode.MALFORMED:
        rows = _NEUTRAL_METRICS
        insight = "Analysis temporarily unavailable. Continue consistent tracking for best results."
    else:
        rows = _CONSERVATIVE_METRICS
        insight = "Analysis temporarily unavailable. Keep tracking consistently for progress insights."

    return ProgressAnalysis(
        metrics=[
            SkinProgressMetric(label=label, value=value, trend=trend, is_good=True)
            for label, value, trend in rows
        ],
        insight=insight,
    )


def _interpret_metric(item: dict[str, Any]) -> SkinProgressMetric:
    is_good = item.get("isGood")
    return SkinProgressMetric(
        label=_non_blank(item.get("label"), DEFAULT_METRIC_LABEL),
        value=_clamp_number(item.get("value"), DEFAULT_METRIC_VALUE),
        trend=_enum_or(Trend, item.get("trend"), Trend.NEUTRAL),
        is_good=is_good if isinstance(is_good, bool) else True,
    )


def interpret_photo_analysis(raw: Optional[str]) -> ProgressAnalysis:
    parsed = extract_embedded_object(raw)
    if parsed is None:
        logger.info("Using fallback metrics for unparseable photo analysis")
        return fallback_photo_analysis(FailureMode.MALFORMED)

    metrics = parsed.get("metrics")
    if not isinstance(metrics, list):
        metrics = []

    return ProgressAnalysis(
        metrics=[_interpret_metric(m) for m in metrics if isinstance(m, dict)],
        insight=_non_blank(parsed.get("insight"), DEFAULT_PHOTO_INSIGHT),
    )


# ── Free-text insights ──────────────────────────────────────────────────────


def fallback_progress_insight(days_tracked: int, mode: FailureMode) -> str:
    if mode == FailureMode.MALFORMED:
        return "Consistency is key to seeing meaningful results. Keep up your daily check-ins."
    return f"Keep tracking your progress for {days_tracked} days. Consistency is key to seeing meaningful results."


def interpret_progress_insight(raw: Optional[str], days_tracked: int) -> str:
    text = (raw or "").strip()
    if len(text) < MIN_INSIGHT_LENGTH:
        logger.warning(f"AI progress insight too short: {text!r}")
        return fallback_progress_insight(days_tracked, FailureMode.MALFORMED)
    return text


def fallback_product_insight(product_name: str) -> str:
    return f"{product_name} may be worth considering. Remember to patch test new products before regular use."
