"""
Prompt builders for the skincare insight calls.

Pure string construction: each builder inlines only the context that is
present and spells out the exact JSON shape expected back, with the allowed
values for every enum field and the range for every number.
"""

from typing import Optional, Sequence

from clearday.schemas import EvaluationRequest, PhotoSet, ProgressMetric, InputTrend


PHOTO_METRIC_LABELS = ("Acne Reduction", "Redness", "Skin Clarity", "Texture")


def _format_views(photos: PhotoSet) -> str:
    return ", ".join(f"{view} view: available" for view in photos.available_views())


def _format_metrics(metrics: Sequence[ProgressMetric]) -> str:
    return ", ".join(
        f"{m.label}: {m.value:g}% ({'improving' if m.trend == InputTrend.UP else 'declining'})"
        for m in metrics
    )


def build_evaluation_prompt(request: EvaluationRequest) -> str:
    skin_context = f"User's skin type: {request.skin_type.value}. " if request.skin_type else ""
    goals_context = (
        f"User's goals: {', '.join(g.value for g in request.goals)}. " if request.goals else ""
    )

    return f"""As a skincare expert with 15+ years of experience, evaluate this product: "{request.product_name}"

{skin_context}{goals_context}

Consider these factors:
- Ingredient compatibility with the user's skin type
- Effectiveness for the stated skincare goals
- Potential irritation or sensitivity concerns
- Real-world user experience patterns and clinical data
- Price-to-performance ratio
- Ingredient concentration and formulation quality

Provide evaluation in this exact JSON format:
{{
  "fitScore": number (0-100),
  "verdict": "great" | "good" | "caution",
  "insights": [array with 3-4 specific, actionable insights],
  "recommendation": "specific recommendation based on user profile"
}}

Scoring guidelines:
- 90-100: Excellent match, highly recommended
- 70-89: Good match, worth trying
- 50-69: Moderate match, consider alternatives
- Below 50: Poor match, not recommended

Be specific, practical, and evidence-based. Focus on ingredient interactions and realistic expectations."""


def build_progress_insight_prompt(metrics: Sequence[ProgressMetric], days_tracked: int) -> str:
    return f"""As a skincare expert, analyze this progress data:

Days tracked: {days_tracked}
Metrics: {_format_metrics(metrics)}

Provide a brief, encouraging insight (1-2 sentences) about what's working and what to focus on next. Be specific, actionable, and motivational. Consider the consistency level and suggest next steps."""


def build_photo_analysis_prompt(
    photos: PhotoSet,
    previous_photos: Optional[PhotoSet] = None,
) -> str:
    today = _format_views(photos) or "no photos"
    previous = _format_views(previous_photos) if previous_photos else ""
    previous = previous or "no previous day photos"

    metric_blocks = ",\n".join(
        f"""    {{
      "label": "{label}",
      "value": number (0-100),
      "trend": "up" | "down" | "neutral",
      "isGood": boolean
    }}"""
        for label in PHOTO_METRIC_LABELS
    )

    return f"""As a dermatologist and skincare expert, analyze these skin progress photos and provide detailed metrics.

Today's photos: {today}
Previous day photos: {previous}

Provide comprehensive analysis in this exact JSON format:
{{
  "metrics": [
{metric_blocks}
  ],
  "insight": "brief insight about skin progress (1-2 sentences)"
}}

Analysis guidelines:
- Value 0-100: percentage measure (lower is better for acne/redness, higher is better for clarity/texture)
- Trend "up": getting worse for acne/redness, getting better for clarity/texture
- Trend "down": getting better for acne/redness, getting worse for clarity/texture
- isGood: true if trend is desirable, false if concerning
- Be conservative and realistic in estimates
- If photos are unclear or limited, provide conservative estimates
- Focus on observable changes and realistic expectations"""


def build_product_insight_prompt(product_name: str, context: Optional[str] = None) -> str:
    context_line = f"Additional context: {context}" if context else ""
    return f"""Provide a brief, practical insight (1-2 sentences) about this skincare product: "{product_name}"

{context_line}

Focus on effectiveness, user experience, and suitability. Be helpful and realistic."""
