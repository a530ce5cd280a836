"""
Pydantic schemas - the data contracts for skincare insights.

Every result model is built fresh per call and frozen; numeric fields carry
their bounds so an out-of-range value can never be constructed.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Enums ────────────────────────────────────────────────────────────────────


class SkinType(str, enum.Enum):
    OILY = "oily"
    DRY = "dry"
    COMBINATION = "combination"
    SENSITIVE = "sensitive"
    NORMAL = "normal"


class SkinGoal(str, enum.Enum):
    ACNE = "acne"
    GLOW = "glow"
    HYDRATE = "hydrate"
    PROTECT = "protect"


class Verdict(str, enum.Enum):
    GREAT = "great"
    GOOD = "good"
    CAUTION = "caution"


class Trend(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class InputTrend(str, enum.Enum):
    UP = "up"
    DOWN = "down"


# ── Product evaluation ───────────────────────────────────────────────────────


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EvaluationRequest(CamelModel):
    """A product to evaluate against the user's skin profile.

    Unknown skin types become None and unknown goals are dropped, so the
    request is always usable for prompting and fallback lookup.
    """

    model_config = ConfigDict(frozen=True)

    product_name: str = Field(min_length=1)
    skin_type: Optional[SkinType] = None
    goals: list[SkinGoal] = Field(default_factory=list)

    @field_validator("product_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Product name is required")
        return value

    @field_validator("skin_type", mode="before")
    @classmethod
    def _known_skin_type(cls, value):
        if isinstance(value, SkinType) or value is None:
            return value
        try:
            return SkinType(str(value).strip().lower())
        except ValueError:
            return None

    @field_validator("goals", mode="before")
    @classmethod
    def _known_goals(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, SkinGoal)):
            value = [value]
        if isinstance(value, dict) or not isinstance(value, Iterable):
            return []
        known: list[SkinGoal] = []
        for goal in value:
            try:
                known.append(SkinGoal(goal))
            except ValueError:
                continue
        return known


class EvaluationResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    fit_score: int = Field(ge=0, le=100)
    verdict: Verdict
    insights: list[str] = Field(default_factory=list)
    recommendation: str


class FallbackInsights(CamelModel):
    """Table-driven advice used when the AI reply is missing or unusable."""

    model_config = ConfigDict(frozen=True)

    insights: list[str]
    recommendation: str


# ── Progress tracking ────────────────────────────────────────────────────────


class ProgressMetric(CamelModel):
    """A tracked metric as recorded by the user's check-ins."""

    label: str
    value: float
    trend: InputTrend


class SkinProgressMetric(CamelModel):
    """A metric derived from photo analysis."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: float = Field(ge=0, le=100)
    trend: Trend = Trend.NEUTRAL
    is_good: bool = True


class ProgressAnalysis(CamelModel):
    model_config = ConfigDict(frozen=True)

    metrics: list[SkinProgressMetric] = Field(default_factory=list)
    insight: str


class PhotoSet(CamelModel):
    """Which photo views exist for a day's check-in (URL or None)."""

    front: Optional[str] = None
    right: Optional[str] = None
    left: Optional[str] = None

    def available_views(self) -> list[str]:
        return [view for view in ("front", "right", "left") if getattr(self, view)]


# ── Service status ───────────────────────────────────────────────────────────


class ServiceStatus(CamelModel):
    available: bool = False
    last_checked: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = None
    response_time_ms: Optional[float] = None


# ── HTTP request bodies ──────────────────────────────────────────────────────


class ProgressInsightRequest(CamelModel):
    metrics: list[ProgressMetric] = Field(default_factory=list)
    days_tracked: int = Field(ge=0)


class PhotoAnalysisRequest(CamelModel):
    photos: PhotoSet
    previous_photos: Optional[PhotoSet] = None


class ProductInsightRequest(CamelModel):
    product_name: str = Field(min_length=1)
    context: Optional[str] = None


class InsightResponse(CamelModel):
    insight: str
