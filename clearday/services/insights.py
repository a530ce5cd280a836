"""
InsightService - the inbound API for AI skincare insights.

Each operation builds a prompt, asks the chat capability, and interprets the
reply. Every failure is absorbed here:
  - capability unavailable  → conservative fallback
  - call failed / timed out → conservative fallback
  - reply not usable        → neutral fallback (via the interpreter)
Callers always get a complete, displayable result.
"""

import logging
from typing import Iterable, Optional, Sequence

from clearday.agents.prompts import (
    build_evaluation_prompt,
    build_photo_analysis_prompt,
    build_product_insight_prompt,
    build_progress_insight_prompt,
)
from clearday.errors import AIServiceError, FailureMode
from clearday.schemas import (
    EvaluationRequest,
    EvaluationResult,
    PhotoSet,
    ProgressAnalysis,
    ProgressMetric,
    SkinGoal,
    SkinType,
)
from clearday.services.claude import ChatClient, collect_stream
from clearday.services.interpreter import (
    fallback_evaluation,
    fallback_photo_analysis,
    fallback_product_insight,
    fallback_progress_insight,
    interpret_evaluation,
    interpret_photo_analysis,
    interpret_progress_insight,
)

logger = logging.getLogger(__name__)

MIN_DAYS_TRACKED = 2
UNNAMED_PRODUCT = "this product"


class InsightService:
    """Skincare insights over an injected chat capability."""

    def __init__(self, chat: ChatClient):
        self.chat = chat

    async def _ask(self, prompt: str, stream: bool = False) -> tuple[Optional[str], Optional[FailureMode]]:
        """Return (reply, None) on success or (None, failure mode) otherwise."""
        if not self.chat.is_available():
            logger.warning("AI service is not available - using fallback")
            return None, FailureMode.UNAVAILABLE

        try:
            if stream:
                reply = await collect_stream(self.chat.stream(prompt))
            else:
                reply = await self.chat.chat(prompt)
        except AIServiceError as e:
            logger.error(f"AI call failed ({e.mode.value}): {str(e)}", exc_info=True)
            return None, e.mode
        except Exception as e:
            logger.error(f"Unexpected AI call error: {str(e)}", exc_info=True)
            return None, FailureMode.CALL_FAILURE

        logger.debug(f"AI raw response: {reply}")
        return reply, None

    async def evaluate_product(
        self,
        product_name: str,
        skin_type: Optional[SkinType | str] = None,
        goals: Optional[Iterable[SkinGoal | str]] = None,
        stream: bool = False,
    ) -> EvaluationResult:
        """Score how well a product fits the user's skin type and goals."""
        name = product_name.strip() if isinstance(product_name, str) else ""
        request = EvaluationRequest(
            product_name=name or UNNAMED_PRODUCT,
            skin_type=skin_type,
            goals=goals,
        )
        return await self.evaluate(request, stream=stream)

    async def evaluate(self, request: EvaluationRequest, stream: bool = False) -> EvaluationResult:
        logger.info(
            f"Product evaluation | product: {request.product_name} | "
            f"skin type: {request.skin_type.value if request.skin_type else 'unknown'} | "
            f"goals: {[g.value for g in request.goals]}"
        )
        reply, failure = await self._ask(build_evaluation_prompt(request), stream=stream)
        if failure is not None:
            return fallback_evaluation(request, failure)
        return interpret_evaluation(reply, request)

    async def analyze_progress(self, metrics: Sequence[ProgressMetric], days_tracked: int) -> str:
        """One or two sentences of encouragement about tracked metrics."""
        if days_tracked < MIN_DAYS_TRACKED or not any(m.value > 0 for m in metrics):
            logger.info("Not enough progress data for an AI insight")
            return fallback_progress_insight(days_tracked, FailureMode.MALFORMED)

        reply, failure = await self._ask(build_progress_insight_prompt(metrics, days_tracked))
        if failure is not None:
            return fallback_progress_insight(days_tracked, failure)
        return interpret_progress_insight(reply, days_tracked)

    async def analyze_photos(
        self,
        photos: PhotoSet,
        previous_photos: Optional[PhotoSet] = None,
    ) -> ProgressAnalysis:
        """Compare today's photo views with the previous day's."""
        if not photos.available_views():
            logger.info("No photos to analyze")
            return fallback_photo_analysis(FailureMode.MALFORMED)

        reply, failure = await self._ask(build_photo_analysis_prompt(photos, previous_photos))
        if failure is not None:
            return fallback_photo_analysis(failure)
        return interpret_photo_analysis(reply)

    async def product_insight(self, product_name: str, context: Optional[str] = None) -> str:
        reply, failure = await self._ask(build_product_insight_prompt(product_name, context))
        text = (reply or "").strip()
        if failure is not None or not text:
            return fallback_product_insight(product_name)
        return text
