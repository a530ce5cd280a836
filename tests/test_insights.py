"""
InsightService tests - fake chat clients for each failure path, plus the real
ClaudeChatService driven by pydantic-ai FunctionModel (no network).
"""

import asyncio
import json

import pytest

from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from clearday.config import Settings
from clearday.errors import CallFailureError, FailureMode, ServiceUnavailableError
from clearday.schemas import PhotoSet, ProgressMetric, SkinType, Trend, Verdict
from clearday.services.claude import ClaudeChatService, chat_agent, collect_stream
from clearday.services.fallback import SKIN_TYPE_INSIGHTS
from clearday.services.insights import InsightService
from clearday.services.interpreter import fallback_photo_analysis, fallback_progress_insight
from clearday.services.status import ServiceMonitor


# ── Fixtures ────────────────────────────────────────────────────────────────


class FakeChat:
    """Scripted chat capability."""

    def __init__(self, reply: str = "", error: Exception | None = None, available: bool = True, chunks=None):
        self.reply = reply
        self.error = error
        self.available = available
        self.chunks = chunks or []
        self.prompts: list[str] = []

    def is_available(self) -> bool:
        return self.available

    async def chat(self, prompt, model=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply

    async def stream(self, prompt, model=None):
        self.prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


GOOD_EVALUATION = json.dumps({
    "fitScore": 88,
    "verdict": "great",
    "insights": ["Ceramides restore the barrier", "Fragrance-free"],
    "recommendation": "Use morning and night on damp skin",
})

PROGRESS_METRICS = [
    ProgressMetric(label="Acne", value=35, trend="up"),
    ProgressMetric(label="Redness", value=20, trend="down"),
]

TODAY = PhotoSet(front="https://cdn/today-front.jpg")
YESTERDAY = PhotoSet(front="https://cdn/yesterday-front.jpg")


def _settings(**overrides) -> Settings:
    defaults = dict(claude_api_key="test-key", ai_max_retries=0, ai_retry_delay_s=0, ai_timeout_s=5)
    defaults.update(overrides)
    return Settings(**defaults)


def _text_model(text: str) -> FunctionModel:
    def reply(messages, info: AgentInfo):
        return ModelResponse(parts=[TextPart(content=text)])

    return FunctionModel(reply)


# ── Product evaluation ──────────────────────────────────────────────────────


class TestEvaluateProduct:
    @pytest.mark.anyio
    async def test_ai_reply_is_interpreted(self):
        chat = FakeChat(reply=f"Sure! Here you go:\n{GOOD_EVALUATION}")
        result = await InsightService(chat).evaluate_product("CeraVe Cream", "dry", ["hydrate"])

        assert result.fit_score == 88
        assert result.verdict == Verdict.GREAT
        assert result.insights == ["Ceramides restore the barrier", "Fragrance-free"]
        assert "User's skin type: dry." in chat.prompts[0]

    @pytest.mark.anyio
    @pytest.mark.parametrize("skin_type", [t.value for t in SkinType] + ["unknown", None])
    @pytest.mark.parametrize(
        "chat",
        [
            FakeChat(reply=GOOD_EVALUATION),
            FakeChat(reply="no json here"),
            FakeChat(reply='{"fitScore": 9000, "verdict": 3}'),
            FakeChat(error=RuntimeError("boom")),
            FakeChat(available=False),
        ],
    )
    async def test_never_raises_and_stays_in_bounds(self, skin_type, chat):
        result = await InsightService(chat).evaluate_product("Any Product", skin_type, ["acne"])
        assert 0 <= result.fit_score <= 100
        assert result.verdict in set(Verdict)
        assert isinstance(result.recommendation, str) and result.recommendation

    @pytest.mark.anyio
    async def test_call_failure_and_malformed_reply_differ(self):
        failed = await InsightService(FakeChat(error=CallFailureError("timeout"))).evaluate_product("Serum", "oily")
        malformed = await InsightService(FakeChat(reply="I love it")).evaluate_product("Serum", "oily")

        assert failed.fit_score != malformed.fit_score
        assert failed.verdict == Verdict.CAUTION
        assert malformed.verdict == Verdict.GOOD
        assert failed.insights == malformed.insights == SKIN_TYPE_INSIGHTS[SkinType.OILY].insights

    @pytest.mark.anyio
    async def test_unavailable_service_is_not_called(self):
        chat = FakeChat(reply=GOOD_EVALUATION, available=False)
        result = await InsightService(chat).evaluate_product("Serum", "sensitive")
        assert chat.prompts == []
        assert result.fit_score == 65

    @pytest.mark.anyio
    async def test_streamed_reply_is_concatenated(self):
        chunks = [GOOD_EVALUATION[:10], GOOD_EVALUATION[10:40], GOOD_EVALUATION[40:]]
        result = await InsightService(FakeChat(chunks=chunks)).evaluate_product("Cream", stream=True)
        assert result.fit_score == 88

    @pytest.mark.anyio
    async def test_stream_failure_falls_back(self):
        chat = FakeChat(chunks=['{"fitScore":'], error=CallFailureError("dropped"))
        result = await InsightService(chat).evaluate_product("Cream", "dry", stream=True)
        assert result.fit_score == 65

    @pytest.mark.anyio
    @pytest.mark.parametrize("name", ["", "   ", None, 42])
    async def test_missing_name_uses_placeholder(self, name):
        chat = FakeChat(reply="no json")
        result = await InsightService(chat).evaluate_product(name, "dry")
        assert result.fit_score == 70
        assert result.insights == SKIN_TYPE_INSIGHTS[SkinType.DRY].insights
        assert '"this product"' in chat.prompts[0]

    @pytest.mark.anyio
    async def test_missing_name_when_ai_down(self):
        result = await InsightService(FakeChat(available=False)).evaluate_product("", "dry")
        assert result.fit_score == 65
        assert result.verdict == Verdict.CAUTION

    @pytest.mark.anyio
    async def test_single_goal_string(self):
        chat = FakeChat(available=False)
        single = await InsightService(chat).evaluate_product("Serum", "dry", "acne")
        listed = await InsightService(chat).evaluate_product("Serum", "dry", ["acne"])
        assert single == listed
        assert single.recommendation != SKIN_TYPE_INSIGHTS[SkinType.DRY].recommendation

    @pytest.mark.anyio
    async def test_goals_from_generator(self):
        chat = FakeChat(reply="x")
        await InsightService(chat).evaluate_product("Serum", "dry", (g for g in ["glow", "acne"]))
        assert "User's goals: glow, acne." in chat.prompts[0]


# ── Progress ──────────────────────────────────────────────────────────────


class TestAnalyzeProgress:
    @pytest.mark.anyio
    async def test_returns_ai_text(self):
        chat = FakeChat(reply="  Acne is trending better - keep the BHA on alternate nights.  ")
        insight = await InsightService(chat).analyze_progress(PROGRESS_METRICS, 10)
        assert insight == "Acne is trending better - keep the BHA on alternate nights."
        assert "Days tracked: 10" in chat.prompts[0]

    @pytest.mark.anyio
    async def test_insufficient_data_skips_ai(self):
        chat = FakeChat(reply="Should not be used at all.")
        service = InsightService(chat)
        assert await service.analyze_progress([], 10) == fallback_progress_insight(10, FailureMode.MALFORMED)
        assert await service.analyze_progress(PROGRESS_METRICS, 1) == fallback_progress_insight(1, FailureMode.MALFORMED)
        zeros = [ProgressMetric(label="Acne", value=0, trend="up")]
        assert await service.analyze_progress(zeros, 10) == fallback_progress_insight(10, FailureMode.MALFORMED)
        assert chat.prompts == []

    @pytest.mark.anyio
    async def test_call_failure_fallback(self):
        insight = await InsightService(FakeChat(error=RuntimeError("502"))).analyze_progress(PROGRESS_METRICS, 5)
        assert insight == fallback_progress_insight(5, FailureMode.CALL_FAILURE)


class TestAnalyzePhotos:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "reply",
        [
            '{"metrics": [{"label": "Redness", "value": 500, "trend": "worse"}], "insight": 7}',
            '{"metrics": "none"}',
            "The skin looks clearer today.",
            '{"metrics": [null, {"value": -3, "trend": "up", "isGood": false}]}',
        ],
    )
    async def test_metrics_always_in_bounds(self, reply):
        analysis = await InsightService(FakeChat(reply=reply)).analyze_photos(TODAY, YESTERDAY)
        for metric in analysis.metrics:
            assert 0 <= metric.value <= 100
            assert metric.trend in set(Trend)
        assert analysis.insight

    @pytest.mark.anyio
    async def test_call_failure_uses_conservative_metrics(self):
        analysis = await InsightService(FakeChat(error=RuntimeError("down"))).analyze_photos(TODAY, YESTERDAY)
        assert analysis == fallback_photo_analysis(FailureMode.CALL_FAILURE)

    @pytest.mark.anyio
    async def test_no_photos_skips_ai(self):
        chat = FakeChat(reply="{}")
        analysis = await InsightService(chat).analyze_photos(PhotoSet())
        assert analysis == fallback_photo_analysis(FailureMode.MALFORMED)
        assert chat.prompts == []


class TestProductInsight:
    @pytest.mark.anyio
    async def test_ai_text(self):
        insight = await InsightService(FakeChat(reply="Great for oily skin. ")).product_insight("BHA")
        assert insight == "Great for oily skin."

    @pytest.mark.anyio
    async def test_fallback(self):
        insight = await InsightService(FakeChat(available=False)).product_insight("BHA")
        assert insight.startswith("BHA may be worth considering")


# ── Claude chat service (FunctionModel) ─────────────────────────────────────


class TestClaudeChatService:
    def test_availability_follows_api_key(self):
        assert ClaudeChatService(_settings()).is_available()
        assert not ClaudeChatService(_settings(claude_api_key=None)).is_available()

    @pytest.mark.anyio
    async def test_chat_returns_model_text(self):
        service = ClaudeChatService(_settings())
        with chat_agent.override(model=_text_model(f"  {GOOD_EVALUATION}  ")):
            assert await service.chat("evaluate") == GOOD_EVALUATION

    @pytest.mark.anyio
    async def test_chat_without_key_is_unavailable(self):
        service = ClaudeChatService(_settings(claude_api_key=None))
        with pytest.raises(ServiceUnavailableError):
            await service.chat("evaluate")

    @pytest.mark.anyio
    async def test_chat_retries_then_fails(self):
        calls = []

        def broken(messages, info: AgentInfo):
            calls.append(1)
            raise RuntimeError("connection reset")

        service = ClaudeChatService(_settings(ai_max_retries=2))
        with chat_agent.override(model=FunctionModel(broken)):
            with pytest.raises(CallFailureError):
                await service.chat("evaluate")
        assert len(calls) == 3

    @pytest.mark.anyio
    async def test_chat_recovers_on_retry(self):
        calls = []

        def flaky(messages, info: AgentInfo):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("overloaded")
            return ModelResponse(parts=[TextPart(content="Looks good for you.")])

        service = ClaudeChatService(_settings(ai_max_retries=1))
        with chat_agent.override(model=FunctionModel(flaky)):
            assert await service.chat("evaluate") == "Looks good for you."

    @pytest.mark.anyio
    async def test_empty_reply_is_a_failure(self):
        service = ClaudeChatService(_settings())
        with chat_agent.override(model=_text_model("   ")):
            with pytest.raises(CallFailureError):
                await service.chat("evaluate")

    @pytest.mark.anyio
    async def test_deadline_expiry_is_a_call_failure(self):
        async def slow(messages, info: AgentInfo):
            await asyncio.sleep(1)
            return ModelResponse(parts=[TextPart(content="too late")])

        service = ClaudeChatService(_settings(ai_timeout_s=0.01))
        with chat_agent.override(model=FunctionModel(slow)):
            with pytest.raises(CallFailureError):
                await service.chat("evaluate")

            result = await InsightService(service).evaluate_product("Cream", "normal")
        assert result.fit_score == 65
        assert result.verdict == Verdict.CAUTION

    @pytest.mark.anyio
    async def test_stream_yields_chunks(self):
        async def stream_reply(messages, info: AgentInfo):
            for piece in ('{"fitScore": ', "72, ", '"verdict": "good"}'):
                yield piece

        service = ClaudeChatService(_settings())
        with chat_agent.override(model=FunctionModel(stream_function=stream_reply)):
            text = await collect_stream(service.stream("evaluate"))
        assert json.loads(text) == {"fitScore": 72, "verdict": "good"}

    @pytest.mark.anyio
    async def test_retry_backoff_doubles(self, monkeypatch):
        delays = []
        real_sleep = asyncio.sleep

        async def record_sleep(delay, *args, **kwargs):
            delays.append(delay)
            await real_sleep(0)

        def broken(messages, info: AgentInfo):
            raise RuntimeError("overloaded")

        monkeypatch.setattr(asyncio, "sleep", record_sleep)
        service = ClaudeChatService(_settings(ai_max_retries=3, ai_retry_delay_s=0.5))
        with chat_agent.override(model=FunctionModel(broken)):
            with pytest.raises(CallFailureError):
                await service.chat("evaluate")
        assert [d for d in delays if d] == [0.5, 1.0, 2.0]

    @pytest.mark.anyio
    async def test_stream_deadline_covers_whole_stream(self):
        async def slow_stream(messages, info: AgentInfo):
            for piece in ("a", "b", "c", "d", "e", "f"):
                await asyncio.sleep(0.04)
                yield piece

        # each chunk arrives well inside 2 * 0.05s, the whole stream does not
        service = ClaudeChatService(_settings(ai_timeout_s=0.05))
        with chat_agent.override(model=FunctionModel(stream_function=slow_stream)):
            with pytest.raises(CallFailureError):
                await collect_stream(service.stream("evaluate"))

    @pytest.mark.anyio
    async def test_end_to_end_evaluation(self):
        service = InsightService(ClaudeChatService(_settings()))
        with chat_agent.override(model=_text_model(f"Evaluation:\n{GOOD_EVALUATION}\nEnjoy!")):
            result = await service.evaluate_product("CeraVe Cream", "dry", ["hydrate"])
        assert result.fit_score == 88
        assert result.verdict == Verdict.GREAT


# ── Service monitor ─────────────────────────────────────────────────────────


class TestServiceMonitor:
    @pytest.mark.anyio
    async def test_available(self):
        monitor = ServiceMonitor(FakeChat(reply="ok"))
        status = await monitor.check_service_status()
        assert status.available
        assert status.error is None
        assert status.response_time_ms is not None
        assert monitor.is_available()

    @pytest.mark.anyio
    async def test_unavailable(self):
        monitor = ServiceMonitor(FakeChat(error=RuntimeError("502 Bad Gateway")))
        status = await monitor.check_service_status()
        assert not status.available
        assert "502" in status.error

    @pytest.mark.anyio
    async def test_not_configured(self):
        chat = FakeChat(available=False)
        status = await ServiceMonitor(chat).check_service_status()
        assert not status.available
        assert chat.prompts == []

    @pytest.mark.anyio
    async def test_start_and_stop(self):
        chat = FakeChat(reply="ok")
        monitor = ServiceMonitor(chat, interval_s=0.01)
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()
        assert chat.prompts
        assert monitor.get_status().available

    @pytest.mark.anyio
    async def test_zero_interval_disables_periodic_checks(self):
        chat = FakeChat(reply="ok")
        monitor = ServiceMonitor(chat, interval_s=0)
        monitor.start()
        await asyncio.sleep(0.02)
        await monitor.stop()
        assert chat.prompts == []
        assert not monitor.get_status().available
