"""
Claude chat capability - the one outbound dependency of the insight core.

A model-less pydantic-ai agent is bound to an Anthropic model at run time, so
tests can swap the model with `chat_agent.override(model=FunctionModel(...))`
and nothing needs an API key at import.
"""

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Optional, Protocol

from anthropic import APIConnectionError
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.providers.anthropic import AnthropicProvider

from clearday.config import Settings
from clearday.errors import CallFailureError, ServiceUnavailableError

logger = logging.getLogger(__name__)


chat_agent = Agent(
    output_type=str,
    system_prompt=(
        "You are ClearDay, a knowledgeable and realistic skincare expert. "
        "When a request asks for JSON, reply with a single JSON object in the requested shape."
    ),
)


class ChatClient(Protocol):
    """What the insight service needs from a chat backend."""

    def is_available(self) -> bool: ...

    async def chat(self, prompt: str, model: Optional[str] = None) -> str: ...

    def stream(self, prompt: str, model: Optional[str] = None) -> AsyncIterator[str]: ...


def _log_connectivity_hint(error: Exception, context: str) -> None:
    if isinstance(error, APIConnectionError):
        logger.warning(f"Network error detected during {context} - Claude API may be unreachable")
    elif isinstance(error, ModelHTTPError) and error.status_code in (502, 503, 529):
        logger.warning(f"Claude API appears to be down during {context} (HTTP {error.status_code})")


async def collect_stream(chunks: AsyncIterable[str]) -> str:
    """Join a finite stream of text chunks into the full reply."""
    parts: list[str] = []
    async for chunk in chunks:
        parts.append(chunk)
    return "".join(parts)


class ClaudeChatService:
    """Chat capability backed by Claude, with deadline and retry handling."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.MODEL = settings.ai_model
        self._provider: Optional[AnthropicProvider] = None

    def is_available(self) -> bool:
        return bool(self.settings.claude_api_key)

    def _model(self, model: Optional[str]) -> AnthropicModel:
        if not self.is_available():
            raise ServiceUnavailableError("Claude API key is not configured")
        if self._provider is None:
            self._provider = AnthropicProvider(api_key=self.settings.claude_api_key)
        return AnthropicModel(model or self.MODEL, provider=self._provider)

    async def chat(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a prompt and return the reply text.

        Raises ServiceUnavailableError when no key is configured, and
        CallFailureError once every attempt has failed or timed out.
        """
        llm = self._model(model)
        attempts = self.settings.ai_max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                logger.info(
                    f"AI request (attempt {attempt}/{attempts}) | "
                    f"model: {model or self.MODEL} | prompt length: {len(prompt)}"
                )
                result = await asyncio.wait_for(
                    chat_agent.run(prompt, model=llm),
                    timeout=self.settings.ai_timeout_s,
                )
                text = (result.output or "").strip()
                if not text:
                    raise CallFailureError("Empty response from AI service")

                logger.info(f"AI response received | length: {len(text)}")
                return text

            except asyncio.TimeoutError as e:
                logger.error(f"AI request timed out after {self.settings.ai_timeout_s}s (attempt {attempt}/{attempts})")
                last_error = e
            except Exception as e:
                logger.error(f"AI generation error (attempt {attempt}/{attempts}): {str(e)}")
                _log_connectivity_hint(e, "chat")
                last_error = e

            if attempt < attempts:
                await asyncio.sleep(self.settings.ai_retry_delay_s * 2 ** (attempt - 1))

        raise CallFailureError(
            f"AI service unavailable after {attempts} attempts. Please try again later."
        ) from last_error

    async def stream(self, prompt: str, model: Optional[str] = None) -> AsyncIterator[str]:
        """Yield reply text as it arrives. The stream can only be consumed once."""
        llm = self._model(model)
        logger.info(f"AI stream request | model: {model or self.MODEL} | prompt length: {len(prompt)}")

        try:
            async with asyncio.timeout(self.settings.ai_timeout_s * 2):
                async with chat_agent.run_stream(prompt, model=llm) as result:
                    async for chunk in result.stream_text(delta=True):
                        if chunk:
                            yield chunk
        except TimeoutError as e:
            logger.error("AI streaming timeout")
            raise CallFailureError("AI streaming timeout. Please try again.") from e
        except Exception as e:
            logger.error(f"AI streaming error: {str(e)}")
            _log_connectivity_hint(e, "streaming")
            raise CallFailureError("Failed to stream AI response. Please try again.") from e
