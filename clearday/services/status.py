"""
Service status monitor for the Claude chat capability.

Probes the capability with a tiny prompt and keeps the latest result so the
API can report whether AI insights are live or running on fallbacks.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from clearday.schemas import ServiceStatus
from clearday.services.claude import ChatClient

logger = logging.getLogger(__name__)

PROBE_PROMPT = "test"


class ServiceMonitor:
    def __init__(self, chat: ChatClient, interval_s: float = 30.0):
        self.chat = chat
        self.interval_s = interval_s
        self._status = ServiceStatus(available=False, last_checked=datetime.now())
        self._task: Optional[asyncio.Task] = None

    async def check_service_status(self) -> ServiceStatus:
        """Run one probe and record the outcome."""
        started = time.perf_counter()
        try:
            if not self.chat.is_available():
                raise RuntimeError("Claude API key is not configured")
            await self.chat.chat(PROBE_PROMPT)
            elapsed = (time.perf_counter() - started) * 1000
            self._status = ServiceStatus(
                available=True,
                last_checked=datetime.now(),
                response_time_ms=elapsed,
            )
            logger.info(f"AI service status: available | response time: {elapsed:.0f}ms")
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            self._status = ServiceStatus(
                available=False,
                last_checked=datetime.now(),
                error=str(e),
                response_time_ms=elapsed,
            )
            logger.warning(f"AI service status: unavailable | error: {str(e)} | response time: {elapsed:.0f}ms")
        return self.get_status()

    def get_status(self) -> ServiceStatus:
        return self._status.model_copy()

    def is_available(self) -> bool:
        return self._status.available

    async def _run(self) -> None:
        while True:
            await self.check_service_status()
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        """Start periodic checks on the running event loop. An interval of 0 disables them."""
        if self._task is not None:
            return
        if self.interval_s <= 0:
            logger.info("AI status monitor disabled")
            return
        logger.info(f"Starting AI status monitor every {self.interval_s}s")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
