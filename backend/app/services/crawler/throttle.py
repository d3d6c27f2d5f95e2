"""요청 간격 제한

동시에 여러 조회를 띄워도 실제 요청은 interval 간격으로 하나씩 나가게 한다.
"""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RequestThrottle:
    """최소 요청 간격 보장 (코루틴 간 공유 가능)"""

    def __init__(self, interval: float) -> None:
        self._interval = max(interval, 0.0)
        self._last_request_time: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    async def wait(self) -> None:
        """직전 요청 후 interval이 지날 때까지 대기"""
        if self._interval <= 0:
            return
        async with self._lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._interval:
                wait_time = self._interval - elapsed
                logger.debug("Rate limit 대기: %.2f초", wait_time)
                await asyncio.sleep(wait_time)
            self._last_request_time = time.monotonic()
