"""
Inkwell Backend - Outbound JSON HTTP Client
=============================================

What:  Small wrapper over httpx.AsyncClient used by the external scorers and
       the remote humanizer.
How:   Every call is bounded by an httpx timeout and retried by tenacity on
       transport errors (connect failures, timeouts, dropped connections)
       with exponential backoff plus jitter. HTTP status errors are not
       retried: a 401 for a bad per-account key will not heal by itself.

Tests pass an httpx.MockTransport via `transport=`.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings

logger = logging.getLogger(__name__)


class JsonHttpClient:

    def __init__(
        self,
        timeout: float = 10.0,
        max_attempts: int = 2,
        min_wait: float = 0.5,
        max_wait: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = httpx.Timeout(timeout)
        # httpx bounds each connect/read/write step; this bounds the whole attempt
        self.deadline = timeout
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._transport = transport

    @classmethod
    def from_settings(
        cls, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "JsonHttpClient":
        return cls(
            timeout=config.scorer_timeout_seconds,
            max_attempts=config.retry_max_attempts,
            min_wait=config.retry_min_wait,
            max_wait=config.retry_max_wait,
            transport=transport,
        )

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON response.

        Raises:
            httpx.TransportError: still failing after the last attempt
            httpx.HTTPStatusError: non-2xx response
            ValueError: response body is not JSON
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                multiplier=self.min_wait,
                max=self.max_wait,
                jitter=self.min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._post_within_deadline(url, payload, headers or {})
        raise RuntimeError("unreachable")  # pragma: no cover

    async def _post_within_deadline(
        self, url: str, payload: Dict[str, Any], headers: Dict[str, str]
    ) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(
                self._post_once(url, payload, headers), timeout=self.deadline
            )
        except asyncio.TimeoutError:
            # Surfaces as a transport error so it is retried and counted like one
            raise httpx.TimeoutException(
                f"POST {url} exceeded the {self.deadline:.1f}s deadline"
            )

    async def _post_once(
        self, url: str, payload: Dict[str, Any], headers: Dict[str, str]
    ) -> Dict[str, Any]:
        start_time = time.perf_counter()
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, json=payload, headers=headers)
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "POST %s → %d in %.0fms", url, response.status_code, duration_ms
        )
        response.raise_for_status()
        return response.json()
