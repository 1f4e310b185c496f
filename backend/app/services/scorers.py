"""
Inkwell Backend - External AI-Detection Scorers
=================================================

What:  Clients for third-party AI-detection services keyed by per-account
       API keys (GPTZero, Originality.ai).
How:   JsonHttpClient handles timeouts and retries; each provider owns a
       circuit breaker shared by all accounts in the process.
Who:   ScoringDetector tries these before its local heuristic.

Resilience Strategy:
    1. httpx timeout bounds every call
    2. tenacity retries transport errors with backoff + jitter
    3. circuit breaker stops calling a provider that keeps failing
    4. every failure is raised as UpstreamServiceError, which the detector
       turns into a local fallback

Only provider-side trouble (transport errors, 5xx, unreadable bodies) counts
toward the breaker. A 4xx means the account's key was rejected; one user's
bad key must not switch the provider off for everyone else. Keys that
cannot travel in a header are refused before the breaker is consulted.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from app.exceptions import CircuitBreakerOpenError, UpstreamServiceError
from app.schemas.account import is_valid_api_key
from app.services.http_client import JsonHttpClient
from app.services.transform_base import EXTERNAL_SOURCE, DetectionOutcome

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters. Safe for a single-process asyncio server.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        name: str = "external",
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker [%s] transitioning to HALF_OPEN after %.1fs",
                    self.name,
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining, provider=self.name)

        # HALF_OPEN: allow the test request through
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker [%s] transitioning to CLOSED (service recovered)", self.name)
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker [%s] returning to OPEN (test request failed)", self.name)
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker [%s] OPENING after %d consecutive failures",
                self.name,
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Scorers
# ══════════════════════════════════════════════════════════════════════════

def _round1(value: float) -> float:
    return round(value, 1)


class ExternalScorer(ABC):
    """
    One third-party detection provider.

    Subclasses supply the endpoint, the auth header and the response
    mapping; the call/retry/breaker flow lives here.
    """

    provider: str = "external"
    url: str = ""
    key_header: str = ""

    def __init__(self, http: JsonHttpClient, breaker: CircuitBreaker):
        self.http = http
        self.circuit_breaker = breaker

    @abstractmethod
    def build_payload(self, text: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_response(self, data: Dict[str, Any]) -> DetectionOutcome:
        ...

    async def score(self, text: str, api_key: str) -> DetectionOutcome:
        """
        Score `text` with this provider using the account's key.

        Raises:
            CircuitBreakerOpenError: provider switched off after repeated failures
            UpstreamServiceError: call failed or the response was unusable
        """
        request_id = str(uuid.uuid4())[:8]
        # Malformed keys never reach the breaker or the network
        if not is_valid_api_key(api_key):
            logger.warning("[%s] %s key is not header-safe, skipping", request_id, self.provider)
            raise UpstreamServiceError(
                message=f"{self.provider} API key is malformed",
                provider=self.provider,
                context={"request_id": request_id},
            )
        self.circuit_breaker.can_execute()

        headers = {self.key_header: api_key, "Content-Type": "application/json"}
        try:
            data = await self.http.post_json(self.url, self.build_payload(text), headers)
            outcome = self.parse_response(data)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status >= 500:
                self.circuit_breaker.record_failure()
            logger.warning("[%s] %s returned HTTP %d", request_id, self.provider, status)
            raise UpstreamServiceError(
                message=f"{self.provider} rejected the request (HTTP {status})",
                provider=self.provider,
                context={"request_id": request_id, "status": status},
            )
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.warning("[%s] %s unreachable: %s", request_id, self.provider, e)
            raise UpstreamServiceError(
                message=f"{self.provider} is unreachable",
                provider=self.provider,
                context={"request_id": request_id, "error_type": type(e).__name__},
            )
        except (KeyError, TypeError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.warning("[%s] %s sent an unreadable response: %s", request_id, self.provider, e)
            raise UpstreamServiceError(
                message=f"{self.provider} returned an unexpected response",
                provider=self.provider,
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        logger.info("[%s] %s scored text: ai_score=%.1f", request_id, self.provider, outcome.ai_score)
        return outcome


class GPTZeroScorer(ExternalScorer):
    provider = "gptzero"
    url = "https://api.gptzero.me/v1/predict"
    key_header = "X-API-Key"

    def build_payload(self, text: str) -> Dict[str, Any]:
        return {"document": text}

    def parse_response(self, data: Dict[str, Any]) -> DetectionOutcome:
        details = data["details"]
        probability = float(details["overall_probability"])
        # overall_probability describes the human side when the
        # document is flagged as human generated
        ai_score = 100 - probability if details.get("overall_humangenerated") else probability
        ai_score = _round1(min(100.0, max(0.0, ai_score)))
        return DetectionOutcome(
            ai_score=ai_score,
            human_score=_round1(100 - ai_score),
            analysis=dict(details),
            source=EXTERNAL_SOURCE,
            provider=self.provider,
        )


class OriginalityScorer(ExternalScorer):
    provider = "originality"
    url = "https://api.originality.ai/api/v1/scan"
    key_header = "X-OAI-Key"

    def build_payload(self, text: str) -> Dict[str, Any]:
        return {"content": text}

    def parse_response(self, data: Dict[str, Any]) -> DetectionOutcome:
        # ai_score is a 0-1 fraction
        ai_score = _round1(min(100.0, max(0.0, float(data["ai_score"]) * 100)))
        return DetectionOutcome(
            ai_score=ai_score,
            human_score=_round1(100 - ai_score),
            analysis=dict(data),
            source=EXTERNAL_SOURCE,
            provider=self.provider,
        )
