"""
Inkwell Backend - Humanizer Implementations
=============================================

What:  Rewrites text so it reads less like generated prose.
How:   RuleBasedHumanizer runs locally (phrase substitutions plus occasional
       conversational touches). RemoteHumanizer asks an external generation
       API and is selected when HUMANIZER_API_URL is configured.
Who:   ProcessingService.humanize()
"""

import logging
import random
import re
import uuid
from typing import List, Optional, Tuple

import httpx

from app.config import Settings
from app.exceptions import UpstreamServiceError
from app.services.http_client import JsonHttpClient
from app.services.scorers import CircuitBreaker
from app.services.transform_base import Humanizer

logger = logging.getLogger(__name__)

# (formal, conversational); matched case-sensitively on word boundaries
FORMAL_TO_CONVERSATIONAL: List[Tuple[str, str]] = [
    ("utilize", "use"),
    ("commence", "start"),
    ("terminate", "end"),
    ("obtain", "get"),
    ("undertake", "do"),
    ("purchase", "buy"),
    ("require", "need"),
    ("subsequently", "later"),
    ("prior to", "before"),
    ("due to the fact that", "because"),
    ("in the event that", "if"),
    ("for the purpose of", "to"),
    ("in order to", "to"),
    ("a number of", "several"),
    ("the majority of", "most"),
    ("a significant number of", "many"),
    ("at this point in time", "now"),
    ("in close proximity to", "near"),
]

FILLERS = ["well, ", "you know, ", "I think ", "honestly, ", "basically, "]

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_SUBSTITUTIONS = [
    (re.compile(r"\b" + re.escape(formal) + r"\b"), casual)
    for formal, casual in FORMAL_TO_CONVERSATIONAL
]


class RuleBasedHumanizer(Humanizer):
    """
    Local, dependency-free humanizer.

    The random touches use `rng`; pass a seeded random.Random to make the
    output reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def humanize(self, text: str) -> str:
        humanized = self.substitute(text)
        humanized = " ".join(self._add_filler(s) for s in _SENTENCE_BOUNDARY.split(humanized))
        return self._add_exclamation(humanized)

    @staticmethod
    def substitute(text: str) -> str:
        for pattern, replacement in _SUBSTITUTIONS:
            text = pattern.sub(replacement, text)
        return text

    def _add_filler(self, sentence: str) -> str:
        if self.rng.random() <= 0.7:
            return sentence
        filler = self.rng.choice(FILLERS)
        if self.rng.random() > 0.5 and len(sentence) > 10:
            return filler.capitalize() + sentence[0].lower() + sentence[1:]
        return sentence

    def _add_exclamation(self, text: str) -> str:
        if self.rng.random() <= 0.7:
            return text
        parts = text.split(". ")
        if len(parts) <= 3:
            return text
        index = self.rng.randrange(len(parts) - 1)
        merged = parts[index] + "! " + parts[index + 1]
        return ". ".join(parts[:index] + [merged] + parts[index + 2:])


class RemoteHumanizer(Humanizer):
    """
    Delegates rewriting to an external generation API.

    Request:  {prompt, model, temperature, max_tokens}, Bearer auth
    Response: {"text": "..."}
    """

    PROMPT = (
        "Rewrite the following text to sound more natural and human-like, "
        "while preserving the meaning: {text}"
    )

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        temperature: float,
        http: JsonHttpClient,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.http = http
        self.circuit_breaker = breaker or CircuitBreaker(name="humanizer")

    async def humanize(self, text: str) -> str:
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        payload = {
            "prompt": self.PROMPT.format(text=text),
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": 2000,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            data = await self.http.post_json(self.url, payload, headers)
            result = data["text"]
            if not isinstance(result, str) or not result.strip():
                raise ValueError("empty text in humanizer response")
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Remote humanizer failed: %s: %s", request_id, type(e).__name__, e)
            raise UpstreamServiceError(
                message=f"Humanizer service failed: {type(e).__name__}",
                provider="humanizer",
                context={"request_id": request_id},
            )

        self.circuit_breaker.record_success()
        logger.info("[%s] Remote humanizer returned %d chars", request_id, len(result))
        return result


def build_humanizer(
    config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Humanizer:
    if not config.humanizer_api_url:
        return RuleBasedHumanizer()
    logger.info("Using remote humanizer at %s", config.humanizer_api_url)
    return RemoteHumanizer(
        url=config.humanizer_api_url,
        api_key=config.humanizer_api_key,
        model=config.humanizer_model,
        temperature=config.humanizer_temperature,
        http=JsonHttpClient.from_settings(config, transport),
        breaker=CircuitBreaker(
            failure_threshold=config.cb_failure_threshold,
            recovery_timeout=config.cb_recovery_timeout,
            name="humanizer",
        ),
    )
