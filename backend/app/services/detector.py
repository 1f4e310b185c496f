"""
Inkwell Backend - AI-Content Detection
========================================

What:  Scores how likely a text is machine-generated.
How:   ScoringDetector tries the account's external scorers (GPTZero first,
       then Originality) and falls back to LocalHeuristicDetector when no key
       is set or every external call fails.
Who:   ProcessingService.detect()

Local Heuristic:
    indicators = case-insensitive count of formal transition phrases
    repeated   = sentences whose first word already started a sentence
    uniformity = population std-dev / mean of sentence lengths

    base = min(100, indicators*10 + repeated*5 + (100 - uniformity*100))
    ai   = clamp(base * U(0.85, 1.15), 0, 100)

The multiplicative jitter is deliberate. It uses the non-cryptographic
`random` module and the score is not suitable for compliance auditing.
"""

import logging
import random
import re
import statistics
from typing import List, Optional, Tuple

import httpx

from app.config import Settings
from app.exceptions import UpstreamServiceError
from app.schemas.account import ApiKeys
from app.services.http_client import JsonHttpClient
from app.services.scorers import CircuitBreaker, GPTZeroScorer, OriginalityScorer
from app.services.transform_base import LOCAL_SOURCE, DetectionOutcome, Detector

logger = logging.getLogger(__name__)

AI_INDICATORS = [
    "furthermore,", "additionally,", "moreover,", "thus,", "therefore,",
    "consequently,", "hence,", "as a result,", "in conclusion,",
    "to summarize,", "in summary,",
]

JITTER_LOW = 0.85
JITTER_HIGH = 1.15

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
# The phrase must start a word; the trailing comma ends the match
_INDICATOR_PATTERNS = [
    re.compile(r"(?<!\w)" + re.escape(phrase), re.IGNORECASE) for phrase in AI_INDICATORS
]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def split_sentences(text: str) -> List[str]:
    return [s for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def count_indicators(text: str) -> int:
    return sum(len(pattern.findall(text)) for pattern in _INDICATOR_PATTERNS)


def count_repeated_starts(sentences: List[str]) -> int:
    starts = [s.split()[0].lower() for s in sentences]
    return len(starts) - len(set(starts))


def length_uniformity(sentences: List[str]) -> float:
    """Coefficient of variation of sentence lengths; lower is more uniform."""
    if not sentences:
        return 0.0
    lengths = [len(s) for s in sentences]
    mean = statistics.fmean(lengths)
    if mean == 0:
        return 0.0
    return statistics.pstdev(lengths) / mean


def _features(text: str) -> Tuple[int, int, float]:
    sentences = split_sentences(text)
    return count_indicators(text), count_repeated_starts(sentences), length_uniformity(sentences)


def base_score(text: str) -> float:
    """Heuristic score before jitter."""
    indicators, repeated, uniformity = _features(text)
    return min(100.0, indicators * 10 + repeated * 5 + (100 - uniformity * 100))


class LocalHeuristicDetector(Detector):

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def detect(self, text: str, api_keys: Optional[ApiKeys] = None) -> DetectionOutcome:
        return self.score(text)

    def score(self, text: str) -> DetectionOutcome:
        indicators, repeated, uniformity = _features(text)

        base = min(100.0, indicators * 10 + repeated * 5 + (100 - uniformity * 100))
        ai_score = round(_clamp(base * self.rng.uniform(JITTER_LOW, JITTER_HIGH)), 1)

        return DetectionOutcome(
            ai_score=ai_score,
            human_score=round(100 - ai_score, 1),
            analysis={
                "formal_language": round(_clamp(indicators * 15), 1),
                "repetitive_patterns": round(_clamp(repeated * 20), 1),
                "sentence_uniformity": round(_clamp((1 - uniformity) * 100), 1),
            },
            source=LOCAL_SOURCE,
            provider=LOCAL_SOURCE,
        )


class ScoringDetector(Detector):
    """
    External scorers first, local heuristic last.

    External failures of any kind (transport, HTTP status, bad payload,
    open circuit) are logged and never escape detect().
    """

    def __init__(
        self,
        local: LocalHeuristicDetector,
        gptzero: Optional[GPTZeroScorer] = None,
        originality: Optional[OriginalityScorer] = None,
    ):
        self.local = local
        self.gptzero = gptzero
        self.originality = originality

    async def detect(self, text: str, api_keys: Optional[ApiKeys] = None) -> DetectionOutcome:
        if api_keys is not None:
            attempts = [
                (self.gptzero, api_keys.gpt_zero),
                (self.originality, api_keys.originality),
            ]
            for scorer, key in attempts:
                if scorer is None or not key:
                    continue
                try:
                    return await scorer.score(text, key)
                except UpstreamServiceError as e:
                    logger.warning(
                        "%s scoring failed, trying next option: %s", scorer.provider, e.message
                    )
        return self.local.score(text)


def build_detector(
    config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> ScoringDetector:
    """One breaker per provider, shared by every account in this process."""
    http = JsonHttpClient.from_settings(config, transport)

    def breaker(name: str) -> CircuitBreaker:
        return CircuitBreaker(
            failure_threshold=config.cb_failure_threshold,
            recovery_timeout=config.cb_recovery_timeout,
            name=name,
        )

    return ScoringDetector(
        local=LocalHeuristicDetector(),
        gptzero=GPTZeroScorer(http, breaker(GPTZeroScorer.provider)),
        originality=OriginalityScorer(http, breaker(OriginalityScorer.provider)),
    )
