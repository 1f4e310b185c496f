"""
Inkwell Backend - AI Detection Tests
======================================

What we test:
    ✅ Heuristic building blocks (indicators, repeated starts, uniformity)
    ✅ Jitter stays inside the multiplicative [0.85, 1.15] band
    ✅ human_score is exactly 100 - ai_score
    ✅ Sub-scores are clamped to [0, 100]
    ✅ External scorers are tried first and fall back to local scoring
"""

import random

import httpx
import pytest

from app.schemas.account import ApiKeys
from app.services.detector import (
    JITTER_HIGH,
    JITTER_LOW,
    LocalHeuristicDetector,
    ScoringDetector,
    base_score,
    count_indicators,
    count_repeated_starts,
    length_uniformity,
    split_sentences,
)
from app.services.http_client import JsonHttpClient
from app.services.scorers import CircuitBreaker, GPTZeroScorer, OriginalityScorer

REPETITIVE = "Furthermore, the system works. Furthermore, the system fails."
UNEVEN = "Short one. This sentence is quite a bit longer than the first."


class FixedJitter(random.Random):
    """Random whose uniform() always returns the given multiplier."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def uniform(self, a, b):
        return self.value


class TestHeuristicParts:

    def test_indicators_are_case_insensitive(self):
        text = "Furthermore, it works. THEREFORE, it ships. In conclusion, done."
        assert count_indicators(text) == 3

    def test_indicator_requires_trailing_comma(self):
        assert count_indicators("Furthermore it works") == 0

    def test_indicator_must_start_a_word(self):
        assert count_indicators("Plethus, nothing here") == 0

    def test_multiword_indicator(self):
        assert count_indicators("As a result, it failed. as a result, again.") == 2

    def test_sentence_split_drops_blanks(self):
        assert split_sentences("One.  Two!   Three?") == ["One.", "Two!", "Three?"]

    def test_repeated_starts(self):
        sentences = split_sentences("The cat sat. The dog ran. A bird flew. the end.")
        assert count_repeated_starts(sentences) == 2

    def test_uniform_lengths_score_zero(self):
        assert length_uniformity(split_sentences(REPETITIVE)) == 0.0

    def test_uniformity_is_coefficient_of_variation(self):
        # lengths 10 and 51: mean 30.5, population std-dev 20.5
        assert length_uniformity(split_sentences(UNEVEN)) == pytest.approx(20.5 / 30.5)

    def test_no_sentences(self):
        assert length_uniformity([]) == 0.0

    def test_base_score(self):
        assert base_score(REPETITIVE) == 100.0
        assert base_score(UNEVEN) == pytest.approx(100 - 20.5 / 30.5 * 100)


class TestLocalHeuristicDetector:

    def test_known_scores_with_fixed_jitter(self):
        outcome = LocalHeuristicDetector(FixedJitter(0.85)).score(REPETITIVE)
        assert outcome.ai_score == 85.0
        assert outcome.human_score == 15.0
        assert outcome.analysis == {
            "formal_language": 30.0,
            "repetitive_patterns": 20.0,
            "sentence_uniformity": 100.0,
        }
        assert outcome.source == "local"
        assert outcome.provider == "local"

    def test_score_is_clamped_to_100(self):
        outcome = LocalHeuristicDetector(FixedJitter(1.15)).score(REPETITIVE)
        assert outcome.ai_score == 100.0
        assert outcome.human_score == 0.0

    def test_sub_scores_are_clamped(self):
        text = " ".join(["Moreover, yes."] * 12)
        analysis = LocalHeuristicDetector(FixedJitter(1.0)).score(text).analysis
        assert analysis["formal_language"] == 100.0
        assert analysis["repetitive_patterns"] == 100.0
        assert all(0.0 <= value <= 100.0 for value in analysis.values())

    @pytest.mark.parametrize("seed", range(25))
    def test_jitter_band(self, seed):
        detector = LocalHeuristicDetector(random.Random(seed))
        base = base_score(UNEVEN)
        outcome = detector.score(UNEVEN)
        assert base * JITTER_LOW - 0.05 <= outcome.ai_score <= base * JITTER_HIGH + 0.05
        assert outcome.human_score == round(100 - outcome.ai_score, 1)

    def test_repeated_calls_stay_in_band(self):
        detector = LocalHeuristicDetector()
        first = detector.score(UNEVEN).ai_score
        second = detector.score(UNEVEN).ai_score
        base = base_score(UNEVEN)
        for score in (first, second):
            assert base * JITTER_LOW - 0.05 <= score <= base * JITTER_HIGH + 0.05


def _scorers(handler, calls):
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    http = JsonHttpClient(max_attempts=1, min_wait=0, max_wait=0, transport=httpx.MockTransport(recording))
    return (
        GPTZeroScorer(http, CircuitBreaker(name="gptzero")),
        OriginalityScorer(http, CircuitBreaker(name="originality")),
    )


class TestScoringDetector:

    @pytest.mark.asyncio
    async def test_no_keys_uses_local_without_network(self):
        calls = []
        gptzero, originality = _scorers(lambda r: httpx.Response(500), calls)
        detector = ScoringDetector(LocalHeuristicDetector(FixedJitter(1.0)), gptzero, originality)

        outcome = await detector.detect(UNEVEN, ApiKeys())

        assert outcome.source == "local"
        assert calls == []

    @pytest.mark.asyncio
    async def test_gptzero_preferred(self):
        calls = []

        def handler(request):
            return httpx.Response(
                200,
                json={"details": {"overall_probability": 80, "overall_humangenerated": False}},
            )

        gptzero, originality = _scorers(handler, calls)
        detector = ScoringDetector(LocalHeuristicDetector(), gptzero, originality)

        outcome = await detector.detect(UNEVEN, ApiKeys(gpt_zero="gz", originality="oa"))

        assert outcome.source == "external"
        assert outcome.provider == "gptzero"
        assert outcome.ai_score == 80.0
        assert outcome.human_score == 20.0
        assert len(calls) == 1
        assert calls[0].url.host == "api.gptzero.me"

    @pytest.mark.asyncio
    async def test_falls_back_to_originality_then_local(self):
        calls = []
        gptzero, originality = _scorers(lambda r: httpx.Response(503), calls)
        detector = ScoringDetector(LocalHeuristicDetector(FixedJitter(1.0)), gptzero, originality)

        outcome = await detector.detect(UNEVEN, ApiKeys(gpt_zero="gz", originality="oa"))

        assert outcome.source == "local"
        assert [c.url.host for c in calls] == ["api.gptzero.me", "api.originality.ai"]

    @pytest.mark.asyncio
    async def test_originality_used_when_only_key(self):
        calls = []
        gptzero, originality = _scorers(lambda r: httpx.Response(200, json={"ai_score": 0.42}), calls)
        detector = ScoringDetector(LocalHeuristicDetector(), gptzero, originality)

        outcome = await detector.detect(UNEVEN, ApiKeys(originality="oa"))

        assert outcome.provider == "originality"
        assert outcome.ai_score == 42.0
        assert outcome.human_score == 58.0
