"""
Inkwell Backend - Abstract Text Transform Interfaces
======================================================

What:  Contracts for the two text operations the API sells: rewriting text
       so it reads as human-written, and scoring how AI-like a text is.
How:   Concrete implementations inherit from Humanizer / Detector.
Who:   Called by ProcessingService; selected at app construction.

Implementations:
    - RuleBasedHumanizer: local phrase substitutions (default)
    - RemoteHumanizer: external generation API (HUMANIZER_API_URL)
    - LocalHeuristicDetector: deterministic scoring plus bounded jitter
    - ScoringDetector: per-account external scorers with local fallback
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from app.schemas.account import ApiKeys

LOCAL_SOURCE = "local"
EXTERNAL_SOURCE = "external"


@dataclass(frozen=True)
class DetectionOutcome:
    """
    Result of one detection run.

    Attributes:
        ai_score:    0-100, one decimal
        human_score: always round(100 - ai_score, 1)
        analysis:    provider-specific breakdown
        source:      "external" or "local"
        provider:    "gptzero", "originality" or "local"
    """
    ai_score: float
    human_score: float
    analysis: Dict[str, Any] = field(default_factory=dict)
    source: str = LOCAL_SOURCE
    provider: str = LOCAL_SOURCE


class Humanizer(ABC):
    """
    Rewrites text to read more naturally.

    Contract:
        - humanize() returns the transformed text (never None)
        - transport or provider failures surface as UpstreamServiceError
        - the caller has already applied quota truncation
    """

    @abstractmethod
    async def humanize(self, text: str) -> str:
        ...


class Detector(ABC):
    """
    Scores how likely a text is machine-generated.

    Contract:
        - detect() must not raise for external scorer failures; those fall
          back to local scoring inside the implementation
        - api_keys may be None (no per-account credentials)
    """

    @abstractmethod
    async def detect(self, text: str, api_keys: Optional[ApiKeys] = None) -> DetectionOutcome:
        ...
