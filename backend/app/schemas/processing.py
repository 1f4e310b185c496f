"""
Inkwell Backend - Text Processing Schemas
===========================================

What:  Request/response bodies for /echo_text, /humanize_text and /detect_ai.

Request field names (`input_text`, `text`) and the detection score keys
(`ai_score`, `human_score`) are snake_case on the wire, so those models
use plain BaseModel rather than CamelModel.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.schemas.common import CamelModel


class TextInput(BaseModel):
    input_text: Optional[str] = None


class DetectInput(BaseModel):
    text: Optional[str] = None


class EchoResponse(BaseModel):
    success: bool = True
    result: str


class PlanSnapshot(CamelModel):
    """Quota context of one humanize call. words_used counts this call only."""
    name: str
    word_limit: int
    words_used: int


class HumanizeResponse(CamelModel):
    success: bool = True
    result: str
    processing_time: int = Field(description="Transform duration in milliseconds")
    limit_exceeded: bool
    plan: PlanSnapshot


class DetectionScores(BaseModel):
    ai_score: float
    human_score: float
    analysis: Dict[str, Any] = Field(default_factory=dict)


class DetectResponse(CamelModel):
    success: bool = True
    result: DetectionScores
    source: str = Field(description="external or local")
    provider: str = Field(description="gptzero, originality or local")
    processing_time: int
