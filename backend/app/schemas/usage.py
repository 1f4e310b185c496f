"""
Inkwell Backend - Usage Ledger Schemas
========================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import CamelModel

HUMANIZE_ACTION = "humanize_text"
DETECT_ACTION = "detect_ai"


class UsageEventCreate(BaseModel):
    """One processing attempt, successful or not."""
    account_id: int
    action: str
    input_length: int
    output_length: Optional[int] = None
    processing_time: Optional[int] = None
    successful: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UsageEventRecord(UsageEventCreate):
    id: int
    created_at: datetime


class UsageTotals(CamelModel):
    humanize: int = 0
    detect: int = 0
    input_chars: int = 0
    output_chars: int = 0


class UsageLogItem(CamelModel):
    id: int
    action: str
    input_length: int
    output_length: Optional[int] = None
    processing_time: Optional[int] = None
    successful: bool
    timestamp: datetime


class UsageSummary(CamelModel):
    total: UsageTotals = Field(default_factory=UsageTotals)
    logs: List[UsageLogItem] = Field(default_factory=list)


class UsageResponse(CamelModel):
    success: bool = True
    usage: UsageSummary
