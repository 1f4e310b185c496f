"""
Inkwell Backend - Processing Orchestrator
===========================================

What:  Runs the two paid text operations for an authenticated account and
       records every attempt in the usage ledger.
How:   Composes PlanPolicy (quota), a Humanizer / Detector (transform) and
       the AccountStore / UsageLedger (accounting).
Who:   Called by the /humanize_text and /detect_ai route handlers, after the
       auth gate and payment guard have admitted the request.

Humanize Flow:
    ┌──────────┐    ┌──────────────┐    ┌─────────────┐    ┌──────────────┐
    │  Reject  │───▶│  Quota       │───▶│  Humanizer  │───▶│  Accounting  │
    │  blank   │    │  truncation  │    │  (timed)    │    │  best-effort │
    └──────────┘    └──────────────┘    └─────────────┘    └──────────────┘

Accounting Failures:
    The words_used increment and the ledger append are separate writes.
    Each is wrapped on its own; a failure is logged at WARNING with the
    account id and never changes the response.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

from app.exceptions import ProcessingError, ValidationError
from app.plans import PlanPolicy
from app.repositories.base import AccountStore, UsageLedger
from app.schemas.account import AccountRecord
from app.schemas.processing import (
    DetectionScores,
    DetectResponse,
    HumanizeResponse,
    PlanSnapshot,
)
from app.schemas.usage import DETECT_ACTION, HUMANIZE_ACTION, UsageEventCreate
from app.services.transform_base import Detector, Humanizer

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def apply_word_limit(text: str, limit: int) -> Tuple[str, int, bool]:
    """
    Truncate to at most `limit` whitespace-delimited words.

    Returns:
        (processed_text, word_count, limit_exceeded). Text within the limit
        is returned unchanged, whitespace included.
    """
    words = text.split()
    if len(words) <= limit:
        return text, len(words), False
    return " ".join(words[:limit]), len(words), True


class ProcessingService:
    """
    Orchestrates humanize/detect for one account.

    Responsibilities:
        - humanize(): quota truncation, transform, words_used + ledger
        - detect(): external-or-local scoring, ledger
    """

    def __init__(
        self,
        accounts: AccountStore,
        ledger: UsageLedger,
        plans: PlanPolicy,
        humanizer: Humanizer,
        detector: Detector,
    ):
        self.accounts = accounts
        self.ledger = ledger
        self.plans = plans
        self.humanizer = humanizer
        self.detector = detector

    async def humanize(self, account: AccountRecord, text: Optional[str]) -> HumanizeResponse:
        """
        Raises:
            ValidationError: blank input (nothing is recorded)
            ProcessingError: the humanizer failed (a failed event is recorded)
        """
        if not text or not text.strip():
            raise ValidationError(message="No input text provided", field="input_text")

        word_limit = self.plans.limit_for(account.plan)
        processed, word_count, limit_exceeded = apply_word_limit(text, word_limit)
        if limit_exceeded:
            logger.info(
                "Account %s exceeded %s limit: %d > %d words, truncating",
                account.id,
                account.plan,
                word_count,
                word_limit,
            )

        start = time.perf_counter()
        try:
            result = await self.humanizer.humanize(processed)
        except Exception as e:
            duration = _elapsed_ms(start)
            detail = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.error("Humanize failed for account %s: %s", account.id, detail)
            await self._record(
                UsageEventCreate(
                    account_id=account.id,
                    action=HUMANIZE_ACTION,
                    input_length=len(text),
                    output_length=0,
                    processing_time=duration,
                    successful=False,
                    error=detail,
                    metadata={
                        "wordCount": word_count,
                        "limitExceeded": limit_exceeded,
                        "plan": account.plan,
                    },
                )
            )
            raise ProcessingError(message="Failed to humanize text", error=detail)
        duration = _elapsed_ms(start)

        try:
            await self.accounts.add_words_used(account.id, word_count)
        except Exception as e:
            logger.warning("Could not update words_used for account %s: %s", account.id, e)

        await self._record(
            UsageEventCreate(
                account_id=account.id,
                action=HUMANIZE_ACTION,
                input_length=len(text),
                output_length=len(result),
                processing_time=duration,
                successful=True,
                metadata={
                    "wordCount": word_count,
                    "limitExceeded": limit_exceeded,
                    "plan": account.plan,
                },
            )
        )

        return HumanizeResponse(
            result=result,
            processing_time=duration,
            limit_exceeded=limit_exceeded,
            plan=PlanSnapshot(name=account.plan, word_limit=word_limit, words_used=word_count),
        )

    async def detect(self, account: AccountRecord, text: Optional[str]) -> DetectResponse:
        """
        Raises:
            ValidationError: blank input
            ProcessingError: even the local scorer failed
        """
        if not text or not text.strip():
            raise ValidationError(message="No text provided", field="text")

        start = time.perf_counter()
        try:
            outcome = await self.detector.detect(text, account.api_keys)
        except Exception as e:
            duration = _elapsed_ms(start)
            detail = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.error("Detection failed for account %s: %s", account.id, detail)
            await self._record(
                UsageEventCreate(
                    account_id=account.id,
                    action=DETECT_ACTION,
                    input_length=len(text),
                    processing_time=duration,
                    successful=False,
                    error=detail,
                    metadata={"plan": account.plan},
                )
            )
            raise ProcessingError(message="Failed to detect AI content", error=detail)
        duration = _elapsed_ms(start)

        metadata: Dict[str, Any] = {
            "source": outcome.source,
            "provider": outcome.provider,
            "plan": account.plan,
        }
        await self._record(
            UsageEventCreate(
                account_id=account.id,
                action=DETECT_ACTION,
                input_length=len(text),
                processing_time=duration,
                successful=True,
                metadata=metadata,
            )
        )

        return DetectResponse(
            result=DetectionScores(
                ai_score=outcome.ai_score,
                human_score=outcome.human_score,
                analysis=outcome.analysis,
            ),
            source=outcome.source,
            provider=outcome.provider,
            processing_time=duration,
        )

    async def _record(self, event: UsageEventCreate) -> None:
        """Best-effort ledger append."""
        try:
            await self.ledger.append(event)
        except Exception as e:
            logger.warning(
                "Could not log %s usage for account %s: %s", event.action, event.account_id, e
            )
