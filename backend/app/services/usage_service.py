"""
Inkwell Backend - Usage Query
===============================

Totals and recent history for one account. A ledger outage degrades to a
zeroed summary instead of failing the request.
"""

import logging

from app.repositories.base import UsageLedger
from app.schemas.usage import (
    DETECT_ACTION,
    HUMANIZE_ACTION,
    UsageLogItem,
    UsageResponse,
    UsageSummary,
    UsageTotals,
)

logger = logging.getLogger(__name__)

MAX_RECENT_EVENTS = 100


class UsageService:

    def __init__(self, ledger: UsageLedger):
        self.ledger = ledger

    async def summary(self, account_id: int, limit: int = MAX_RECENT_EVENTS) -> UsageResponse:
        limit = max(1, min(limit, MAX_RECENT_EVENTS))
        try:
            events = await self.ledger.find_recent(account_id, limit)
            totals = UsageTotals(
                humanize=await self.ledger.count_by_action(account_id, HUMANIZE_ACTION),
                detect=await self.ledger.count_by_action(account_id, DETECT_ACTION),
                input_chars=await self.ledger.sum_length(account_id, "input"),
                output_chars=await self.ledger.sum_length(account_id, "output"),
            )
        except Exception as e:
            logger.warning("Could not read usage for account %s: %s", account_id, e)
            return UsageResponse(usage=UsageSummary())

        return UsageResponse(
            usage=UsageSummary(
                total=totals,
                logs=[
                    UsageLogItem(
                        id=event.id,
                        action=event.action,
                        input_length=event.input_length,
                        output_length=event.output_length,
                        processing_time=event.processing_time,
                        successful=event.successful,
                        timestamp=event.created_at,
                    )
                    for event in events
                ],
            )
        )
