"""
Inkwell Backend - Plan Policy
===============================

What:  Maps a plan name to its word quota and price.
How:   Static lookup over the immutable plan table from Settings.
Who:   Processing orchestrator (quota), payment flow (price), registration
       (plan validation), payment guard (Free tier exemption).
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from app.config import PlanDefinition
from app.exceptions import UnknownPlanError

FREE_PLAN = "Free"


class PlanPolicy:
    """Read-only view over the configured plan definitions."""

    def __init__(self, plans: Mapping[str, PlanDefinition]):
        self._plans = MappingProxyType(dict(plans))

    def get(self, plan: Optional[str]) -> PlanDefinition:
        if plan is None or plan not in self._plans:
            raise UnknownPlanError(plan)
        return self._plans[plan]

    def limit_for(self, plan: Optional[str]) -> int:
        return self.get(plan).word_limit

    def price_for(self, plan: Optional[str]) -> int:
        return self.get(plan).price

    def exists(self, plan: Optional[str]) -> bool:
        return plan is not None and plan in self._plans

    @property
    def names(self) -> Iterable[str]:
        return tuple(self._plans.keys())

    def is_payment_exempt(self, plan: Optional[str]) -> bool:
        """Free accounts never need a completed payment."""
        return plan == FREE_PLAN
