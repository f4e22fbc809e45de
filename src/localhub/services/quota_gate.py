"""Quota Gate — may this business's assistant answer one more query?

The check never changes state. Usage is consumed only after a successful
model reply, via ``UsageStore.increment_usage``.
"""

import logging

from localhub.domain.ports import UsageStore
from localhub.domain.schemas import QuotaCheck

logger = logging.getLogger(__name__)


class QuotaGate:
    def __init__(self, usage_store: UsageStore):
        self.usage_store = usage_store

    async def check_and_reserve(self, business_id: str) -> QuotaCheck:
        """Report whether one more query fits in the monthly allowance.

        Unlimited agents always pass and report ``limit=None``. A business
        with no agent row passes with nothing metered; the config check that
        follows turns it away.
        """
        snapshot = await self.usage_store.get_usage(business_id)
        if snapshot is None:
            logger.info("Quota check: no agent configured for business %s", business_id)
            return QuotaCheck(can_proceed=True, used=0, limit=None)

        if snapshot.allowance.is_unlimited:
            return QuotaCheck(can_proceed=True, used=snapshot.used, limit=None)

        limit = snapshot.allowance.limit
        can_proceed = snapshot.used < limit
        if not can_proceed:
            logger.info(
                "Quota exhausted for business %s: used=%d limit=%d",
                business_id, snapshot.used, limit,
            )
        return QuotaCheck(can_proceed=can_proceed, used=snapshot.used, limit=limit)
