"""
License filter — keeps the candidates that hold a given product/SKU.

Each candidate gets its own existence probe. A confirmed negative and an
inconclusive probe are both excluded from the matches, but they are
counted and logged separately.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..config import MAX_CONCURRENT_REQUESTS
from .interfaces import EntitlementService
from .models import CandidateUser, FilterResult, MatchedUser, ProbeOutcome

logger = logging.getLogger("workspace_license_audit.audit.license_filter")


class LicenseFilter:
    """Stable filter over candidates using bounded concurrent probes."""

    def __init__(
        self,
        entitlements: EntitlementService,
        max_concurrency: int = MAX_CONCURRENT_REQUESTS,
        sku_name: str = "",
    ):
        self.entitlements = entitlements
        self.max_concurrency = max(1, max_concurrency)
        self.sku_name = sku_name

    async def filter(
        self,
        candidates: Sequence[CandidateUser],
        product_id: str,
        sku_id: str,
    ) -> FilterResult:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def probe(user: CandidateUser) -> ProbeOutcome:
            async with semaphore:
                return await self._probe(user, product_id, sku_id)

        # gather keeps input order regardless of completion order
        outcomes = await asyncio.gather(*(probe(u) for u in candidates))

        result = FilterResult()
        for user, outcome in zip(candidates, outcomes):
            if outcome is ProbeOutcome.FOUND:
                result.matches.append(MatchedUser(
                    user=user,
                    product_id=product_id,
                    sku_id=sku_id,
                    sku_name=self.sku_name,
                ))
            elif outcome is ProbeOutcome.NOT_FOUND:
                result.confirmed_absent.append(user.email)
            else:
                result.inconclusive.append(user.email)

        logger.info(
            f"License {product_id}/{sku_id}: {len(result.matches)} assigned, "
            f"{len(result.confirmed_absent)} not assigned, "
            f"{len(result.inconclusive)} inconclusive"
        )
        return result

    async def _probe(self, user: CandidateUser, product_id: str, sku_id: str) -> ProbeOutcome:
        try:
            outcome = await self.entitlements.get_assignment(product_id, sku_id, user.email)
        except Exception as e:
            logger.warning(
                f"Inconclusive license probe for {user.email}: {type(e).__name__}: {e}"
            )
            return ProbeOutcome.ERROR

        if outcome is ProbeOutcome.NOT_FOUND:
            logger.debug(f"{user.email}: {sku_id} not assigned")
        elif outcome is not ProbeOutcome.FOUND:
            logger.warning(f"Inconclusive license probe for {user.email}: service reported an error")
            return ProbeOutcome.ERROR
        return outcome
