"""
Enterprise License Manager API — single assignment lookups.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from ..audit.models import ProbeOutcome
from ..config import LICENSING_BASE_URL
from .client import GoogleAPIClient, GoogleAPIError

logger = logging.getLogger("workspace_license_audit.google.licensing")


class LicenseAssignmentService:
    """
    ``licenseAssignments.get`` as a tri-state probe.
    200 means assigned, 404 means not assigned. Any other status or a
    transport failure after retries is an error.
    """

    def __init__(self, client: GoogleAPIClient):
        self.client = client

    async def get_assignment(self, product_id: str, sku_id: str, user_id: str) -> ProbeOutcome:
        url = (
            f"{LICENSING_BASE_URL}/product/{quote(product_id, safe='')}"
            f"/sku/{quote(sku_id, safe='')}/user/{quote(user_id, safe='@')}"
        )
        try:
            data = await self.client.get(url)
        except (GoogleAPIError, httpx.HTTPError) as e:
            logger.debug(f"License lookup failed for {user_id}: {e}")
            return ProbeOutcome.ERROR

        if data.get("_not_found"):
            return ProbeOutcome.NOT_FOUND
        return ProbeOutcome.FOUND
