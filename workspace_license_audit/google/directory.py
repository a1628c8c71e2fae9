"""
Admin SDK Directory API — user listing filtered by last login.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..audit.interfaces import DirectoryPage
from ..config import DEFAULT_CUSTOMER, DIRECTORY_BASE_URL, MAX_PAGE_SIZE
from .client import GoogleAPIClient, GoogleAPIError

logger = logging.getLogger("workspace_license_audit.google.directory")


def last_login_query(before: datetime) -> str:
    """Directory search clause for accounts last seen before ``before``."""
    if before.tzinfo is not None:
        before = before.astimezone(timezone.utc)
    return f"lastLoginTime<{before.strftime('%Y-%m-%dT%H:%M:%S')}"


class DirectoryUsersService:
    """Pages through ``users.list`` for one customer."""

    def __init__(self, client: GoogleAPIClient, customer: str = DEFAULT_CUSTOMER):
        self.client = client
        self.customer = customer

    async def list_users(
        self,
        before: datetime,
        page_size: int = MAX_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> DirectoryPage:
        url = f"{DIRECTORY_BASE_URL}/users"
        params = {
            "customer": self.customer,
            "query": last_login_query(before),
            "maxResults": str(min(page_size, MAX_PAGE_SIZE)),
            "viewType": "admin_view",
            "projection": "basic",
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self.client.get(url, params=params)
        if data.get("_not_found"):
            raise GoogleAPIError(404, f"Customer {self.customer} not found", url)

        return DirectoryPage(
            items=data.get("users", []),
            next_page_token=data.get("nextPageToken") or None,
        )
