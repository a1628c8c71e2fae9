"""
Inactive user retrieval.
Walks the directory listing page by page with a server-side
last-login filter and accumulates candidates in retrieval order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import MAX_PAGE_SIZE, MAX_PAGES
from .interfaces import DirectoryQueryService
from .models import CandidateUser, FetchResult

logger = logging.getLogger("workspace_license_audit.audit.fetcher")


class PaginationError(Exception):
    """A page request failed; candidates after that page are missing."""
    def __init__(self, page: int, cause: BaseException):
        self.page = page
        self.cause = cause
        super().__init__(
            f"Directory listing failed on page {page}: {type(cause).__name__}: {cause}"
        )


class InactiveUserFetcher:
    """
    Retrieves every account whose last login precedes the cutoff.

    Pagination is strictly sequential. A failing page ends the walk and
    the pages already read are returned as a partial result.
    """

    def __init__(
        self,
        directory: DirectoryQueryService,
        page_size: int = MAX_PAGE_SIZE,
        max_pages: int = MAX_PAGES,
        include_never_logged_in: bool = True,
    ):
        self.directory = directory
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.max_pages = max_pages
        self.include_never_logged_in = include_never_logged_in

    async def fetch(self, cutoff: datetime) -> FetchResult:
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        result = FetchResult()
        page_token: Optional[str] = None

        while result.pages_fetched < self.max_pages:
            page_number = result.pages_fetched + 1
            try:
                page = await self.directory.list_users(
                    before=cutoff,
                    page_size=self.page_size,
                    page_token=page_token,
                )
            except Exception as e:
                result.error = PaginationError(page_number, e)
                logger.error(
                    f"{result.error}. Continuing with {len(result.users)} "
                    f"candidates from {result.pages_fetched} page(s)."
                )
                return result

            result.pages_fetched = page_number
            for record in page.items:
                self._accept(record, cutoff, result)

            logger.debug(
                f"Page {page_number}: {len(page.items)} records "
                f"({len(result.users)} candidates so far)"
            )
            page_token = page.next_page_token
            if not page_token:
                break
        else:
            result.capped = True
            logger.warning(
                f"Pagination safety cap reached ({self.max_pages} pages); "
                f"results may be incomplete"
            )

        logger.info(
            f"Fetched {len(result.users)} inactive candidates "
            f"in {result.pages_fetched} page(s)"
        )
        return result

    def _accept(self, record: dict, cutoff: datetime, result: FetchResult) -> None:
        user = CandidateUser.from_api(record)
        if not user.email:
            logger.warning(f"Skipping directory record without primaryEmail: {record.get('id')}")
            return

        if user.never_logged_in:
            if not self.include_never_logged_in:
                result.never_logged_in_excluded += 1
                return
        else:
            last_login = user.last_login_at
            # The backend should already have applied the filter
            if last_login is not None and last_login >= cutoff:
                result.out_of_range_dropped += 1
                logger.debug(f"Dropping {user.email}: last login {user.last_login_time} is after cutoff")
                return

        result.users.append(user)
