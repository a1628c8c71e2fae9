"""
Collaborator contracts consumed by the audit pipeline.
Google-backed implementations live in the ``google`` and ``reporting``
packages; tests supply in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence

from .models import ProbeOutcome


@dataclass
class DirectoryPage:
    """One page of a directory listing."""
    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None


class DirectoryQueryService(Protocol):
    async def list_users(
        self,
        before: datetime,
        page_size: int,
        page_token: Optional[str] = None,
    ) -> DirectoryPage:
        ...


class EntitlementService(Protocol):
    async def get_assignment(
        self,
        product_id: str,
        sku_id: str,
        user_id: str,
    ) -> ProbeOutcome:
        ...


class TabularSink(Protocol):
    async def create(self, title: str) -> Any:
        ...

    async def append_header(self, handle: Any, columns: Sequence[str]) -> None:
        ...

    async def write_rows(self, handle: Any, rows: Sequence[Sequence[Any]]) -> None:
        ...

    def locator_of(self, handle: Any) -> str:
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
