from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from workspace_license_audit.audit.interfaces import DirectoryPage
from workspace_license_audit.audit.models import ProbeOutcome

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.value = now
        self.calls = 0

    def now(self) -> datetime:
        self.calls += 1
        return self.value


def make_user(index: int, last_login: Optional[str] = "2020-01-01T00:00:00.000Z", **extra: Any) -> dict:
    record = {
        "id": f"id-{index}",
        "primaryEmail": f"user{index}@example.com",
        "name": {"fullName": f"User {index}"},
        "lastLoginTime": last_login,
        "creationTime": "2019-01-01T00:00:00.000Z",
        "suspended": False,
    }
    record.update(extra)
    return record


class PagedDirectory:
    """Serves fixed pages; raises on the pages listed in ``fail_on``."""

    def __init__(self, pages: list[list[dict]], fail_on: Sequence[int] = ()) -> None:
        self.pages = pages
        self.fail_on = set(fail_on)
        self.calls: list[dict] = []

    async def list_users(self, before: datetime, page_size: int, page_token: Optional[str] = None) -> DirectoryPage:
        index = int(page_token) if page_token else 0
        self.calls.append({"before": before, "page_size": page_size, "page_token": page_token})
        if index + 1 in self.fail_on:
            raise ConnectionError(f"page {index + 1} unavailable")
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return DirectoryPage(items=self.pages[index], next_page_token=next_token)


class FilteringDirectory:
    """Single-page directory that applies the last-login filter like the real API."""

    def __init__(self, users: list[dict]) -> None:
        self.users = users

    async def list_users(self, before: datetime, page_size: int, page_token: Optional[str] = None) -> DirectoryPage:
        items = []
        for u in self.users:
            last = datetime.fromisoformat(u["lastLoginTime"].replace("Z", "+00:00"))
            if last < before:
                items.append(u)
        return DirectoryPage(items=items)


class FakeEntitlements:
    """Per-email outcomes; an exception instance is raised instead of returned."""

    def __init__(self, outcomes: dict[str, Any], default: ProbeOutcome = ProbeOutcome.NOT_FOUND) -> None:
        self.outcomes = outcomes
        self.default = default
        self.calls: list[tuple[str, str, str]] = []

    async def get_assignment(self, product_id: str, sku_id: str, user_id: str) -> ProbeOutcome:
        self.calls.append((product_id, sku_id, user_id))
        outcome = self.outcomes.get(user_id, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class MemorySink:
    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.fail_on = fail_on
        self.sheets: dict[str, list[list[Any]]] = {}
        self.write_calls = 0

    async def create(self, title: str) -> str:
        if self.fail_on == "create":
            raise PermissionError("sheets quota exhausted")
        self.sheets[title] = []
        return title

    async def append_header(self, handle: str, columns: Sequence[str]) -> None:
        self.sheets[handle].append(list(columns))

    async def write_rows(self, handle: str, rows: Sequence[Sequence[Any]]) -> None:
        if self.fail_on == "write":
            raise TimeoutError("write timed out")
        self.write_calls += 1
        self.sheets[handle].extend(list(r) for r in rows)

    def locator_of(self, handle: str) -> str:
        return f"memory://{handle}"
