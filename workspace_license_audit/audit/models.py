"""
Audit data models — Candidate and matched accounts, probe outcomes,
and the per-stage results handed down the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# Directory API reports accounts that never signed in with the Unix epoch
NEVER_LOGGED_IN_PREFIX = "1970-01-01"

REPORT_HEADER = ["Name", "Email", "LastLoginTime", "CreationTime", "Suspended"]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by Google APIs."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CandidateUser:
    """An account whose last login is older than the cutoff."""
    email: str                              # Identity key (primaryEmail)
    full_name: str = ""
    last_login_time: Optional[str] = None   # None = never logged in
    creation_time: Optional[str] = None
    suspended: bool = False
    user_id: str = ""                       # Immutable directory ID

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "CandidateUser":
        """Build from a Directory API user resource."""
        last_login = record.get("lastLoginTime")
        if not last_login or last_login.startswith(NEVER_LOGGED_IN_PREFIX):
            last_login = None
        name = record.get("name") or {}
        return cls(
            email=record.get("primaryEmail", ""),
            full_name=name.get("fullName", ""),
            last_login_time=last_login,
            creation_time=record.get("creationTime"),
            suspended=bool(record.get("suspended", False)),
            user_id=record.get("id", ""),
        )

    @property
    def never_logged_in(self) -> bool:
        return self.last_login_time is None

    @property
    def last_login_at(self) -> Optional[datetime]:
        return parse_timestamp(self.last_login_time)


class ProbeOutcome(str, Enum):
    """Result of a single license-assignment existence probe."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class MatchedUser:
    """An inactive account holding the audited license. One report row."""
    user: CandidateUser
    product_id: str
    sku_id: str
    sku_name: str = ""

    def to_row(self) -> list:
        return [
            self.user.full_name,
            self.user.email,
            self.user.last_login_time or "Never",
            self.user.creation_time or "",
            self.user.suspended,
        ]


@dataclass
class FetchResult:
    """Candidates retrieved from the directory, possibly truncated."""
    users: list[CandidateUser] = field(default_factory=list)
    pages_fetched: int = 0
    error: Optional[Exception] = None
    never_logged_in_excluded: int = 0
    out_of_range_dropped: int = 0
    capped: bool = False                    # stopped at max_pages with a page pending

    @property
    def truncated(self) -> bool:
        return self.error is not None or self.capped


@dataclass
class FilterResult:
    """Candidates split by probe outcome, in input order."""
    matches: list[MatchedUser] = field(default_factory=list)
    confirmed_absent: list[str] = field(default_factory=list)
    inconclusive: list[str] = field(default_factory=list)


@dataclass
class ReportHandle:
    """Where the report went, or why it did not."""
    status: str                             # created, no_matches, failed
    locator: str = ""
    row_count: int = 0
    error: Optional[Exception] = None

    @property
    def created(self) -> bool:
        return self.status == "created"

    def describe(self) -> str:
        if self.status == "created":
            return f"Report written ({self.row_count} rows): {self.locator}"
        if self.status == "no_matches":
            return "No matching users found; no report created."
        return f"Report export failed: {self.error}"


@dataclass
class AuditSummary:
    """User-visible outcome of a run."""
    policy: Any
    cutoff: datetime
    candidates_fetched: int
    matched: list[MatchedUser]
    confirmed_absent: int
    inconclusive: int
    pagination_truncated: bool
    report: ReportHandle
    never_logged_in_excluded: int = 0

    @property
    def partial_failure(self) -> bool:
        return (
            self.pagination_truncated
            or self.inconclusive > 0
            or self.report.status == "failed"
        )

    def to_dict(self) -> dict:
        return {
            "policy": {
                "inactivity_days": self.policy.inactivity_days,
                "product_id": self.policy.product_id,
                "sku_id": self.policy.sku_id,
                "include_never_logged_in": self.policy.include_never_logged_in,
            },
            "cutoff": self.cutoff.isoformat(),
            "counts": {
                "candidates_fetched": self.candidates_fetched,
                "matched": len(self.matched),
                "confirmed_absent": self.confirmed_absent,
                "inconclusive": self.inconclusive,
                "never_logged_in_excluded": self.never_logged_in_excluded,
            },
            "pagination_truncated": self.pagination_truncated,
            "partial_failure": self.partial_failure,
            "report": {
                "status": self.report.status,
                "locator": self.report.locator,
                "row_count": self.report.row_count,
                "error": str(self.report.error) if self.report.error else None,
            },
            "matches": [dict(zip(REPORT_HEADER, m.to_row())) for m in self.matched],
        }
