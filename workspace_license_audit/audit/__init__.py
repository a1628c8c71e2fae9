from .models import (
    CandidateUser,
    MatchedUser,
    ProbeOutcome,
    FetchResult,
    FilterResult,
    ReportHandle,
    AuditSummary,
    REPORT_HEADER,
)
from .interfaces import DirectoryPage, SystemClock
from .cutoff import compute_cutoff
from .fetcher import InactiveUserFetcher, PaginationError
from .license_filter import LicenseFilter
from .exporter import ReportExporter, ExportError
from .pipeline import run_audit

__all__ = [
    "CandidateUser",
    "MatchedUser",
    "ProbeOutcome",
    "FetchResult",
    "FilterResult",
    "ReportHandle",
    "AuditSummary",
    "REPORT_HEADER",
    "DirectoryPage",
    "SystemClock",
    "compute_cutoff",
    "InactiveUserFetcher",
    "PaginationError",
    "LicenseFilter",
    "ReportExporter",
    "ExportError",
    "run_audit",
]
