"""
Audit pipeline — cutoff, inactive users, license filter, report.
Stateless: every call starts from the directory's current contents.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import AuditPolicy, FetchConfig, ProbeConfig
from .cutoff import compute_cutoff
from .exporter import DEFAULT_TITLE, ReportExporter
from .fetcher import InactiveUserFetcher
from .interfaces import Clock, DirectoryQueryService, EntitlementService, TabularSink
from .license_filter import LicenseFilter
from .models import AuditSummary

logger = logging.getLogger("workspace_license_audit.audit")


async def run_audit(
    policy: AuditPolicy,
    directory: DirectoryQueryService,
    entitlements: EntitlementService,
    sink: TabularSink,
    clock: Optional[Clock] = None,
    fetch_config: Optional[FetchConfig] = None,
    probe_config: Optional[ProbeConfig] = None,
    title: str = DEFAULT_TITLE,
    sku_name: str = "",
) -> AuditSummary:
    """
    Run one audit pass and return the summary.

    Only ConfigurationError escapes; page, probe and export failures are
    reflected in the summary counts.
    """
    policy.validate()
    fetch_config = fetch_config or FetchConfig()
    probe_config = probe_config or ProbeConfig()

    cutoff = compute_cutoff(policy.inactivity_days, clock)
    logger.info(f"Auditing users inactive since: {cutoff.isoformat()}")

    fetcher = InactiveUserFetcher(
        directory,
        page_size=fetch_config.effective_page_size,
        max_pages=fetch_config.max_pages,
        include_never_logged_in=policy.include_never_logged_in,
    )
    fetched = await fetcher.fetch(cutoff)
    logger.info(f"Found {len(fetched.users)} inactive users.")

    license_filter = LicenseFilter(
        entitlements,
        max_concurrency=probe_config.max_concurrent_probes,
        sku_name=sku_name,
    )
    filtered = await license_filter.filter(fetched.users, policy.product_id, policy.sku_id)
    logger.info(f"Found {len(filtered.matches)} users with target license and inactive.")

    report = await ReportExporter(sink, title=title).export(filtered.matches)

    return AuditSummary(
        policy=policy,
        cutoff=cutoff,
        candidates_fetched=len(fetched.users),
        matched=filtered.matches,
        confirmed_absent=len(filtered.confirmed_absent),
        inconclusive=len(filtered.inconclusive),
        pagination_truncated=fetched.truncated,
        report=report,
        never_logged_in_excluded=fetched.never_logged_in_excluded,
    )
