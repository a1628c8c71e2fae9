"""
Report exporter — Materializes matched users into a tabular sink.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .interfaces import TabularSink
from .models import REPORT_HEADER, MatchedUser, ReportHandle

logger = logging.getLogger("workspace_license_audit.audit.exporter")

DEFAULT_TITLE = "Inactive Licensed Users Audit"


class ExportError(Exception):
    """The report artifact could not be created or written."""
    pass


class ReportExporter:
    """
    Writes a header row and all matches to a new artifact.
    Rows go out in a single bulk write.
    """

    def __init__(self, sink: TabularSink, title: str = DEFAULT_TITLE):
        self.sink = sink
        self.title = title

    async def export(self, matches: Sequence[MatchedUser]) -> ReportHandle:
        if not matches:
            logger.info("No matching users found; skipping report creation.")
            return ReportHandle(status="no_matches")

        rows = [m.to_row() for m in matches]
        try:
            handle = await self.sink.create(self.title)
            await self.sink.append_header(handle, REPORT_HEADER)
            await self.sink.write_rows(handle, rows)
            locator = self.sink.locator_of(handle)
        except Exception as e:
            error = ExportError(f"{type(e).__name__}: {e}")
            logger.error(
                f"Report export failed after computing {len(rows)} matches: {error}"
            )
            return ReportHandle(status="failed", row_count=0, error=error)

        logger.info(f"Report generated: {locator}")
        return ReportHandle(status="created", locator=locator, row_count=len(rows))
