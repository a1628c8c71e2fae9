"""
Safety Guardian — Keeps the audit read-only against the tenant.
Directory and licensing APIs may only be read; writes are allowed
solely towards the report sink (Google Sheets).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger("workspace_license_audit.safety")

READ_METHODS = {"GET", "HEAD", "OPTIONS"}

# Hosts that hold tenant state; only read methods are permitted
READ_ONLY_HOSTS = {
    "admin.googleapis.com",
    "licensing.googleapis.com",
}

# Hosts that may receive writes (report artifacts, token exchange)
WRITABLE_HOSTS = {
    "sheets.googleapis.com",
    "oauth2.googleapis.com",
}


class SafetyViolation(Exception):
    """Raised when a request would modify tenant state."""
    pass


class SafetyGuardian:
    """
    Validates every outbound HTTP request before it is sent.
    Maintains an audit log of checks and violations.
    """

    def __init__(self):
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def validate_request(self, method: str, url: str, body: Optional[dict] = None) -> bool:
        """
        Validate a request.
        Returns True if allowed, raises SafetyViolation if not.
        """
        self.checks_performed += 1
        method_upper = method.upper()
        host = (urlparse(url).hostname or "").lower()

        if method_upper in READ_METHODS:
            return True

        if host in READ_ONLY_HOSTS:
            self._record_violation(method_upper, url, "Write to read-only API blocked")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Write method blocked: {method_upper} {url}"
            )

        if host not in WRITABLE_HOSTS:
            self._record_violation(method_upper, url, "Write to unknown host blocked")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Unknown write target: {method_upper} {url}"
            )

        return True

    def _record_violation(self, method: str, url: str, reason: str):
        violation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "url": url,
            "reason": reason,
        }
        self.violations.append(violation)
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")

    def get_audit_record(self) -> dict:
        """Return the safety audit record for the run summary."""
        return {
            "checks_performed": self.checks_performed,
            "violations_detected": len(self.violations),
            "violations": self.violations,
            "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
        }
