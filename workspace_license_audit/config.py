"""
Configuration module for the Workspace inactive-license audit.
Defines the audit policy, API endpoints, and operational settings.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class ConfigurationError(Exception):
    """Raised when the audit policy or run configuration is invalid."""
    pass


# ─── Google API Settings ─────────────────────────────────────────────────────

DIRECTORY_BASE_URL = "https://admin.googleapis.com/admin/directory/v1"
LICENSING_BASE_URL = "https://licensing.googleapis.com/apps/licensing/v1"
SHEETS_BASE_URL = "https://sheets.googleapis.com/v4"
TOKEN_URL = "https://oauth2.googleapis.com/token"

DEFAULT_CUSTOMER = "my_customer"

SCOPES = [
    "https://www.googleapis.com/auth/admin.directory.user.readonly",
    "https://www.googleapis.com/auth/apps.licensing",
    "https://www.googleapis.com/auth/spreadsheets",
]

# Rate limiting / throttling
MAX_CONCURRENT_REQUESTS = 4       # Parallel requests in flight
MAX_RETRIES = 5                   # Retry count for throttled requests
INITIAL_BACKOFF_SECONDS = 2.0     # First retry delay
MAX_BACKOFF_SECONDS = 64.0        # Cap on exponential backoff
BACKOFF_MULTIPLIER = 2.0          # Exponential factor

# Pagination
MAX_PAGE_SIZE = 500               # Directory API maxResults ceiling
MAX_PAGES = 10000                 # Safety cap on pagination loops

# Defaults
DEFAULT_INACTIVITY_DAYS = 365
DEFAULT_PRODUCT_ID = "Google-Apps"
DEFAULT_SKU_ID = "1010020020"     # Enterprise Plus


# ─── Audit Policy ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AuditPolicy:
    """What counts as an inactive, licensed account. Immutable for a run."""
    inactivity_days: int = DEFAULT_INACTIVITY_DAYS
    product_id: str = DEFAULT_PRODUCT_ID
    sku_id: str = DEFAULT_SKU_ID
    include_never_logged_in: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        # bool is an int subclass; True must not read as "1 day"
        if isinstance(self.inactivity_days, bool) or not isinstance(self.inactivity_days, int):
            raise ConfigurationError(
                f"inactivity_days must be an integer, got {self.inactivity_days!r}"
            )
        if self.inactivity_days <= 0:
            raise ConfigurationError(
                f"inactivity_days must be positive, got {self.inactivity_days}"
            )
        if not self.product_id or not self.product_id.strip():
            raise ConfigurationError("product_id must not be empty")
        if not self.sku_id or not self.sku_id.strip():
            raise ConfigurationError("sku_id must not be empty")


# ─── Authentication ─────────────────────────────────────────────────────────

@dataclass
class ServiceAccountAuth:
    """Service account with domain-wide delegation."""
    credentials_path: str = ""     # Service account JSON key file
    subject: str = ""              # Admin user to impersonate
    scopes: list[str] = field(default_factory=lambda: list(SCOPES))


@dataclass
class AuthConfig:
    """Authentication configuration — service account or pre-issued token."""
    mode: str = "service_account"  # "service_account" or "token"
    service_account: ServiceAccountAuth = field(default_factory=ServiceAccountAuth)
    access_token: str = ""

    def __post_init__(self):
        if not self.service_account.credentials_path:
            self.service_account.credentials_path = os.environ.get(
                "GOOGLE_APPLICATION_CREDENTIALS", ""
            )
        if not self.service_account.subject:
            self.service_account.subject = os.environ.get("WORKSPACE_ADMIN_SUBJECT", "")
        if not self.access_token:
            self.access_token = os.environ.get("GOOGLE_ACCESS_TOKEN", "")


# ─── Collection Settings ────────────────────────────────────────────────────

@dataclass
class FetchConfig:
    """Controls for directory pagination."""
    customer: str = DEFAULT_CUSTOMER
    page_size: int = MAX_PAGE_SIZE
    max_pages: int = MAX_PAGES

    @property
    def effective_page_size(self) -> int:
        return max(1, min(self.page_size, MAX_PAGE_SIZE))


@dataclass
class ProbeConfig:
    """Controls for entitlement probes."""
    max_concurrent_probes: int = MAX_CONCURRENT_REQUESTS


# ─── Output Configuration ───────────────────────────────────────────────────

@dataclass
class OutputConfig:
    """Report sink and summary output settings."""
    sink: str = "sheets"           # "sheets" or "csv"
    base_dir: str = ""
    title: str = ""
    run_id: str = ""
    formats: list[str] = field(default_factory=lambda: ["json", "markdown"])

    def __post_init__(self):
        if not self.run_id:
            self.run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        if not self.base_dir:
            self.base_dir = os.path.join(os.getcwd(), "license_audit_output")

    @property
    def output_dir(self) -> Path:
        return Path(self.base_dir)


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class AuditConfig:
    """Top-level configuration for an audit run."""
    policy: AuditPolicy = field(default_factory=AuditPolicy)
    auth: AuthConfig = field(default_factory=AuthConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    verbose: bool = False

    def validate(self) -> None:
        """Check everything that must hold before the first network call."""
        self.policy.validate()
        if self.auth.mode not in ("service_account", "token"):
            raise ConfigurationError(f"Unknown auth mode: {self.auth.mode}")
        if self.output.sink not in ("sheets", "csv"):
            raise ConfigurationError(f"Unknown report sink: {self.output.sink}")
        if self.probe.max_concurrent_probes < 1:
            raise ConfigurationError("max_concurrent_probes must be at least 1")
        if not self.fetch.customer:
            raise ConfigurationError("customer must not be empty")

    @classmethod
    def from_file(cls, path: str | Path) -> "AuditConfig":
        """Load configuration from a JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        from .catalog import resolve_sku

        config = cls()
        if "policy" in data:
            p = _section(data, "policy")
            product_id = p.get("product_id", DEFAULT_PRODUCT_ID)
            config.policy = AuditPolicy(
                inactivity_days=p.get("inactivity_days", DEFAULT_INACTIVITY_DAYS),
                product_id=product_id,
                sku_id=resolve_sku(str(product_id), str(p.get("sku_id", DEFAULT_SKU_ID))),
                include_never_logged_in=p.get("include_never_logged_in", True),
            )
        if "auth" in data:
            auth_data = _section(data, "auth")
            config.auth.mode = auth_data.get("mode", "service_account")
            if "service_account" in auth_data:
                sa = _section(auth_data, "service_account")
                config.auth.service_account.credentials_path = sa.get(
                    "credentials_path", config.auth.service_account.credentials_path
                )
                config.auth.service_account.subject = sa.get(
                    "subject", config.auth.service_account.subject
                )
            if auth_data.get("access_token"):
                config.auth.access_token = auth_data["access_token"]
        for section, target in (
            ("fetch", config.fetch),
            ("probe", config.probe),
            ("output", config.output),
        ):
            for k, v in _section(data, section).items():
                if hasattr(target, k):
                    setattr(target, k, v)
        config.verbose = data.get("verbose", False)
        return config


def _section(data: dict, name: str) -> dict:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{name}' must be a JSON object")
    return value
