"""
Workspace Inactive License Audit — Main Orchestrator

Usage:
    python -m workspace_license_audit                              # 365 days, Enterprise Plus
    python -m workspace_license_audit --days 180 --sku "Business Plus"
    python -m workspace_license_audit --config audit.json --sink csv
    python -m workspace_license_audit --access-token "$(gcloud auth print-access-token)"

Helpers:
    python -m workspace_license_audit skus [--product Google-Apps]
    python -m workspace_license_audit check-user someone@example.com

Exit codes: 0 clean run, 1 authentication failure, 2 configuration error,
3 run finished with partial failures.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit import run_audit, ProbeOutcome
from .auth.authenticator import Authenticator, AuthenticationError
from .catalog import load_sku_catalog, resolve_sku, sku_name
from .config import AuditConfig, ConfigurationError, DEFAULT_PRODUCT_ID
from .google import (
    GoogleAPIClient,
    DirectoryUsersService,
    LicenseAssignmentService,
    SheetsSink,
)
from .reporting import CsvSink, export_summary_json, export_summary_markdown
from .safety.guardian import SafetyGuardian

logger = logging.getLogger("workspace_license_audit.main")

EXIT_OK = 0
EXIT_AUTH = 1
EXIT_CONFIG = 2
EXIT_PARTIAL = 3


def _auth_options(suppress: bool = False) -> argparse.ArgumentParser:
    """
    Options shared by the audit and check-user commands. The subcommand copy uses
    SUPPRESS defaults so it never overwrites values given before it.
    """
    def default(value):
        return argparse.SUPPRESS if suppress else value

    opts = argparse.ArgumentParser(add_help=False)
    opts.add_argument("--credentials", type=Path, default=default(None), help="Service account JSON key")
    opts.add_argument("--subject", default=default(None), help="Admin user to impersonate")
    opts.add_argument("--access-token", default=default(None), help="Use a pre-issued OAuth access token")
    opts.add_argument("--verbose", "-v", action="store_true", default=default(False), help="Debug logging")
    return opts


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="workspace-license-audit",
        description="Find inactive Google Workspace users that still hold a license (READ-ONLY)",
        parents=[_auth_options()],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Helper commands")

    skus_p = subparsers.add_parser("skus", help="List the SKU catalog")
    skus_p.add_argument("--product", default=None, help="Only show this product")

    check_p = subparsers.add_parser(
        "check-user",
        help="Show which catalog SKUs a user holds",
        parents=[_auth_options(suppress=True)],
    )
    check_p.add_argument("email", help="User primary email")
    check_p.add_argument("--product", default=DEFAULT_PRODUCT_ID, help="Product to probe")

    # --- Audit options ---
    parser.add_argument("--config", "-c", type=Path, help="Path to JSON configuration file")
    parser.add_argument("--days", type=int, default=None, help="Inactivity threshold in days (default: 365)")
    parser.add_argument("--product", dest="audit_product", default=None, help="License product id (default: Google-Apps)")
    parser.add_argument("--sku", default=None, help="SKU id or catalog name (default: Enterprise Plus)")
    parser.add_argument(
        "--exclude-never-logged-in",
        action="store_true",
        help="Leave out accounts that have never signed in",
    )
    parser.add_argument("--customer", default=None, help="Directory customer id (default: my_customer)")
    parser.add_argument("--concurrency", type=int, default=None, help="Parallel license probes")

    parser.add_argument("--sink", choices=["sheets", "csv"], default=None, help="Where to write the report")
    parser.add_argument("--output-dir", "-o", type=Path, default=None, help="Directory for CSV and summary files")
    parser.add_argument("--title", default=None, help="Report title")
    parser.add_argument(
        "--formats",
        nargs="*",
        choices=["json", "markdown"],
        default=None,
        help="Run summary formats to write (default: json markdown)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AuditConfig:
    """Build configuration from config file and CLI overrides."""
    if args.config:
        config = AuditConfig.from_file(args.config)
    else:
        config = AuditConfig()

    policy_changes = {}
    if getattr(args, "days", None) is not None:
        policy_changes["inactivity_days"] = args.days
    if getattr(args, "audit_product", None):
        policy_changes["product_id"] = args.audit_product
    product_id = policy_changes.get("product_id", config.policy.product_id)
    if getattr(args, "sku", None):
        policy_changes["sku_id"] = resolve_sku(product_id, args.sku)
    if getattr(args, "exclude_never_logged_in", False):
        policy_changes["include_never_logged_in"] = False
    if policy_changes:
        config.policy = dataclasses.replace(config.policy, **policy_changes)

    if args.credentials:
        config.auth.mode = "service_account"
        config.auth.service_account.credentials_path = str(args.credentials)
    if args.subject:
        config.auth.service_account.subject = args.subject
    if args.access_token:
        config.auth.mode = "token"
        config.auth.access_token = args.access_token
    elif config.auth.access_token and not config.auth.service_account.credentials_path:
        config.auth.mode = "token"

    if getattr(args, "customer", None):
        config.fetch.customer = args.customer
    if getattr(args, "concurrency", None) is not None:
        config.probe.max_concurrent_probes = args.concurrency
    if getattr(args, "sink", None):
        config.output.sink = args.sink
    if getattr(args, "output_dir", None):
        config.output.base_dir = str(args.output_dir)
    if getattr(args, "title", None):
        config.output.title = args.title
    if getattr(args, "formats", None) is not None:
        config.output.formats = args.formats
    config.verbose = config.verbose or args.verbose

    config.validate()
    return config


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


# ---------------------------------------------------------------------------
# Helper commands
# ---------------------------------------------------------------------------

def _cmd_skus(args: argparse.Namespace) -> int:
    catalog = load_sku_catalog()
    products = [args.product] if args.product else sorted(catalog)
    for product in products:
        skus = catalog.get(product)
        if not skus:
            print(f"  ❌ Unknown product '{product}'.")
            continue
        print(f"\n  {product}")
        print(f"  {'─' * 60}")
        for name, sku_id in skus.items():
            print(f"  {name:<45s} {sku_id}")
    print()
    return EXIT_OK


async def _cmd_check_user(args: argparse.Namespace, config: AuditConfig) -> int:
    skus = load_sku_catalog().get(args.product)
    if not skus:
        print(f"  ❌ Unknown product '{args.product}'.")
        return EXIT_CONFIG

    token = await Authenticator(config.auth).acquire_token()
    async with GoogleAPIClient(token, SafetyGuardian(), config.probe.max_concurrent_probes) as client:
        service = LicenseAssignmentService(client)
        outcomes = await asyncio.gather(*(
            service.get_assignment(args.product, sku_id, args.email)
            for sku_id in skus.values()
        ))

    print(f"\n  Licenses for {args.email} ({args.product}):")
    assigned = 0
    for (name, sku_id), outcome in zip(skus.items(), outcomes):
        if outcome is ProbeOutcome.FOUND:
            assigned += 1
            print(f"  ✅ {name:<45s} {sku_id}")
        elif outcome is ProbeOutcome.ERROR:
            print(f"  ⚠  {name:<45s} {sku_id} (lookup failed)")
    if not assigned:
        print("  No catalog SKU is assigned to this user.")
    print()
    return EXIT_OK


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

async def run(config: AuditConfig) -> int:
    policy = config.policy
    label = sku_name(policy.product_id, policy.sku_id)
    title = config.output.title or f"Inactive {label} Users Audit"
    output_dir = config.output.output_dir
    run_id = config.output.run_id

    print("=" * 70)
    print(f" Workspace Inactive License Audit v{__version__}")
    print(" Mode: READ-ONLY — directory and licenses are never modified")
    print("=" * 70)
    print(f"\n📋 Run ID:   {run_id}")
    print(f"🔑 License:  {policy.product_id} / {label} ({policy.sku_id})")
    print(f"⏱  Inactive: {policy.inactivity_days} days")

    print("\n🔐 Authenticating...")
    token = await Authenticator(config.auth).acquire_token()
    print("✅ Authentication successful.")

    guardian = SafetyGuardian()
    async with GoogleAPIClient(token, guardian, config.probe.max_concurrent_probes) as client:
        if config.output.sink == "sheets":
            sink = SheetsSink(client)
        else:
            sink = CsvSink(output_dir, run_id)

        summary = await run_audit(
            policy,
            directory=DirectoryUsersService(client, customer=config.fetch.customer),
            entitlements=LicenseAssignmentService(client),
            sink=sink,
            fetch_config=config.fetch,
            probe_config=config.probe,
            title=title,
            sku_name=label,
        )
        stats = client.get_stats()

    print("\n" + "=" * 70)
    print(" AUDIT COMPLETE")
    print("=" * 70)
    print(f"\n  Inactive since:       {summary.cutoff.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print(f"  Candidates fetched:   {summary.candidates_fetched}")
    print(f"  Matched:              {len(summary.matched)}")
    print(f"  Confirmed absent:     {summary.confirmed_absent}")
    print(f"  Inconclusive probes:  {summary.inconclusive}")
    if summary.pagination_truncated:
        print("  ⚠  Directory listing stopped early; candidates are incomplete.")
    print(f"\n  {summary.report.describe()}")

    extra = {"api": stats, "safety": guardian.get_audit_record()}
    if "json" in config.output.formats:
        path = export_summary_json(summary, output_dir, run_id, extra=extra)
        print(f"  📄 JSON:     {path}")
    if "markdown" in config.output.formats:
        path = export_summary_markdown(summary, output_dir, run_id, sku_label=label)
        print(f"  📝 Markdown: {path}")
    print()

    return EXIT_PARTIAL if summary.partial_failure else EXIT_OK


async def main_async(argv: Optional[list[str]] = None) -> int:
    """Async entry point."""
    args = parse_args(argv)
    configure_logging(getattr(args, "verbose", False))

    if args.command == "skus":
        return _cmd_skus(args)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}")
        return EXIT_CONFIG

    try:
        if args.command == "check-user":
            return await _cmd_check_user(args, config)
        return await run(config)
    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}")
        return EXIT_CONFIG
    except AuthenticationError as e:
        print(f"\n❌ Authentication failed: {e}")
        return EXIT_AUTH


def main():
    """Synchronous entry point for `python -m workspace_license_audit`."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
