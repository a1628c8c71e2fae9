from __future__ import annotations

import asyncio

import pytest

from fakes import FakeEntitlements, FilteringDirectory, FixedClock, MemorySink, PagedDirectory, make_user
from workspace_license_audit.audit import ProbeOutcome, run_audit
from workspace_license_audit.config import AuditPolicy, ConfigurationError, FetchConfig

POLICY = AuditPolicy(inactivity_days=365, product_id="Google-Apps", sku_id="1010020020")


def _directory() -> FilteringDirectory:
    return FilteringDirectory([
        make_user(1, last_login="2026-10-01T08:00:00.000Z"),
        make_user(2, last_login="2024-02-11T09:30:00.000Z"),
        make_user(3, last_login="2026-05-20T17:45:00.000Z"),
        make_user(4, last_login="2023-07-04T12:00:00.000Z"),
        make_user(5, last_login="1970-01-01T00:00:00.000Z"),
    ])


def test_end_to_end_single_match() -> None:
    entitlements = FakeEntitlements({
        "user1@example.com": ProbeOutcome.FOUND,
        "user4@example.com": ProbeOutcome.FOUND,
    })
    sink = MemorySink()

    summary = asyncio.run(run_audit(POLICY, _directory(), entitlements, sink, clock=FixedClock(), title="Audit"))

    assert summary.candidates_fetched == 3
    assert [m.user.email for m in summary.matched] == ["user4@example.com"]
    assert summary.confirmed_absent == 2
    assert summary.inconclusive == 0
    assert not summary.partial_failure
    assert summary.report.created
    assert summary.report.locator == "memory://Audit"
    assert sink.sheets["Audit"][1:] == [
        ["User 4", "user4@example.com", "2023-07-04T12:00:00.000Z", "2019-01-01T00:00:00.000Z", False],
    ]
    # active users are never probed
    assert {c[2] for c in entitlements.calls} == {
        "user2@example.com", "user4@example.com", "user5@example.com",
    }


def test_invalid_policy_aborts_before_any_call() -> None:
    with pytest.raises(ConfigurationError):
        AuditPolicy(inactivity_days=0)
    with pytest.raises(ConfigurationError):
        AuditPolicy(product_id="")
    with pytest.raises(ConfigurationError):
        AuditPolicy(sku_id="  ")


def test_no_matches_creates_no_report() -> None:
    sink = MemorySink()
    summary = asyncio.run(run_audit(POLICY, _directory(), FakeEntitlements({}), sink, clock=FixedClock()))

    assert summary.matched == []
    assert summary.report.status == "no_matches"
    assert sink.sheets == {}
    assert not summary.partial_failure


def test_partial_failures_reflected_in_summary() -> None:
    directory = PagedDirectory([[make_user(1), make_user(2)], [make_user(3)]], fail_on=[2])
    entitlements = FakeEntitlements({
        "user1@example.com": ProbeOutcome.FOUND,
        "user2@example.com": RuntimeError("401 Unauthorized"),
    })
    summary = asyncio.run(run_audit(POLICY, directory, entitlements, MemorySink(fail_on="create"), clock=FixedClock()))

    assert summary.candidates_fetched == 2
    assert summary.pagination_truncated
    assert summary.inconclusive == 1
    assert [m.user.email for m in summary.matched] == ["user1@example.com"]
    assert summary.report.status == "failed"
    assert summary.partial_failure

    data = summary.to_dict()
    assert data["counts"] == {
        "candidates_fetched": 2,
        "matched": 1,
        "confirmed_absent": 0,
        "inconclusive": 1,
        "never_logged_in_excluded": 0,
    }
    assert data["report"]["status"] == "failed"
    assert data["matches"][0]["Email"] == "user1@example.com"


def test_rerun_is_stateless() -> None:
    entitlements = FakeEntitlements({"user4@example.com": ProbeOutcome.FOUND})
    first = asyncio.run(run_audit(POLICY, _directory(), entitlements, MemorySink(), clock=FixedClock()))
    second = asyncio.run(run_audit(POLICY, _directory(), entitlements, MemorySink(), clock=FixedClock()))
    assert [m.user for m in first.matched] == [m.user for m in second.matched]


def test_excluding_never_logged_in() -> None:
    policy = AuditPolicy(inactivity_days=365, include_never_logged_in=False)
    entitlements = FakeEntitlements({}, default=ProbeOutcome.FOUND)
    summary = asyncio.run(run_audit(policy, _directory(), entitlements, MemorySink(), clock=FixedClock()))

    assert [m.user.email for m in summary.matched] == ["user2@example.com", "user4@example.com"]
    assert summary.never_logged_in_excluded == 1


def test_page_cap_marks_run_partial() -> None:
    directory = PagedDirectory([[make_user(1)], [make_user(2)], [make_user(3)]])
    entitlements = FakeEntitlements({}, default=ProbeOutcome.FOUND)

    summary = asyncio.run(run_audit(
        POLICY,
        directory,
        entitlements,
        MemorySink(),
        clock=FixedClock(),
        fetch_config=FetchConfig(max_pages=2),
    ))

    assert summary.candidates_fetched == 2
    assert summary.pagination_truncated
    assert summary.partial_failure
