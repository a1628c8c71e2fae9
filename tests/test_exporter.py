from __future__ import annotations

import asyncio

from fakes import MemorySink
from workspace_license_audit.audit import (
    REPORT_HEADER,
    CandidateUser,
    ExportError,
    MatchedUser,
    ReportExporter,
)


def _matches() -> list[MatchedUser]:
    users = [
        CandidateUser(
            email="a@x.com",
            full_name="A",
            last_login_time="2022-01-01",
            creation_time="2020-01-01",
            suspended=False,
        ),
        CandidateUser(
            email="b@x.com",
            full_name="B",
            last_login_time="2021-06-30",
            creation_time="2019-03-15",
            suspended=True,
        ),
    ]
    return [MatchedUser(user=u, product_id="Google-Apps", sku_id="1010020020") for u in users]


def test_empty_matches_create_nothing() -> None:
    sink = MemorySink()
    handle = asyncio.run(ReportExporter(sink).export([]))

    assert handle.status == "no_matches"
    assert handle.error is None
    assert handle.locator == ""
    assert sink.sheets == {}


def test_header_then_rows_verbatim() -> None:
    sink = MemorySink()
    handle = asyncio.run(ReportExporter(sink, title="Audit").export(_matches()))

    assert handle.created
    assert handle.locator == "memory://Audit"
    assert handle.row_count == 2
    assert sink.sheets["Audit"] == [
        ["Name", "Email", "LastLoginTime", "CreationTime", "Suspended"],
        ["A", "a@x.com", "2022-01-01", "2020-01-01", False],
        ["B", "b@x.com", "2021-06-30", "2019-03-15", True],
    ]
    assert REPORT_HEADER == ["Name", "Email", "LastLoginTime", "CreationTime", "Suspended"]


def test_rows_written_in_one_bulk_call() -> None:
    sink = MemorySink()
    asyncio.run(ReportExporter(sink).export(_matches()))
    assert sink.write_calls == 1


def test_never_logged_in_rendered_as_never() -> None:
    match = MatchedUser(
        user=CandidateUser(email="c@x.com", full_name="C", creation_time="2020-01-01"),
        product_id="Google-Apps",
        sku_id="1010020020",
    )
    assert match.to_row() == ["C", "c@x.com", "Never", "2020-01-01", False]


def test_create_failure_reported_not_raised() -> None:
    handle = asyncio.run(ReportExporter(MemorySink(fail_on="create")).export(_matches()))

    assert handle.status == "failed"
    assert isinstance(handle.error, ExportError)
    assert "quota exhausted" in str(handle.error)
    assert "failed" in handle.describe()


def test_write_failure_reported_not_raised() -> None:
    handle = asyncio.run(ReportExporter(MemorySink(fail_on="write")).export(_matches()))
    assert handle.status == "failed"
    assert isinstance(handle.error, ExportError)
