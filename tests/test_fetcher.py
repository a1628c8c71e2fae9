from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from fakes import NOW, PagedDirectory, make_user
from workspace_license_audit.audit import InactiveUserFetcher, PaginationError

CUTOFF = NOW - timedelta(days=365)


def _pages(*sizes: int) -> list[list[dict]]:
    pages, start = [], 0
    for size in sizes:
        pages.append([make_user(i) for i in range(start, start + size)])
        start += size
    return pages


def test_collects_all_pages_in_order() -> None:
    directory = PagedDirectory(_pages(500, 500, 37))
    result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))

    assert len(result.users) == 1037
    assert [u.email for u in result.users] == [f"user{i}@example.com" for i in range(1037)]
    assert result.pages_fetched == 3
    assert not result.truncated
    assert [c["page_token"] for c in directory.calls] == [None, "1", "2"]
    assert all(c["before"] == CUTOFF for c in directory.calls)


def test_page_failure_returns_partial_result(caplog) -> None:
    directory = PagedDirectory(_pages(500, 500, 37), fail_on=[2])

    with caplog.at_level(logging.ERROR, logger="workspace_license_audit"):
        result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))

    assert [u.email for u in result.users] == [f"user{i}@example.com" for i in range(500)]
    assert result.truncated
    assert isinstance(result.error, PaginationError)
    assert result.error.page == 2
    assert isinstance(result.error.cause, ConnectionError)
    assert len(directory.calls) == 2
    assert "Directory listing failed on page 2" in caplog.text


def test_first_page_failure_yields_empty_result() -> None:
    directory = PagedDirectory(_pages(10), fail_on=[1])
    result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))

    assert result.users == []
    assert result.pages_fetched == 0
    assert result.truncated


def test_page_size_clamped_to_server_maximum() -> None:
    directory = PagedDirectory(_pages(3))
    asyncio.run(InactiveUserFetcher(directory, page_size=2000).fetch(CUTOFF))
    assert directory.calls[0]["page_size"] == 500


def test_max_pages_caps_the_walk(caplog) -> None:
    directory = PagedDirectory(_pages(1, 1, 1, 1))
    with caplog.at_level(logging.WARNING, logger="workspace_license_audit"):
        result = asyncio.run(InactiveUserFetcher(directory, max_pages=2).fetch(CUTOFF))

    assert len(result.users) == 2
    assert len(directory.calls) == 2
    assert result.truncated
    assert result.error is None
    assert "safety cap" in caplog.text


def test_walk_ending_exactly_at_cap_is_complete() -> None:
    directory = PagedDirectory(_pages(1, 1))
    result = asyncio.run(InactiveUserFetcher(directory, max_pages=2).fetch(CUTOFF))

    assert len(result.users) == 2
    assert not result.truncated


def test_never_logged_in_included_by_default() -> None:
    directory = PagedDirectory([[
        make_user(1, last_login="1970-01-01T00:00:00.000Z"),
        make_user(2),
    ]])
    result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))

    assert [u.email for u in result.users] == ["user1@example.com", "user2@example.com"]
    assert result.users[0].never_logged_in
    assert result.users[0].last_login_time is None


def test_never_logged_in_can_be_excluded() -> None:
    directory = PagedDirectory([[
        make_user(1, last_login="1970-01-01T00:00:00.000Z"),
        make_user(2, last_login=None),
        make_user(3),
    ]])
    fetcher = InactiveUserFetcher(directory, include_never_logged_in=False)
    result = asyncio.run(fetcher.fetch(CUTOFF))

    assert [u.email for u in result.users] == ["user3@example.com"]
    assert result.never_logged_in_excluded == 2


def test_recent_logins_from_unfiltered_backend_are_dropped() -> None:
    recent = (NOW - timedelta(days=3)).strftime("%Y-%m-%dT%H:%M:%S.000Z")
    directory = PagedDirectory([[make_user(1), make_user(2, last_login=recent)]])
    result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))

    assert [u.email for u in result.users] == ["user1@example.com"]
    assert result.out_of_range_dropped == 1


def test_records_without_email_are_skipped() -> None:
    directory = PagedDirectory([[make_user(1, primaryEmail=""), make_user(2)]])
    result = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF))
    assert [u.email for u in result.users] == ["user2@example.com"]


def test_candidate_fields_mapped_from_directory_record() -> None:
    directory = PagedDirectory([[make_user(7, suspended=True)]])
    user = asyncio.run(InactiveUserFetcher(directory).fetch(CUTOFF)).users[0]

    assert user.email == "user7@example.com"
    assert user.user_id == "id-7"
    assert user.full_name == "User 7"
    assert user.last_login_time == "2020-01-01T00:00:00.000Z"
    assert user.creation_time == "2019-01-01T00:00:00.000Z"
    assert user.suspended is True
