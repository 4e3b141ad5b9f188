"""
Tests for the access-key directory
"""

import asyncio

import httpx
import pytest

from admin_console.access_keys import (
    UNKNOWN_USER, AccessKeyRow, ViewPhase, sort_rows,
)
from admin_console.errors import ApiError
from admin_console.services.cache import ACCESS_KEYS


def run(coro):
    return asyncio.run(coro)


def _rows(make_console, **kwargs):
    async def scenario():
        console = make_console()
        try:
            return await console.keys.rows(**kwargs)
        finally:
            await console.aclose()

    return run(scenario())


def test_keys_are_joined_to_usernames(make_console):
    rows = {r.id: r for r in _rows(make_console)}
    assert rows["AKIAALICE1"].username == "alice"
    assert rows["AKIABOB001"].username == "bob"
    # Owner no longer exists
    assert rows["AKIAGHOST1"].username == UNKNOWN_USER


def test_timestamps_are_labelled(make_console):
    rows = {r.id: r for r in _rows(make_console)}
    assert rows["AKIAALICE1"].created_label == "Jan 01, 2025, 12:00 AM"
    assert rows["AKIAALICE1"].last_used_label == "Jan 04, 2025, 02:13 PM"
    assert rows["AKIABOB001"].last_used is None
    assert rows["AKIABOB001"].last_used_label == "Never"


@pytest.mark.parametrize("term,expected", [
    ("alice", ["AKIAALICE1"]),
    ("BOB", ["AKIABOB001"]),
    ("akia", ["AKIAALICE1", "AKIABOB001", "AKIAGHOST1"]),
    ("unknown", ["AKIAGHOST1"]),
    ("nobody-here", []),
])
def test_search_matches_id_or_username(make_console, term, expected):
    assert [r.id for r in _rows(make_console, search=term)] == expected


def test_sort_by_creation_date(make_console):
    newest_first = _rows(make_console, sort_by="created_at", descending=True)
    assert [r.id for r in newest_first] == ["AKIAGHOST1", "AKIABOB001", "AKIAALICE1"]


def test_never_used_keys_sort_last_both_ways(make_console):
    ascending = _rows(make_console, sort_by="last_used")
    descending = _rows(make_console, sort_by="last_used", descending=True)
    assert ascending[0].id == "AKIAALICE1"
    assert descending[0].id == "AKIAALICE1"
    assert [r.id for r in ascending[1:]] == ["AKIABOB001", "AKIAGHOST1"]


def test_sort_by_user():
    rows = [
        AccessKeyRow("K2", "u2", "zed", "active", 1, None, "", "Never"),
        AccessKeyRow("K1", "u1", "Amy", "active", 2, None, "", "Never"),
    ]
    assert [r.username for r in sort_rows(rows, "user")] == ["Amy", "zed"]


def test_unknown_sort_field_is_rejected():
    with pytest.raises(ValueError):
        sort_rows([], "secret")


def test_user_fetch_failure_degrades_to_unknown(make_console, fake_backend):
    fake_backend.fail["GET /users"] = httpx.Response(
        500, json={"success": False, "error": "users unavailable"})

    async def scenario():
        console = make_console()
        try:
            return await console.keys.rows(), console.notifier
        finally:
            await console.aclose()

    rows, notifier = run(scenario())
    assert {r.username for r in rows} == {UNKNOWN_USER}
    assert notifier.errors()[-1].message == "users unavailable"


def test_delete_removes_key_optimistically_then_reconciles(make_console, fake_backend):
    seen_during_request = []

    async def scenario():
        console = make_console()
        fake_backend.on_delete_key = lambda user_id, key_id: seen_during_request.extend(
            r.id for r in console.keys.cached_rows())
        try:
            await console.keys.rows()
            result = await console.keys.delete_key("u-alice", "AKIAALICE1")
            return result, console
        finally:
            await console.aclose()

    result, console = run(scenario())
    # Gone locally before the backend answered
    assert seen_during_request == ["AKIABOB001", "AKIAGHOST1"]
    assert result.deleted
    assert result.phase == ViewPhase.RECONCILED
    assert console.keys.phase == ViewPhase.RECONCILED
    assert [r.id for r in console.keys.cached_rows()] == ["AKIABOB001", "AKIAGHOST1"]
    assert ACCESS_KEYS in console.cache.invalidated_keys()
    assert console.notifier.notices[-1].title == "Access key deleted successfully"
    assert not console.notifier.is_loading


def test_key_kept_by_server_reappears(make_console, fake_backend):
    fake_backend.silently_keep_keys = True

    async def scenario():
        console = make_console()
        try:
            await console.keys.rows()
            result = await console.keys.delete_key("u-bob", "AKIABOB001")
            return result, console
        finally:
            await console.aclose()

    result, console = run(scenario())
    assert not result.deleted
    assert result.still_present
    assert result.error is None
    assert "AKIABOB001" in [r.id for r in console.keys.cached_rows()]
    assert console.notifier.errors()[-1].title == "Access key still present"


def test_failed_delete_is_reported_and_listing_restored(make_console):
    async def scenario():
        console = make_console()
        try:
            await console.keys.rows()
            result = await console.keys.delete_key("u-bob", "AKIAMISSING")
            return result, console
        finally:
            await console.aclose()

    result, console = run(scenario())
    assert not result.deleted
    assert result.error.status_code == 404
    assert result.phase == ViewPhase.RECONCILED
    assert len(console.keys.cached_rows()) == 3
    assert console.notifier.errors()[-1].message == "Access key not found"


def test_delete_without_loaded_listing_fetches_it(make_console):
    async def scenario():
        console = make_console()
        try:
            result = await console.keys.delete_key("u-bob", "AKIABOB001")
            return result, console.cache.peek(ACCESS_KEYS)
        finally:
            await console.aclose()

    result, keys = run(scenario())
    assert result.deleted
    assert [k.id for k in keys] == ["AKIAALICE1", "AKIAGHOST1"]


def test_delete_stays_optimistic_when_listing_cannot_be_reloaded(make_console, fake_backend):
    fake_backend.silently_keep_keys = True

    async def scenario():
        console = make_console()
        try:
            await console.keys.rows()
            fake_backend.fail["GET /access-keys"] = httpx.Response(
                500, json={"success": False, "error": "listing unavailable"})
            result = await console.keys.delete_key("u-bob", "AKIABOB001")
            return result, console
        finally:
            await console.aclose()

    result, console = run(scenario())
    assert "AKIABOB001" in [k["id"] for k in fake_backend.keys]
    assert result.phase == ViewPhase.OPTIMISTIC
    assert console.keys.phase == ViewPhase.OPTIMISTIC
    assert not result.deleted
    assert not result.verified
    assert result.error is None
    assert result.reconcile_error.message == "listing unavailable"
    titles = [n.title for n in console.notifier.notices]
    assert "Access key deleted successfully" not in titles
    assert titles[-1] == "Access key deletion not confirmed"
    assert not console.notifier.is_loading


def test_listing_failure_is_notified(make_console, fake_backend):
    fake_backend.fail["GET /access-keys"] = httpx.Response(
        503, json={"success": False, "error": "keys unavailable"})

    async def scenario():
        console = make_console()
        try:
            with pytest.raises(ApiError):
                await console.keys.rows()
            return console.notifier
        finally:
            await console.aclose()

    assert run(scenario()).errors()[-1].message == "keys unavailable"
