"""Tests for the full-page pagination heuristic."""

import pytest

from mailcache.sync import PAGE_SIZE, ConnectivityMode, SyncCoordinator

from factories import make_email, standard_mailboxes


def _emails(total: int):
    return [make_email(f"e{i:03d}", date=f"2024-01-01T00:{i // 60:02d}:{i % 60:02d}") for i in range(total)]


# total -> (len at offset 0, has_more at 0, len at offset 20, has_more at 20)
EXPECTED = {
    19: (19, False, 0, False),
    20: (20, True, 0, False),
    21: (20, True, 1, False),
}


def test_page_size_is_twenty():
    assert PAGE_SIZE == 20


@pytest.mark.asyncio
@pytest.mark.parametrize("total", sorted(EXPECTED))
async def test_online_pages(store, remote, total):
    remote.emails = {e.id: e for e in _emails(total)}
    coordinator = SyncCoordinator(store, remote, ConnectivityMode.ONLINE)

    first = await coordinator.load_emails("inbox", 0)
    second = await coordinator.load_emails("inbox", PAGE_SIZE)

    assert (len(first.emails), first.has_more, len(second.emails), second.has_more) == EXPECTED[total]
    assert remote.calls == [("fetch_emails", "inbox", 0), ("fetch_emails", "inbox", PAGE_SIZE)]


@pytest.mark.asyncio
@pytest.mark.parametrize("total", sorted(EXPECTED))
async def test_offline_pages(store, remote, total):
    await store.save_mailboxes(standard_mailboxes())
    await store.save_emails(_emails(total))
    coordinator = SyncCoordinator(store, remote, ConnectivityMode.OFFLINE)

    first = await coordinator.load_emails("inbox", 0)
    second = await coordinator.load_emails("inbox", PAGE_SIZE)

    assert (len(first.emails), first.has_more, len(second.emails), second.has_more) == EXPECTED[total]


@pytest.mark.asyncio
async def test_exact_multiple_reports_more_until_empty_fetch(store, remote):
    """A last page of exactly PAGE_SIZE still claims more; the next fetch is empty"""
    remote.emails = {e.id: e for e in _emails(40)}
    coordinator = SyncCoordinator(store, remote, ConnectivityMode.ONLINE)

    pages = [await coordinator.load_emails("inbox", offset) for offset in (0, 20, 40)]

    assert [p.has_more for p in pages] == [True, True, False]
    assert [len(p.emails) for p in pages] == [20, 20, 0]
