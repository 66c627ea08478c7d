"""Tests for LocalStore: mailboxes, emails, bodies and config."""

import pytest
from sqlalchemy.exc import OperationalError

from mailcache.core.database import BODY_UNAVAILABLE, DEGRADED_BODY_PREFIX
from mailcache.core.models import Mailbox, MailboxRole
from mailcache.utils.errors import PartialWriteError, StorageError

from factories import make_email, standard_mailboxes


class TestMailboxes:
    """Mailbox mirror round-trips"""

    @pytest.mark.asyncio
    async def test_round_trip_ordered_by_sort_order_then_name(self, store):
        """Mailboxes come back ordered by (sort_order, name) with every field intact"""
        mailboxes = [
            Mailbox(id="m3", name="Zeta", sort_order=1),
            Mailbox(id="m2", name="Alpha", sort_order=1, parent_id="m1", unread_count=4),
            Mailbox(id="m1", name="Inbox", role=MailboxRole.INBOX, sort_order=0, total_count=10),
        ]
        await store.save_mailboxes(mailboxes)

        loaded = await store.get_mailboxes()

        assert [m.id for m in loaded] == ["m1", "m2", "m3"]
        assert loaded[0] == mailboxes[2]
        assert loaded[1] == mailboxes[1]
        assert loaded[2] == mailboxes[0]

    @pytest.mark.asyncio
    async def test_save_is_idempotent_upsert(self, store):
        """Saving overlapping sets updates rows in place"""
        await store.save_mailboxes([Mailbox(id="m1", name="Inbox")])
        await store.save_mailboxes([Mailbox(id="m1", name="Renamed"), Mailbox(id="m2", name="Other")])

        loaded = await store.get_mailboxes()

        assert sorted(m.id for m in loaded) == ["m1", "m2"]
        assert (await store.get_mailbox("m1")).name == "Renamed"

    @pytest.mark.asyncio
    async def test_get_mailbox_by_role(self, store):
        await store.save_mailboxes(standard_mailboxes())

        archive = await store.get_mailbox_by_role(MailboxRole.ARCHIVE)

        assert archive.id == "archive"
        assert await store.get_mailbox("missing") is None

    @pytest.mark.asyncio
    async def test_unknown_role_is_custom(self, store):
        await store.save_mailboxes([Mailbox(id="junk", name="Junk", role="junk")])

        assert (await store.get_mailbox("junk")).role == MailboxRole.CUSTOM


class TestEmails:
    """Email rows and mailbox memberships"""

    @pytest.mark.asyncio
    async def test_newest_first_scenario(self, store):
        """Emails in a mailbox are returned newest first"""
        await store.save_mailboxes([Mailbox(id="m1", name="Inbox", sort_order=0)])
        await store.save_emails(
            [
                make_email("e1", mailbox_ids=["m1"], date="2024-01-02"),
                make_email("e2", mailbox_ids=["m1"], date="2024-01-01"),
            ]
        )

        emails = await store.get_emails("m1", 0, 20)

        assert [e.id for e in emails] == ["e1", "e2"]

    @pytest.mark.asyncio
    async def test_membership_round_trip_is_exact(self, store):
        """Each email appears in exactly the mailboxes it was saved with"""
        batch = [
            make_email("a", mailbox_ids=["inbox", "work"]),
            make_email("b", mailbox_ids=["work"]),
            make_email("c", mailbox_ids=["inbox"]),
        ]
        await store.save_emails(batch)

        for mailbox_id in ("inbox", "work", "other"):
            ids = {e.id for e in await store.get_emails(mailbox_id)}
            expected = {e.id for e in batch if mailbox_id in e.mailbox_ids}
            assert ids == expected

        loaded = await store.get_email("a")
        assert sorted(loaded.mailbox_ids) == ["inbox", "work"]

    @pytest.mark.asyncio
    async def test_save_replaces_memberships(self, store):
        """A narrower membership list drops the mailboxes it omits"""
        await store.save_emails([make_email("a", mailbox_ids=["inbox", "work"])])
        await store.save_emails([make_email("a", mailbox_ids=["work"])])

        assert await store.get_emails("inbox") == []
        assert [e.id for e in await store.get_emails("work")] == ["a"]

    @pytest.mark.asyncio
    async def test_save_is_idempotent(self, store):
        """Saving the same batch twice yields no duplicates"""
        batch = [make_email("a"), make_email("b", date="2024-02-01")]

        await store.save_emails(batch)
        await store.save_emails(batch)

        emails = await store.get_emails("inbox")
        assert [e.id for e in emails] == ["b", "a"]
        assert (await store.get_email("a")).mailbox_ids == ["inbox"]

    @pytest.mark.asyncio
    async def test_fields_round_trip(self, store):
        email = make_email(
            "a",
            thread_id="t1",
            to_addr="Bob <bob@example.com>",
            cc_addr="carol@example.com",
            is_unread=True,
            is_flagged=True,
            keywords=["$seen", "work"],
        )
        await store.save_emails([email])

        loaded = await store.get_email("a")

        assert loaded.thread_id == "t1"
        assert loaded.to_addr == "Bob <bob@example.com>"
        assert loaded.cc_addr == "carol@example.com"
        assert loaded.is_unread is True
        assert loaded.is_flagged is True
        assert loaded.keywords == ["$seen", "work"]
        assert loaded.updated_at is not None

    @pytest.mark.asyncio
    async def test_pagination_by_offset_and_limit(self, store):
        await store.save_emails(
            [make_email(f"e{i:02d}", date=f"2024-01-{i:02d}") for i in range(1, 26)]
        )

        first = await store.get_emails("inbox", offset=0, limit=20)
        second = await store.get_emails("inbox", offset=20, limit=20)

        assert len(first) == 20
        assert len(second) == 5
        assert first[0].id == "e25"
        assert second[-1].id == "e01"
        assert not {e.id for e in first} & {e.id for e in second}

    @pytest.mark.asyncio
    async def test_failed_batch_rolls_back_completely(self, store, monkeypatch):
        """A failure mid-batch leaves no row of the batch behind"""
        original = store.emails.replace_memberships
        calls = []

        async def fail_on_second(conn, email_id, mailbox_ids):
            calls.append(email_id)
            if len(calls) == 2:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            await original(conn, email_id, mailbox_ids)

        monkeypatch.setattr(store.emails, "replace_memberships", fail_on_second)

        with pytest.raises(PartialWriteError) as exc_info:
            await store.save_emails([make_email("a"), make_email("b")])

        assert isinstance(exc_info.value, StorageError)
        assert exc_info.value.details["operation"] == "save_emails"
        assert await store.get_email("a") is None
        assert await store.get_emails("inbox") == []


class TestBodies:
    """Body caching and offline degradation"""

    @pytest.mark.asyncio
    async def test_cached_body_is_returned(self, store):
        await store.save_emails([make_email("a")])
        assert await store.save_email_body("a", "Full text") is True

        assert await store.get_email_body("a") == "Full text"

    @pytest.mark.asyncio
    async def test_preview_fallback_is_marked_degraded(self, store):
        """Without a body the preview is returned, marked as degraded"""
        await store.save_emails([make_email("a", preview="Short preview")])

        body = await store.get_email_body("a")

        assert body.startswith(DEGRADED_BODY_PREFIX)
        assert "Short preview" in body

    @pytest.mark.asyncio
    async def test_sentinel_without_body_or_preview(self, store):
        await store.save_emails([make_email("a", preview="")])

        assert await store.get_email_body("a") == BODY_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_empty_body_counts_as_not_cached(self, store):
        await store.save_emails([make_email("a", preview="p")])
        await store.save_email_body("a", "")

        assert (await store.get_email_body("a")).startswith(DEGRADED_BODY_PREFIX)

    @pytest.mark.asyncio
    async def test_uncached_email_returns_none(self, store):
        assert await store.get_email_body("nope") is None
        assert await store.save_email_body("nope", "text") is False

    @pytest.mark.asyncio
    async def test_resave_without_body_keeps_cached_body(self, store):
        """List refreshes carry no body and must not wipe the cached one"""
        await store.save_emails([make_email("a")])
        await store.save_email_body("a", "Full text")

        await store.save_emails([make_email("a", subject="Updated")])

        assert await store.get_email_body("a") == "Full text"
        assert (await store.get_email("a")).subject == "Updated"

    @pytest.mark.asyncio
    async def test_html_body_pair(self, store):
        await store.save_emails([make_email("a")])

        assert await store.get_email_html_body("a") is None
        await store.save_email_html_body("a", "<p>Hi</p>")
        assert await store.get_email_html_body("a") == "<p>Hi</p>"


class TestLocalMutations:
    """Local mirrors of delete, move and flag changes"""

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_memberships(self, seeded_store):
        assert await seeded_store.delete_email("e1") is True

        assert await seeded_store.get_email("e1") is None
        assert [e.id for e in await seeded_store.get_emails("inbox")] == ["e2", "e3"]
        assert await seeded_store.delete_email("e1") is False

    @pytest.mark.asyncio
    async def test_move_swaps_membership(self, seeded_store):
        assert await seeded_store.move_email("e1", "inbox", "archive") is True

        assert "e1" not in {e.id for e in await seeded_store.get_emails("inbox")}
        assert [e.id for e in await seeded_store.get_emails("archive")] == ["e1"]
        assert (await seeded_store.get_email("e1")).mailbox_ids == ["archive"]

    @pytest.mark.asyncio
    async def test_move_uncached_email_is_noop(self, seeded_store):
        assert await seeded_store.move_email("ghost", "inbox", "archive") is False
        assert await seeded_store.get_emails("archive") == []

    @pytest.mark.asyncio
    async def test_update_flags(self, seeded_store):
        await seeded_store.update_email_flags("e2", unread=True)
        await seeded_store.update_email_flags("e2", flagged=True)

        email = await seeded_store.get_email("e2")
        assert email.is_unread is True
        assert email.is_flagged is True

        assert await seeded_store.update_email_flags("e2") is False


class TestConfig:
    """Key/value config table"""

    @pytest.mark.asyncio
    async def test_get_and_set(self, store):
        assert await store.get_config("theme") is None
        assert await store.get_config("theme", "dark") == "dark"

        await store.set_config("theme", "light")
        await store.set_config("theme", "solarized")

        assert await store.get_config("theme") == "solarized"

    @pytest.mark.asyncio
    async def test_flags(self, store):
        assert await store.get_flag("offline_mode") is False
        assert await store.get_flag("offline_mode", default=True) is True

        await store.set_flag("offline_mode", True)

        assert await store.get_config("offline_mode") == "true"
        assert await store.get_flag("offline_mode") is True

    @pytest.mark.asyncio
    async def test_health_check(self, store):
        assert await store.health_check() is True
