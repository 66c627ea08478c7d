"""Tests for the coordinator write path."""

import asyncio
import logging

import pytest

from mailcache.core.models import (
    DeleteAction,
    LocalDraft,
    MoveAction,
    SaveDraftAction,
    SendAction,
    SetFlagsAction,
    is_local_id,
)
from mailcache.sync import ConnectivityMode, RequestTag, SyncCoordinator
from mailcache.utils.errors import ConnectivityError, StorageError, ValidationError

from factories import make_email


@pytest.fixture
def online(seeded_store, remote):
    """Online coordinator over the seeded store"""
    return SyncCoordinator(seeded_store, remote, ConnectivityMode.ONLINE)


class TestOnlineMutations:
    """Remote call first, best-effort local mirror after"""

    @pytest.mark.asyncio
    async def test_delete_mirrors_locally(self, online, seeded_store, remote):
        tag = RequestTag.new("inbox")

        result = await online.mutate(DeleteAction(email_id="e1"), tag=tag)

        assert result.ok is True
        assert result.queued is False
        assert result.tag == tag
        assert result.action == DeleteAction(email_id="e1")
        assert remote.calls == [("delete_email", "e1")]
        assert await seeded_store.get_email("e1") is None
        assert await seeded_store.count_pending_actions() == 0

    @pytest.mark.asyncio
    async def test_failure_leaves_store_untouched(self, online, seeded_store, remote):
        remote.failing_ids["e1"] = ConnectivityError("server unavailable")

        result = await online.mutate(
            MoveAction(email_id="e1", from_mailbox_id="inbox", to_mailbox_id="archive")
        )

        assert result.ok is False
        assert isinstance(result.error, ConnectivityError)
        assert result.error_message == "server unavailable"
        assert (await seeded_store.get_email("e1")).mailbox_ids == ["inbox"]
        assert await seeded_store.count_pending_actions() == 0

    @pytest.mark.asyncio
    async def test_mirror_failure_does_not_fail_mutation(self, online, seeded_store, monkeypatch):
        async def broken_delete(email_id):
            raise StorageError("database is locked")

        monkeypatch.setattr(seeded_store, "delete_email", broken_delete)

        result = await online.mutate(DeleteAction(email_id="e2"))

        assert result.ok is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_set_flags_only_calls_given_flags(self, online, seeded_store, remote):
        result = await online.mutate(SetFlagsAction(email_id="e2", flagged=True))

        assert result.ok is True
        assert remote.calls == [("set_flagged", "e2", True)]
        email = await seeded_store.get_email("e2")
        assert email.is_flagged is True
        assert email.is_unread is False

    @pytest.mark.asyncio
    async def test_send_files_message_in_sent(self, online, seeded_store, remote):
        result = await online.mutate(
            SendAction(from_addr="me@example.com", to_addr="bob@example.com", subject="Hi", body="Hello")
        )

        assert result.ok is True
        assert result.value == "sent-1"
        sent = await seeded_store.get_emails("sent")
        assert [e.id for e in sent] == ["sent-1"]
        assert sent[0].is_draft is False
        assert await seeded_store.get_email_body("sent-1") == "Hello"

    @pytest.mark.asyncio
    async def test_send_local_draft_never_sends_local_id(self, online, seeded_store, remote):
        draft = await seeded_store.save_local_draft(LocalDraft(id="local-abc", subject="Hi"))

        result = await online.mutate(
            SendAction(draft_id=draft.id, to_addr="bob@example.com", subject="Hi", body="Hello")
        )

        assert result.ok is True
        assert remote.calls[0][:2] == ("send_email", None)
        assert await seeded_store.get_local_draft("local-abc") is None

    @pytest.mark.asyncio
    async def test_save_new_draft_files_in_drafts(self, online, seeded_store):
        result = await online.mutate(SaveDraftAction(to_addr="bob@example.com", subject="Plan"))

        assert result.value == "draft-1"
        drafts = await seeded_store.get_emails("drafts")
        assert [e.id for e in drafts] == ["draft-1"]
        assert drafts[0].is_draft is True
        assert drafts[0].subject == "Plan"

    @pytest.mark.asyncio
    async def test_save_existing_server_draft_updates_row(self, online, seeded_store, remote):
        await seeded_store.save_emails([make_email("d1", mailbox_ids=["drafts"], is_draft=True)])

        result = await online.mutate(SaveDraftAction(draft_id="d1", subject="Edited"))

        assert result.value == "d1"
        assert remote.calls[0][:2] == ("save_draft", "d1")
        assert [e.subject for e in await seeded_store.get_emails("drafts")] == ["Edited"]

    @pytest.mark.asyncio
    async def test_delete_local_draft_never_reaches_server(self, online, seeded_store, remote):
        draft = await seeded_store.save_local_draft(LocalDraft(id="local-gone", subject="Hi"))

        result = await online.mutate(DeleteAction(email_id=draft.id))

        assert result.ok is True
        assert remote.calls == []
        assert await seeded_store.get_local_drafts() == []

    @pytest.mark.asyncio
    async def test_failure_is_logged_through_error_handler(self, online, remote, caplog):
        remote.failing_ids["e1"] = ConnectivityError("server unavailable")

        with caplog.at_level(logging.ERROR, logger="mailcache.utils.errors"):
            await online.mutate(DeleteAction(email_id="e1"))

        assert "delete: server unavailable" in caplog.messages

    @pytest.mark.asyncio
    async def test_invalid_action_is_reported_not_raised(self, online, remote):
        raw = {"type": "move", "email_id": "e1", "from_mailbox_id": "inbox", "to_mailbox_id": "inbox"}

        result = await online.mutate(raw)

        assert result.ok is False
        assert isinstance(result.error, ValidationError)
        assert result.action == raw
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_send_without_recipient_is_invalid(self, online, remote):
        result = await online.mutate({"type": "send", "to_addr": "  ", "subject": "Hi"})

        assert result.ok is False
        assert isinstance(result.error, ValidationError)
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_mutations_are_serialised(self, online, remote):
        """At most one mutating remote call is in flight"""
        remote.delay = 0.01

        results = await asyncio.gather(
            online.mutate(SetFlagsAction(email_id="e1", unread=True)),
            online.mutate(SetFlagsAction(email_id="e2", unread=True)),
            online.mutate(DeleteAction(email_id="e3")),
        )

        assert all(r.ok for r in results)
        assert remote.max_in_flight == 1
        assert len(remote.calls) == 3


class TestOfflineMutations:
    """Local effect plus queue entry"""

    @pytest.mark.asyncio
    async def test_delete_is_queued_and_visible(self, offline_coordinator, seeded_store, remote):
        result = await offline_coordinator.mutate(DeleteAction(email_id="e1"))

        assert result.ok is True
        assert result.queued is True
        assert remote.calls == []

        page = await offline_coordinator.load_emails("inbox", 0)
        assert [e.id for e in page.emails] == ["e2", "e3"]
        assert await seeded_store.count_pending_actions() == 1

    @pytest.mark.asyncio
    async def test_compose_returns_local_id(self, offline_coordinator, seeded_store):
        result = await offline_coordinator.mutate(
            SendAction(to_addr="bob@example.com", subject="Hi", body="Hello")
        )

        assert result.queued is True
        assert is_local_id(result.value)
        assert result.action.draft_id is None
        assert (await seeded_store.get_local_draft(result.value)).body == "Hello"

    @pytest.mark.asyncio
    async def test_delete_local_draft_is_discarded_not_queued(self, offline_coordinator, seeded_store):
        saved = await offline_coordinator.mutate(SaveDraftAction(subject="Hi"))

        result = await offline_coordinator.mutate(DeleteAction(email_id=saved.value))

        assert result.ok is True
        assert result.queued is False
        assert result.value == saved.value
        assert await seeded_store.get_local_drafts() == []
        assert await seeded_store.count_pending_actions() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported(self, offline_coordinator, seeded_store, monkeypatch):
        async def broken_record(action):
            raise StorageError("disk full")

        monkeypatch.setattr(seeded_store, "record_offline_mutation", broken_record)

        result = await offline_coordinator.mutate(DeleteAction(email_id="e1"))

        assert result.ok is False
        assert isinstance(result.error, StorageError)


class TestArchive:
    """Archive helper resolves the archive-role mailbox"""

    @pytest.mark.asyncio
    async def test_archive_moves_to_archive_role(self, online, seeded_store, remote):
        result = await online.archive("e1", "inbox")

        assert result.ok is True
        assert remote.calls == [("move_email", "e1", "inbox", "archive")]
        assert [e.id for e in await seeded_store.get_emails("archive")] == ["e1"]

    @pytest.mark.asyncio
    async def test_archive_without_archive_mailbox(self, store, remote):
        coordinator = SyncCoordinator(store, remote, ConnectivityMode.ONLINE)

        result = await coordinator.archive("e1", "inbox")

        assert result.ok is False
        assert isinstance(result.error, ValidationError)
        assert remote.calls == []


class TestQueuePendingAction:
    """Append-only queueing"""

    @pytest.mark.asyncio
    async def test_queues_without_local_effect(self, offline_coordinator, seeded_store):
        pending = await offline_coordinator.queue_pending_action(DeleteAction(email_id="e1"))

        assert pending.target_email_id == "e1"
        assert await seeded_store.get_email("e1") is not None
        assert await seeded_store.count_pending_actions() == 1

    @pytest.mark.asyncio
    async def test_rejects_invalid_action(self, offline_coordinator):
        with pytest.raises(ValidationError):
            await offline_coordinator.queue_pending_action({"type": "set_flags", "email_id": "e1"})
