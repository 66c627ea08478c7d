"""Optimistic message-list state for a presentation layer.

A mutation is split in three steps:

1. ``hypothesize_*`` applies the expected effect to the list and returns a
   :class:`Hypothesis` describing how to undo it;
2. the caller awaits :meth:`SyncCoordinator.mutate` with the same tag;
3. :func:`reconcile` keeps the hypothesis on success, or reverts it and
   records the error on failure.

Every function here is pure: states are frozen and each transition returns
a new one. Results whose tag belongs to an older selection are ignored.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from mailcache.core.models import Email

from .results import EmailPage, MutationResult, RequestTag


@dataclass(frozen=True)
class MessageListState:
    mailbox_id: Optional[str] = None
    emails: Tuple[Email, ...] = ()
    cursor: int = 0
    # Offset of the next page to request
    offset: int = 0
    can_load_more: bool = False
    epoch: int = 0
    # Unacknowledged failure shown to the user
    error: Optional[str] = None

    @property
    def selected(self) -> Optional[Email]:
        if not self.emails:
            return None
        return self.emails[self.cursor]

    def index_of(self, email_id: str) -> int:
        for index, email in enumerate(self.emails):
            if email.id == email_id:
                return index
        return -1

    def new_tag(self) -> RequestTag:
        """Tag for a request issued against the current selection."""
        return RequestTag.new(mailbox_id=self.mailbox_id, epoch=self.epoch)

    def is_current(self, tag: Optional[RequestTag]) -> bool:
        return (
            tag is not None
            and tag.epoch == self.epoch
            and tag.mailbox_id == self.mailbox_id
        )


class HypothesisKind(Enum):
    REMOVAL = "removal"
    FLAGS = "flags"


@dataclass(frozen=True)
class Hypothesis:
    kind: HypothesisKind
    # The email as it was before the hypothesis was applied
    original: Email
    index: int
    tag: RequestTag


def _clamp(cursor: int, length: int) -> int:
    if length == 0:
        return 0
    return max(0, min(cursor, length - 1))


## Navigation


def select_mailbox(state: MessageListState, mailbox_id: str) -> MessageListState:
    """Switch mailbox. Bumps the epoch so in-flight results become stale."""
    return replace(
        state,
        mailbox_id=mailbox_id,
        emails=(),
        cursor=0,
        offset=0,
        can_load_more=False,
        epoch=state.epoch + 1,
    )


def move_cursor(state: MessageListState, delta: int) -> MessageListState:
    """Move the selection. Never blocked by a pending error."""
    return replace(state, cursor=_clamp(state.cursor + delta, len(state.emails)))


def apply_page(state: MessageListState, page: EmailPage) -> MessageListState:
    """Append a fetched page, or replace the list for offset 0.

    Pages for another selection are dropped unchanged.
    """
    if not state.is_current(page.tag) or page.mailbox_id != state.mailbox_id:
        return state

    if page.offset == 0:
        emails = tuple(page.emails)
    else:
        known = {email.id for email in state.emails}
        emails = state.emails + tuple(e for e in page.emails if e.id not in known)

    return replace(
        state,
        emails=emails,
        cursor=_clamp(state.cursor, len(emails)),
        offset=page.next_offset,
        can_load_more=page.has_more,
    )


def apply_refresh(state: MessageListState, page: EmailPage) -> MessageListState:
    """Replace the list with a refreshed first page, keeping the selected email."""
    if not state.is_current(page.tag) or page.mailbox_id != state.mailbox_id:
        return state

    selected = state.selected
    emails = tuple(page.emails)
    cursor = state.cursor

    if selected is not None:
        for index, email in enumerate(emails):
            if email.id == selected.id:
                cursor = index
                break

    return replace(
        state,
        emails=emails,
        cursor=_clamp(cursor, len(emails)),
        offset=len(emails),
        can_load_more=page.has_more,
    )


## Hypotheses


def hypothesize_removal(
    state: MessageListState, email_id: str, tag: RequestTag
) -> Tuple[MessageListState, Hypothesis]:
    """Remove an email from view ahead of a delete, move or archive.

    Raises:
        ValueError: If the email is not in the list.
    """
    index = state.index_of(email_id)
    if index < 0:
        raise ValueError(f"Email {email_id} is not in the list")

    emails = state.emails[:index] + state.emails[index + 1 :]
    hypothesis = Hypothesis(HypothesisKind.REMOVAL, state.emails[index], index, tag)

    new_state = replace(
        state,
        emails=emails,
        cursor=_clamp(state.cursor - 1 if index < state.cursor else state.cursor, len(emails)),
        offset=max(0, state.offset - 1),
    )
    return new_state, hypothesis


def hypothesize_flags(
    state: MessageListState,
    email_id: str,
    tag: RequestTag,
    unread: Optional[bool] = None,
    flagged: Optional[bool] = None,
) -> Tuple[MessageListState, Hypothesis]:
    """Show new flag values ahead of a set_flags call.

    Raises:
        ValueError: If the email is not in the list.
    """
    index = state.index_of(email_id)
    if index < 0:
        raise ValueError(f"Email {email_id} is not in the list")

    original = state.emails[index]
    updated = replace(
        original,
        is_unread=original.is_unread if unread is None else unread,
        is_flagged=original.is_flagged if flagged is None else flagged,
    )

    emails = state.emails[:index] + (updated,) + state.emails[index + 1 :]
    return replace(state, emails=emails), Hypothesis(HypothesisKind.FLAGS, original, index, tag)


## Reconciliation


def _revert(state: MessageListState, hypothesis: Hypothesis) -> MessageListState:
    original = hypothesis.original

    if hypothesis.kind == HypothesisKind.FLAGS:
        index = state.index_of(original.id)
        if index < 0:
            return state
        emails = state.emails[:index] + (original,) + state.emails[index + 1 :]
        return replace(state, emails=emails)

    if state.index_of(original.id) >= 0:
        return state

    index = min(hypothesis.index, len(state.emails))
    emails = state.emails[:index] + (original,) + state.emails[index:]
    cursor = state.cursor + 1 if index < state.cursor else state.cursor

    return replace(
        state,
        emails=emails,
        cursor=_clamp(cursor, len(emails)),
        offset=state.offset + 1,
    )


def reconcile(
    state: MessageListState, hypothesis: Optional[Hypothesis], result: MutationResult
) -> MessageListState:
    """Commit or revert a hypothesis from the mutation's result.

    A failure is always recorded in ``error``, even when the hypothesis
    belongs to a selection that is no longer shown; the list itself is only
    reverted when it still is.
    """
    if result.ok:
        return state

    if hypothesis is not None and state.is_current(hypothesis.tag):
        state = _revert(state, hypothesis)

    return replace(state, error=result.error_message or "Action failed")


def acknowledge_error(state: MessageListState) -> MessageListState:
    return replace(state, error=None)
