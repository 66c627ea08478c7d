"""Domain models for the mail cache."""

from .actions import (
    COMPOSE_TYPES,
    ActionType,
    DeleteAction,
    MailAction,
    MoveAction,
    PendingAction,
    SaveDraftAction,
    SendAction,
    SetFlagsAction,
    parse_action,
)
from .draft import LocalDraft, is_local_id, new_local_id
from .email import Email
from .mailbox import Mailbox, MailboxRole

__all__ = [
    "COMPOSE_TYPES",
    "ActionType",
    "DeleteAction",
    "Email",
    "LocalDraft",
    "MailAction",
    "Mailbox",
    "MailboxRole",
    "MoveAction",
    "PendingAction",
    "SaveDraftAction",
    "SendAction",
    "SetFlagsAction",
    "is_local_id",
    "new_local_id",
    "parse_action",
]
