"""Mutating mail actions and the pending-action queue entry.

Every write the client can make is one of five action variants, discriminated
by ``type``. The same objects are used for online calls, for offline queue
entries and for replay, so a queued payload is always a validated action and
never a free-form blob.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from mailcache.utils.errors import ValidationError


class ActionType(str, Enum):
    """Kinds of mutating actions."""

    SEND = "send"
    SAVE_DRAFT = "save_draft"
    DELETE = "delete"
    MOVE = "move"
    SET_FLAGS = "set_flags"


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Name of the field holding the targeted email/draft id
    TARGET_FIELD: ClassVar[str] = "email_id"

    @property
    def action_type(self) -> ActionType:
        return ActionType(self.type)

    @property
    def target_email_id(self) -> Optional[str]:
        return getattr(self, self.TARGET_FIELD)

    def retarget(self, new_id: str) -> "_Action":
        """Copy of this action pointing at another email id."""
        return self.model_copy(update={self.TARGET_FIELD: new_id})

    def payload(self) -> Dict[str, Any]:
        """Action-specific fields, without the type tag and target id."""
        return self.model_dump(mode="json", exclude={"type", self.TARGET_FIELD})


class DeleteAction(_Action):
    type: Literal["delete"] = "delete"
    email_id: str = Field(min_length=1)


class MoveAction(_Action):
    type: Literal["move"] = "move"
    email_id: str = Field(min_length=1)
    from_mailbox_id: str = Field(min_length=1)
    to_mailbox_id: str = Field(min_length=1)

    @model_validator(mode="after")
    def _distinct_mailboxes(self) -> "MoveAction":
        if self.from_mailbox_id == self.to_mailbox_id:
            raise ValueError("source and destination mailbox must differ")
        return self


class SetFlagsAction(_Action):
    type: Literal["set_flags"] = "set_flags"
    email_id: str = Field(min_length=1)
    unread: Optional[bool] = None
    flagged: Optional[bool] = None

    @model_validator(mode="after")
    def _at_least_one_flag(self) -> "SetFlagsAction":
        if self.unread is None and self.flagged is None:
            raise ValueError("at least one of unread/flagged must be set")
        return self


class _ComposeAction(_Action):
    TARGET_FIELD: ClassVar[str] = "draft_id"

    # Remote draft id, local draft id, or None for a fresh message
    draft_id: Optional[str] = None
    from_addr: str = ""
    to_addr: str = ""
    subject: str = ""
    body: str = ""


class SendAction(_ComposeAction):
    type: Literal["send"] = "send"

    @model_validator(mode="after")
    def _has_recipient(self) -> "SendAction":
        if not self.to_addr.strip():
            raise ValueError("a recipient is required to send")
        return self


class SaveDraftAction(_ComposeAction):
    type: Literal["save_draft"] = "save_draft"


MailAction = Annotated[
    Union[SendAction, SaveDraftAction, DeleteAction, MoveAction, SetFlagsAction],
    Field(discriminator="type"),
]

_action_adapter: TypeAdapter = TypeAdapter(MailAction)

COMPOSE_TYPES = (ActionType.SEND, ActionType.SAVE_DRAFT)


def parse_action(data: Any) -> MailAction:
    """Validate a dict (or an action) into a concrete action variant.

    Raises:
        ValidationError: If the type tag is unknown or a field is invalid.
    """
    if isinstance(data, _Action):
        data = data.model_dump()

    type_ = data.get("type", "unknown") if isinstance(data, dict) else "unknown"

    try:
        return _action_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {type_} action",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def action_from_row(type_: str, email_id: Optional[str], data: Optional[Dict[str, Any]]) -> MailAction:
    """Rebuild an action from its stored columns."""
    fields = dict(data or {})
    fields["type"] = type_
    target_field = "draft_id" if type_ in (t.value for t in COMPOSE_TYPES) else "email_id"
    fields[target_field] = email_id
    return parse_action(fields)


@dataclass
class PendingAction:
    """A queued action recorded while offline, consumed once on replay."""

    id: int
    action: MailAction
    created_at: str

    @property
    def type(self) -> ActionType:
        return self.action.action_type

    @property
    def target_email_id(self) -> Optional[str]:
        return self.action.target_email_id
