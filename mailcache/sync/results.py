"""Values returned by the sync coordinator."""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, List, Optional

from mailcache.core.models import Email, PendingAction
from mailcache.utils.errors import ReplayHaltError, format_error_message


class ConnectivityMode(Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class RequestTag:
    """Identifies the presentation request a result belongs to.

    ``epoch`` is the list state's selection generation when the request was
    issued; results from an older epoch are stale.
    """

    request_id: int
    mailbox_id: Optional[str] = None
    epoch: int = 0

    _ids: ClassVar[Any] = itertools.count(1)

    @classmethod
    def new(cls, mailbox_id: Optional[str] = None, epoch: int = 0) -> "RequestTag":
        return cls(request_id=next(cls._ids), mailbox_id=mailbox_id, epoch=epoch)


@dataclass
class EmailPage:
    """One page of a mailbox listing.

    ``has_more`` is true exactly when the page is full-sized, so a final page
    of exactly ``PAGE_SIZE`` emails still reports more.
    """

    mailbox_id: str
    offset: int
    emails: List[Email]
    has_more: bool
    tag: Optional[RequestTag] = None
    mode: ConnectivityMode = ConnectivityMode.ONLINE

    @property
    def next_offset(self) -> int:
        return self.offset + len(self.emails)


@dataclass
class MutationResult:
    """Outcome of one mutating request, tagged with the request that issued it."""

    action: Any
    ok: bool
    tag: Optional[RequestTag] = None
    value: Optional[str] = None
    error: Optional[BaseException] = None
    queued: bool = False

    @property
    def error_message(self) -> Optional[str]:
        return format_error_message(self.error) if self.error else None


class ReplayStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


@dataclass
class ReplayOutcome:
    pending: PendingAction
    status: ReplayStatus
    remote_id: Optional[str] = None
    error: Optional[BaseException] = None
    # Set when the server no longer had the target and the action was dropped
    remote_missing: bool = False


@dataclass
class ReplayReport:
    """Per-action outcome of one replay run, in queue order."""

    outcomes: List[ReplayOutcome] = field(default_factory=list)
    halt_error: Optional[ReplayHaltError] = None

    def _with_status(self, status: ReplayStatus) -> List[ReplayOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[ReplayOutcome]:
        return self._with_status(ReplayStatus.SUCCEEDED)

    @property
    def failed(self) -> Optional[ReplayOutcome]:
        failed = self._with_status(ReplayStatus.FAILED)
        return failed[0] if failed else None

    @property
    def not_attempted(self) -> List[ReplayOutcome]:
        return self._with_status(ReplayStatus.NOT_ATTEMPTED)

    @property
    def halted(self) -> bool:
        return self.halt_error is not None

    @property
    def halted_at(self) -> Optional[PendingAction]:
        return self.failed.pending if self.failed else None

    def raise_for_halt(self) -> None:
        if self.halt_error is not None:
            raise self.halt_error
