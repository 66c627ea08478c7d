"""Remote mail service interface consumed by the sync layer."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from mailcache.core.models import Email, Mailbox
from mailcache.utils.errors import ConnectivityError, MailCacheError
from mailcache.utils.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


class RemoteAdapter(ABC):
    """Abstract base for a remote mail service client.

    Implementations own the wire protocol, authentication and timeouts. They
    should raise :class:`ConnectivityError` on failure, or
    :class:`RemoteNotFoundError` when the target item no longer exists.
    """

    @abstractmethod
    async def fetch_mailboxes(self) -> List[Mailbox]:
        """Fetch the full mailbox list.

        Returns:
            List[Mailbox]: Every mailbox on the account.
        """
        pass

    @abstractmethod
    async def fetch_emails(self, mailbox_id: str, offset: int) -> List[Email]:
        """Fetch one fixed-size page of a mailbox, newest first.

        Args:
            mailbox_id (str): The mailbox to list.
            offset (int): Number of emails to skip.

        Returns:
            List[Email]: At most one page of emails, each with its full
            ``mailbox_ids`` list.
        """
        pass

    @abstractmethod
    async def fetch_email_body(self, email_id: str) -> str:
        """Fetch the plain-text body of an email.

        Args:
            email_id (str): The email ID.

        Returns:
            str: The body text.
        """
        pass

    @abstractmethod
    async def send_email(
        self,
        draft_id: Optional[str],
        from_addr: str,
        to_addr: str,
        subject: str,
        body: str,
    ) -> str:
        """Send a message, optionally replacing an existing server draft.

        Args:
            draft_id (Optional[str]): Server draft to send from, if any.
            from_addr (str): Sender address.
            to_addr (str): Recipient addresses.
            subject (str): Subject line.
            body (str): Plain-text body.

        Returns:
            str: Server ID of the sent message.
        """
        pass

    @abstractmethod
    async def save_draft(
        self,
        draft_id: Optional[str],
        from_addr: str,
        to_addr: str,
        subject: str,
        body: str,
    ) -> str:
        """Create or replace a server draft.

        Returns:
            str: Server ID of the saved draft, which may differ from
            ``draft_id``.
        """
        pass

    @abstractmethod
    async def delete_email(self, email_id: str) -> None:
        pass

    @abstractmethod
    async def move_email(
        self, email_id: str, from_mailbox_id: str, to_mailbox_id: str
    ) -> None:
        pass

    @abstractmethod
    async def set_unread(self, email_id: str, unread: bool) -> None:
        pass

    @abstractmethod
    async def set_flagged(self, email_id: str, flagged: bool) -> None:
        pass


async def call_remote(
    operation: str, func: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any
) -> R:
    """Await a remote call, normalising failures to ConnectivityError.

    Errors already in the mailcache hierarchy pass through unchanged.
    """
    try:
        return await func(*args, **kwargs)
    except MailCacheError:
        raise
    except Exception as e:
        logger.warning(f"Remote {operation} failed: {type(e).__name__}: {e}")
        raise ConnectivityError(
            f"Remote {operation} failed: {e}",
            details={"operation": operation, "error_type": type(e).__name__},
        ) from e
