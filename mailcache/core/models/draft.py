"""Local (unsynced) draft model"""

import uuid
from dataclasses import dataclass
from typing import Optional

LOCAL_ID_PREFIX = "local-"


def new_local_id() -> str:
    """Generate a local-only draft identifier."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(value: Optional[str]) -> bool:
    """Whether an identifier was minted locally and is unknown to the server."""
    return bool(value) and value.startswith(LOCAL_ID_PREFIX)


@dataclass
class LocalDraft:
    """Draft composed while offline; lives until promoted or discarded."""

    id: str
    from_addr: str = ""
    to_addr: str = ""
    subject: str = ""
    body: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        if not is_local_id(self.id):
            raise ValueError(f"Local draft IDs must start with '{LOCAL_ID_PREFIX}': {self.id}")

    def preview(self, max_length: int = 100) -> str:
        """First line-ish of the body for list display."""
        text = " ".join(self.body.split())
        if len(text) <= max_length:
            return text
        return text[: max_length - 3] + "..."
