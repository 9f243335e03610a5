from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

HeaderValue = Union[str, list[str]]


@dataclass(frozen=True)
class MailboxSnapshot:
    # Read once, right after SELECT
    total_messages: int


@dataclass(frozen=True)
class RawMessage:
    sequence: int
    uid: Optional[int]
    source: bytes


@dataclass(frozen=True)
class NormalizedMessage:
    uid: str
    message_id: Optional[str]
    sender: str
    sender_email: str
    sender_name: str
    recipient: str
    subject: str
    body_text: str
    body_html: str
    received_at: datetime
    headers: Mapping[str, HeaderValue]
    in_reply_to: Optional[str] = None
    references: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON shape returned to gateway clients."""
        return {
            "uid": self.uid,
            "messageId": self.message_id,
            "sender": self.sender,
            "senderEmail": self.sender_email,
            "senderName": self.sender_name,
            "recipient": self.recipient,
            "subject": self.subject,
            "body": self.body_text,
            "htmlBody": self.body_html,
            "receivedAt": format_timestamp(self.received_at),
            "headers": {k: (list(v) if isinstance(v, list) else v) for k, v in self.headers.items()},
            "inReplyTo": self.in_reply_to,
            "references": self.references,
        }


@dataclass(frozen=True)
class FetchResult:
    total_messages: int
    fetched_messages: list[NormalizedMessage] = field(default_factory=list)

    @property
    def new_messages(self) -> int:
        return len(self.fetched_messages)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-01-15T15:30:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
