"""Domain models, entities and errors."""

from imapbridge.domain.entities.credentials import (
    ConnectionDescriptor,
    CredentialConfig,
    SecurityMode,
    Timeouts,
)
from imapbridge.domain.entities.email_message import (
    FetchResult,
    MailboxSnapshot,
    NormalizedMessage,
    RawMessage,
)
from imapbridge.domain.errors import (
    ErrorKind,
    ImapBridgeError,
    MailboxError,
    ParseError,
    classify_error,
)

__all__ = [
    "SecurityMode",
    "CredentialConfig",
    "Timeouts",
    "ConnectionDescriptor",
    "MailboxSnapshot",
    "RawMessage",
    "NormalizedMessage",
    "FetchResult",
    "ErrorKind",
    "ImapBridgeError",
    "MailboxError",
    "ParseError",
    "classify_error",
]
