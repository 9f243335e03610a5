"""Generic IMAP provider built on ``imaplib``."""

from imapbridge.infrastructure.email.providers.imap.client import ImapMailboxSession
from imapbridge.infrastructure.email.providers.imap.mapper import NO_SUBJECT, normalize_message

__all__ = ["ImapMailboxSession", "normalize_message", "NO_SUBJECT"]
