"""Open a mailbox from SMTP-style credentials and return its most recent messages."""

from __future__ import annotations

from loguru import logger

from imapbridge.application.ports.mailbox_session import SessionFactory
from imapbridge.domain.entities.credentials import ConnectionDescriptor, CredentialConfig
from imapbridge.domain.entities.email_message import FetchResult, MailboxSnapshot, NormalizedMessage
from imapbridge.domain.errors import ParseError, classify_error
from imapbridge.infrastructure.email.imap_config import derive_imap_config
from imapbridge.infrastructure.email.providers.imap import ImapMailboxSession, normalize_message

DEFAULT_WINDOW_SIZE = 50


def retrieval_window(total: int, window_size: int) -> tuple[int, int]:
    """Sequence range ``(start, end)`` covering the trailing ``window_size`` messages."""
    return max(1, total - window_size + 1), total


class MailboxFetchUseCase:
    """Test or read a mailbox within a single, request-scoped IMAP session.

    Flow:
    1. Derive IMAP parameters from the submitted SMTP account
    2. Connect, log in and select the mailbox (read-only)
    3. Fetch the trailing window by sequence number, oldest first
    4. Normalize each message; unparseable ones are logged and skipped
    5. Log out, whatever happened above

    There is no high-water mark: every call re-reads the whole window.
    """

    def __init__(
        self,
        session_factory: SessionFactory = ImapMailboxSession,
        window_size: int = DEFAULT_WINDOW_SIZE,
        mailbox: str = "INBOX",
        verify_certificates: bool = False,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self.session_factory = session_factory
        self.window_size = window_size
        self.mailbox = mailbox
        self.verify_certificates = verify_certificates

    def descriptor_for(self, cred: CredentialConfig) -> ConnectionDescriptor:
        return derive_imap_config(cred, verify_certificates=self.verify_certificates)

    def test_connection(
        self, cred: CredentialConfig, descriptor: ConnectionDescriptor | None = None
    ) -> MailboxSnapshot:
        """Connect, select the mailbox and disconnect without reading any message."""
        descriptor = descriptor or self.descriptor_for(cred)
        try:
            with self.session_factory(descriptor) as session:
                return session.open_mailbox(self.mailbox)
        except Exception as e:
            error = classify_error(e)
            logger.warning(f"Connection test to {descriptor.host}:{descriptor.port} failed ({error.kind.value}): {error.details}")
            raise error from e

    def fetch_recent(
        self,
        cred: CredentialConfig,
        window_size: int | None = None,
        descriptor: ConnectionDescriptor | None = None,
    ) -> FetchResult:
        """Return the trailing window of the mailbox, in ascending sequence order.

        ``descriptor`` may be passed when the caller already derived it from ``cred``.
        """
        size = self.window_size if window_size is None else window_size
        if size < 1:
            raise ValueError(f"window_size must be positive, got {size}")
        descriptor = descriptor or self.descriptor_for(cred)
        try:
            with self.session_factory(descriptor) as session:
                snapshot = session.open_mailbox(self.mailbox)
                if snapshot.total_messages == 0:
                    return FetchResult(total_messages=0, fetched_messages=[])

                start, end = retrieval_window(snapshot.total_messages, size)
                logger.info(f"Fetching messages {start}:{end} of {snapshot.total_messages} from {self.mailbox}")

                messages: list[NormalizedMessage] = []
                skipped = 0
                for raw in session.fetch_range(start, end):
                    try:
                        messages.append(normalize_message(raw, account=cred.username))
                    except ParseError as e:
                        skipped += 1
                        logger.warning(f"Skipping message {raw.sequence}: {e}")

                logger.info(f"Fetched {len(messages)} messages ({skipped} skipped)")
                return FetchResult(total_messages=snapshot.total_messages, fetched_messages=messages)
        except Exception as e:
            error = classify_error(e)
            logger.error(f"IMAP error for {descriptor.host}:{descriptor.port} ({error.kind.value}): {error.details}")
            raise error from e
