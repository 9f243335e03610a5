from __future__ import annotations

from typing import Callable, Iterator, Optional

from imapbridge.domain.entities.credentials import ConnectionDescriptor
from imapbridge.domain.entities.email_message import MailboxSnapshot, RawMessage


class MailboxSession:
    """One IMAP session: connect, select a mailbox, fetch by sequence range, log out.

    Sessions are context managers; leaving the ``with`` block always logs out,
    whether the body completed or raised.
    """

    def connect(self) -> None:
        raise NotImplementedError

    def open_mailbox(self, name: str = "INBOX") -> MailboxSnapshot:
        raise NotImplementedError

    def fetch_range(self, start: int, end: int) -> Iterator[RawMessage]:
        raise NotImplementedError

    def logout(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "MailboxSession":
        try:
            self.connect()
        except BaseException:
            self.logout()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.logout()
        return None


SessionFactory = Callable[[ConnectionDescriptor], MailboxSession]
