"""Shared fixtures for imapbridge tests."""

from __future__ import annotations

from typing import Iterator, Optional

import pytest

from imapbridge.application.ports.mailbox_session import MailboxSession
from imapbridge.domain.entities.credentials import ConnectionDescriptor, CredentialConfig
from imapbridge.domain.entities.email_message import MailboxSnapshot, RawMessage

SIMPLE_MESSAGE = (
    b"Received: from relay2.example.net by mx.example.com; Mon, 15 Jan 2024 10:30:02 -0500\r\n"
    b"Received: from mail.sender.org by relay2.example.net; Mon, 15 Jan 2024 10:30:01 -0500\r\n"
    b"From: Alice Sender <alice@sender.org>\r\n"
    b"To: Bob <bob@example.com>\r\n"
    b"Subject: Quarterly report\r\n"
    b"Date: Mon, 15 Jan 2024 10:30:00 -0500\r\n"
    b"Message-ID: <msg001@sender.org>\r\n"
    b"In-Reply-To: <msg000@example.com>\r\n"
    b"References: <thread@example.com> <msg000@example.com>\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Hello Bob,\r\nthe report is attached.\r\n"
)

MULTIPART_MESSAGE = (
    b"From: news@example.org\r\n"
    b"To: bob@example.com\r\n"
    b"Subject: =?utf-8?q?Caf=C3=A9_news?=\r\n"
    b"Date: Tue, 16 Jan 2024 08:00:00 +0000\r\n"
    b"MIME-Version: 1.0\r\n"
    b'Content-Type: multipart/alternative; boundary="XYZ"\r\n'
    b"\r\n"
    b"--XYZ\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Plain body\r\n"
    b"--XYZ\r\n"
    b"Content-Type: text/html; charset=utf-8\r\n"
    b"\r\n"
    b"<p>HTML body</p>\r\n"
    b"--XYZ--\r\n"
)

BARE_MESSAGE = b"X-Mailer: test\r\n\r\nNo headers worth mentioning.\r\n"


def make_raw(sequence: int, source: bytes = SIMPLE_MESSAGE, uid: Optional[int] = None) -> RawMessage:
    return RawMessage(sequence=sequence, uid=uid if uid is not None else 1000 + sequence, source=source)


class FakeMailboxSession(MailboxSession):
    """In-memory mailbox that records how it was used."""

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        total: int = 0,
        sources: Optional[dict[int, bytes]] = None,
        connect_error: Optional[BaseException] = None,
        fetch_error: Optional[BaseException] = None,
    ) -> None:
        self.descriptor = descriptor
        self.total = total
        self.sources = sources or {}
        self.connect_error = connect_error
        self.fetch_error = fetch_error
        self.connected = False
        self.logged_out = False
        self.selected: Optional[str] = None
        self.fetched_ranges: list[tuple[int, int]] = []

    def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def open_mailbox(self, name: str = "INBOX") -> MailboxSnapshot:
        self.selected = name
        return MailboxSnapshot(total_messages=self.total)

    def fetch_range(self, start: int, end: int) -> Iterator[RawMessage]:
        self.fetched_ranges.append((start, end))
        if self.fetch_error is not None:
            raise self.fetch_error
        for seq in range(start, end + 1):
            yield make_raw(seq, self.sources.get(seq, SIMPLE_MESSAGE))

    def logout(self) -> None:
        self.logged_out = True


class SessionRecorder:
    """Session factory that remembers every session it created."""

    def __init__(self, **session_kwargs) -> None:
        self.session_kwargs = session_kwargs
        self.sessions: list[FakeMailboxSession] = []

    def __call__(self, descriptor: ConnectionDescriptor) -> FakeMailboxSession:
        session = FakeMailboxSession(descriptor, **self.session_kwargs)
        self.sessions.append(session)
        return session

    @property
    def last(self) -> FakeMailboxSession:
        return self.sessions[-1]


@pytest.fixture
def credentials() -> CredentialConfig:
    """SSL account on an smtp.* host."""
    return CredentialConfig(
        host="smtp.example.com",
        username="bob@example.com",
        password="s3cret-pass",
        security="SSL",
    )


@pytest.fixture
def email_config_body() -> dict:
    """The ``emailConfig`` object as a client would send it."""
    return {
        "host": "smtp.example.com",
        "port": 465,
        "username": "bob@example.com",
        "password": "s3cret-pass",
        "security": "SSL",
    }
