from __future__ import annotations

import imaplib
import re
import ssl
from typing import Iterator, Optional

from loguru import logger

from imapbridge.application.ports.mailbox_session import MailboxSession
from imapbridge.domain.entities.credentials import ConnectionDescriptor, Timeouts
from imapbridge.domain.entities.email_message import MailboxSnapshot, RawMessage

_FETCH_SEQ = re.compile(rb"^(\d+) \(")
_FETCH_UID = re.compile(rb"UID (\d+)")


def build_ssl_context(verify: bool) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if not verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


class _GreetingTimeoutMixin:
    """Connect under the connect timeout, then wait for the banner under the greeting timeout."""

    _timeouts: Timeouts

    def _create_socket(self, timeout):
        sock = super()._create_socket(timeout)
        sock.settimeout(self._timeouts.greeting)
        return sock


class _IMAP4(_GreetingTimeoutMixin, imaplib.IMAP4):
    def __init__(self, host: str, port: int, timeouts: Timeouts) -> None:
        self._timeouts = timeouts
        super().__init__(host, port, timeout=timeouts.connect)


class _IMAP4_SSL(_GreetingTimeoutMixin, imaplib.IMAP4_SSL):
    def __init__(self, host: str, port: int, timeouts: Timeouts, ssl_context: ssl.SSLContext) -> None:
        self._timeouts = timeouts
        super().__init__(host, port, ssl_context=ssl_context, timeout=timeouts.connect)


class ImapMailboxSession(MailboxSession):
    """``imaplib`` backed mailbox session."""

    def __init__(self, descriptor: ConnectionDescriptor) -> None:
        self.descriptor = descriptor
        self._conn: Optional[imaplib.IMAP4] = None

    def connect(self) -> None:
        d = self.descriptor
        logger.info(f"Connecting to IMAP server {d.host}:{d.port} (tls={d.use_tls})")
        ctx = build_ssl_context(d.verify_certificates)
        if d.use_tls:
            self._conn = _IMAP4_SSL(d.host, d.port, d.timeouts, ctx)
        else:
            # Held on self before upgrading so a failed STARTTLS still gets released
            self._conn = _IMAP4(d.host, d.port, d.timeouts)
            if "STARTTLS" in self._conn.capabilities:
                logger.debug(f"Upgrading connection to {d.host} with STARTTLS")
                self._conn.starttls(ssl_context=ctx)

        self._conn.sock.settimeout(d.timeouts.socket)
        self._conn.login(d.username, d.password.get_secret_value())
        logger.info(f"Connected to IMAP server {d.host} as {d.username}")

    @property
    def conn(self) -> imaplib.IMAP4:
        if self._conn is None:
            raise imaplib.IMAP4.error("IMAP session is not connected")
        return self._conn

    def open_mailbox(self, name: str = "INBOX") -> MailboxSnapshot:
        typ, data = self.conn.select(name, readonly=True)
        if typ != "OK":
            raise imaplib.IMAP4.error(f"Failed to select mailbox {name}: {_decode(data)}")

        total = int(data[0]) if data and data[0] else 0
        logger.info(f"Mailbox {name} has {total} messages")
        return MailboxSnapshot(total_messages=total)

    def fetch_range(self, start: int, end: int) -> Iterator[RawMessage]:
        """Fetch full sources for sequence numbers ``start..end`` without setting \\Seen."""
        typ, data = self.conn.fetch(f"{start}:{end}", "(UID BODY.PEEK[])")
        if typ != "OK":
            raise imaplib.IMAP4.error(f"FETCH {start}:{end} failed: {_decode(data)}")

        messages = _parse_fetch_response(data or [])
        messages.sort(key=lambda m: m.sequence)
        yield from messages

    def logout(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"IMAP logout failed, closing socket: {e}")
            try:
                self._conn.shutdown()
            except OSError:
                pass
        finally:
            self._conn = None


def _parse_fetch_response(data: list) -> list[RawMessage]:
    """Pair ``(b'7 (UID 42 BODY[] {1234}', b'<source>')`` items into raw messages.

    Some servers send the UID after the literal, in the trailing ``b' UID 42)'`` chunk.
    """
    out: list[RawMessage] = []
    for i, item in enumerate(data):
        if not isinstance(item, tuple) or len(item) < 2:
            continue

        head, source = item[0], item[1]
        seq_match = _FETCH_SEQ.match(head)
        if not seq_match:
            continue

        uid_match = _FETCH_UID.search(head)
        if uid_match is None and i + 1 < len(data) and isinstance(data[i + 1], bytes):
            uid_match = _FETCH_UID.search(data[i + 1])

        out.append(
            RawMessage(
                sequence=int(seq_match.group(1)),
                uid=int(uid_match.group(1)) if uid_match else None,
                source=source or b"",
            )
        )
    return out


def _decode(data) -> str:
    if not data:
        return ""
    return " ".join(
        x.decode("utf-8", errors="replace") if isinstance(x, bytes) else str(x) for x in data if x is not None
    )
