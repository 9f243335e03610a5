"""Tests for the imaplib-backed session with a mocked IMAP connection."""

from __future__ import annotations

import imaplib
import socket
import ssl
from unittest.mock import MagicMock, patch

import pytest
from pydantic import SecretStr

from imapbridge.domain.entities.credentials import ConnectionDescriptor, Timeouts
from imapbridge.domain.errors import ErrorKind, classify_error
from imapbridge.infrastructure.email.providers.imap import client as client_mod
from imapbridge.infrastructure.email.providers.imap.client import (
    ImapMailboxSession,
    _parse_fetch_response,
    build_ssl_context,
)


def _descriptor(use_tls: bool = True) -> ConnectionDescriptor:
    return ConnectionDescriptor(
        host="imap.example.com",
        port=993 if use_tls else 143,
        use_tls=use_tls,
        username="bob@example.com",
        password=SecretStr("s3cret-pass"),
        timeouts=Timeouts(connect=30.0, greeting=15.0, socket=60.0),
    )


@pytest.fixture
def mock_conn() -> MagicMock:
    conn = MagicMock()
    conn.capabilities = ("IMAP4REV1", "AUTH=PLAIN")
    conn.select.return_value = ("OK", [b"3"])
    conn.logout.return_value = ("BYE", [b"Logging out"])
    return conn


class TestConnect:
    def test_ssl_connection_and_login(self, mock_conn: MagicMock) -> None:
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn) as ssl_cls:
            with ImapMailboxSession(_descriptor()) as session:
                assert session.open_mailbox().total_messages == 3

        args = ssl_cls.call_args.args
        assert args[:3] == ("imap.example.com", 993, Timeouts(30.0, 15.0, 60.0))
        mock_conn.sock.settimeout.assert_called_with(60.0)
        mock_conn.login.assert_called_once_with("bob@example.com", "s3cret-pass")
        mock_conn.select.assert_called_once_with("INBOX", readonly=True)
        mock_conn.logout.assert_called_once()

    def test_plain_connection_upgrades_with_starttls(self, mock_conn: MagicMock) -> None:
        mock_conn.capabilities = ("IMAP4REV1", "STARTTLS")
        with patch.object(client_mod, "_IMAP4", return_value=mock_conn):
            with ImapMailboxSession(_descriptor(use_tls=False)):
                pass

        mock_conn.starttls.assert_called_once()

    def test_failed_starttls_still_releases_connection(self, mock_conn: MagicMock) -> None:
        mock_conn.capabilities = ("IMAP4REV1", "STARTTLS")
        mock_conn.starttls.side_effect = OSError("handshake failed")
        mock_conn.logout.side_effect = OSError("not connected")
        with patch.object(client_mod, "_IMAP4", return_value=mock_conn):
            with pytest.raises(OSError, match="handshake failed"):
                with ImapMailboxSession(_descriptor(use_tls=False)):
                    pass

        mock_conn.logout.assert_called_once()
        mock_conn.shutdown.assert_called_once()
        mock_conn.login.assert_not_called()

    def test_plain_connection_without_starttls(self, mock_conn: MagicMock) -> None:
        with patch.object(client_mod, "_IMAP4", return_value=mock_conn):
            with ImapMailboxSession(_descriptor(use_tls=False)):
                pass

        mock_conn.starttls.assert_not_called()

    def test_login_failure_still_logs_out(self, mock_conn: MagicMock) -> None:
        mock_conn.login.side_effect = imaplib.IMAP4.error(b"[AUTHENTICATIONFAILED] Invalid credentials")
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn):
            with pytest.raises(imaplib.IMAP4.error):
                with ImapMailboxSession(_descriptor()):
                    pass

        mock_conn.logout.assert_called_once()

    def test_logout_failure_closes_socket(self, mock_conn: MagicMock) -> None:
        mock_conn.logout.side_effect = OSError("broken pipe")
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn):
            with ImapMailboxSession(_descriptor()):
                pass

        mock_conn.shutdown.assert_called_once()

    def test_select_failure_raises(self, mock_conn: MagicMock) -> None:
        mock_conn.select.return_value = ("NO", [b"Mailbox does not exist"])
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn):
            with pytest.raises(imaplib.IMAP4.error, match="Mailbox does not exist"):
                with ImapMailboxSession(_descriptor()) as session:
                    session.open_mailbox("Nope")


class TestFetchRange:
    def test_fetch_uses_peek_and_sorts(self, mock_conn: MagicMock) -> None:
        mock_conn.fetch.return_value = (
            "OK",
            [
                (b"3 (UID 13 BODY[] {5}", b"three"),
                b")",
                (b"2 (UID 12 BODY[] {3}", b"two"),
                b")",
            ],
        )
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn):
            with ImapMailboxSession(_descriptor()) as session:
                messages = list(session.fetch_range(2, 3))

        mock_conn.fetch.assert_called_once_with("2:3", "(UID BODY.PEEK[])")
        assert [(m.sequence, m.uid, m.source) for m in messages] == [(2, 12, b"two"), (3, 13, b"three")]

    def test_fetch_failure_raises(self, mock_conn: MagicMock) -> None:
        mock_conn.fetch.return_value = ("NO", [b"server busy"])
        with patch.object(client_mod, "_IMAP4_SSL", return_value=mock_conn):
            with pytest.raises(imaplib.IMAP4.error):
                with ImapMailboxSession(_descriptor()) as session:
                    list(session.fetch_range(1, 2))


class TestParseFetchResponse:
    def test_uid_after_literal(self) -> None:
        data = [(b"5 (BODY[] {4}", b"body"), b" UID 99)"]
        [msg] = _parse_fetch_response(data)
        assert (msg.sequence, msg.uid) == (5, 99)

    def test_missing_uid(self) -> None:
        [msg] = _parse_fetch_response([(b"5 (BODY[] {4}", b"body"), b")"])
        assert msg.uid is None

    def test_ignores_untagged_noise(self) -> None:
        data = [b"4 (FLAGS (\\Seen))", (b"5 (UID 7 BODY[] {4}", b"body"), b")"]
        assert [m.sequence for m in _parse_fetch_response(data)] == [5]


class TestSslContext:
    def test_verification_disabled(self) -> None:
        ctx = build_ssl_context(verify=False)
        assert ctx.verify_mode == ssl.CERT_NONE
        assert ctx.check_hostname is False

    def test_verification_enabled(self) -> None:
        ctx = build_ssl_context(verify=True)
        assert ctx.verify_mode == ssl.CERT_REQUIRED
        assert ctx.check_hostname is True


class TestGreetingTimeout:
    """A server that accepts the TCP connection but never sends its banner."""

    @pytest.fixture
    def silent_server(self):
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.bind(("127.0.0.1", 0))
        # The kernel completes the handshake from the backlog; nobody ever writes
        server.listen(1)
        yield server.getsockname()[1]
        server.close()

    def test_missing_greeting_times_out(self, silent_server: int) -> None:
        descriptor = ConnectionDescriptor(
            host="127.0.0.1",
            port=silent_server,
            use_tls=False,
            username="bob@example.com",
            password=SecretStr("s3cret-pass"),
            timeouts=Timeouts(connect=5.0, greeting=0.5, socket=5.0),
        )
        session = ImapMailboxSession(descriptor)

        with pytest.raises(TimeoutError) as exc_info:
            with session:
                pass

        assert classify_error(exc_info.value).kind is ErrorKind.TIMEOUT
        assert session._conn is None
