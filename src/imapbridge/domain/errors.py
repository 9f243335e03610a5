"""Error taxonomy for the gateway and classification of IMAP session failures."""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported to clients."""

    MISSING_INPUT = "missing_input"
    AUTHENTICATION_FAILED = "authentication_failed"
    TLS_VERIFICATION_FAILED = "tls_verification_failed"
    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    PARSE_ERROR = "parse_error"
    UNKNOWN_FAILURE = "unknown_failure"
    INTERNAL_ERROR = "internal_error"


class ImapBridgeError(Exception):
    """Base exception for all gateway errors."""


class ParseError(ImapBridgeError):
    """A single raw message could not be normalized."""

    kind = ErrorKind.PARSE_ERROR


class MailboxError(ImapBridgeError):
    """IMAP session failure, classified for the client."""

    def __init__(self, kind: ErrorKind, details: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(details)
        self.kind = kind
        self.details = details
        self.cause = cause

    @property
    def title(self) -> str:
        return ERROR_TITLES.get(self.kind, ERROR_TITLES[ErrorKind.UNKNOWN_FAILURE])

    @property
    def suggestion(self) -> str:
        return SUGGESTIONS.get(self.kind, SUGGESTIONS[ErrorKind.UNKNOWN_FAILURE])


ERROR_TITLES: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION_FAILED: "Authentication failed",
    ErrorKind.TLS_VERIFICATION_FAILED: "SSL/TLS certificate verification failed",
    ErrorKind.CONNECTION_FAILED: "Connection to server failed",
    ErrorKind.TIMEOUT: "Connection timed out",
    ErrorKind.UNKNOWN_FAILURE: "Failed to connect to IMAP server",
}

SUGGESTIONS: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION_FAILED: "Please check your username and password.",
    ErrorKind.TLS_VERIFICATION_FAILED: "Check your security settings or try a different security option.",
    ErrorKind.CONNECTION_FAILED: "Check your host and port settings.",
    ErrorKind.TIMEOUT: "The server is not responding. Check your network connection.",
    ErrorKind.UNKNOWN_FAILURE: (
        "Check your email settings. For cPanel, use mail.yourdomain.com with port 993 for SSL"
    ),
}


@dataclass(frozen=True)
class _Rule:
    kind: ErrorKind
    matches: Callable[[BaseException, str], bool]


# Evaluated in order, first match wins. The IMAP client only gives us free text
# for most failures, so this is best-effort; swap for typed errors if the
# client ever exposes them.
CLASSIFICATION_RULES: tuple[_Rule, ...] = (
    _Rule(ErrorKind.AUTHENTICATION_FAILED, lambda exc, text: "auth" in text),
    _Rule(
        ErrorKind.TLS_VERIFICATION_FAILED,
        lambda exc, text: isinstance(exc, ssl.SSLCertVerificationError) or "certificate" in text,
    ),
    _Rule(
        ErrorKind.CONNECTION_FAILED,
        lambda exc, text: isinstance(exc, (ConnectionError, socket.gaierror)) or "connect" in text,
    ),
    _Rule(
        ErrorKind.TIMEOUT,
        lambda exc, text: isinstance(exc, TimeoutError) or "timeout" in text or "timed out" in text,
    ),
)


def describe_error(exc: BaseException) -> str:
    """Human readable failure description, decoding imaplib's bytes payloads."""
    if exc.args and isinstance(exc.args[0], bytes):
        return exc.args[0].decode("utf-8", errors="replace")
    return str(exc) or exc.__class__.__name__


def classify_error(exc: BaseException) -> MailboxError:
    """Map an arbitrary session failure onto the gateway's error taxonomy."""
    if isinstance(exc, MailboxError):
        return exc

    details = describe_error(exc)
    text = details.lower()
    for rule in CLASSIFICATION_RULES:
        if rule.matches(exc, text):
            return MailboxError(rule.kind, details, cause=exc)
    return MailboxError(ErrorKind.UNKNOWN_FAILURE, details, cause=exc)
