"""Mailbox credentials as submitted by clients and the IMAP parameters derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class SecurityMode(str, Enum):
    """Transport security selected for the outgoing (SMTP) account."""

    NONE = "NONE"
    SSL = "SSL"
    TLS = "TLS"

    @property
    def is_secure(self) -> bool:
        return self in (SecurityMode.SSL, SecurityMode.TLS)


class CredentialConfig(BaseModel):
    """SMTP-style mailbox settings, as entered in the client's account form."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = Field(..., min_length=1, description="SMTP (or shared mail) host name")
    username: str = Field(..., min_length=1, description="Mailbox login")
    password: SecretStr = Field(..., description="Mailbox password")
    security: SecurityMode = Field(SecurityMode.NONE, description="NONE, SSL or TLS")

    @field_validator("security", mode="before")
    @classmethod
    def _coerce_security(cls, value: Any) -> SecurityMode:
        # Only the exact "SSL" and "TLS" select a secure connection; anything else is plain
        if isinstance(value, SecurityMode):
            return value
        try:
            return SecurityMode(str(value))
        except ValueError:
            return SecurityMode.NONE


@dataclass(frozen=True)
class Timeouts:
    """Timeouts in seconds."""

    connect: float = 30.0
    greeting: float = 15.0
    socket: float = 60.0


@dataclass(frozen=True)
class ConnectionDescriptor:
    host: str
    port: int
    use_tls: bool
    username: str
    password: SecretStr = field(repr=False)
    timeouts: Timeouts = field(default_factory=Timeouts)
    verify_certificates: bool = False

    def redacted(self) -> dict[str, Any]:
        """Loggable view of the descriptor; the password is always masked."""
        return {
            "host": self.host,
            "port": self.port,
            "secure": self.use_tls,
            "auth": {"user": self.username, "pass": "***"},
            "connectionTimeout": self.timeouts.connect,
            "greetingTimeout": self.timeouts.greeting,
            "socketTimeout": self.timeouts.socket,
            "verifyCertificates": self.verify_certificates,
        }
