"""SMTP account settings -> IMAP connection parameters."""

from __future__ import annotations

from loguru import logger

from imapbridge.domain.entities.credentials import ConnectionDescriptor, CredentialConfig, Timeouts

IMAP_SECURE_PORT = 993
IMAP_PLAIN_PORT = 143

DEFAULT_TIMEOUTS = Timeouts(connect=30.0, greeting=15.0, socket=60.0)


def imap_host_for(smtp_host: str) -> str:
    """
    Rewrite the first ``smtp.`` in the host to ``imap.``.

    Hosts without it are kept as is: cPanel-style deployments serve every
    protocol from a shared name such as ``mail.example.com``.
    """
    if "smtp." in smtp_host:
        return smtp_host.replace("smtp.", "imap.", 1)
    return smtp_host


def derive_imap_config(cred: CredentialConfig, verify_certificates: bool = False) -> ConnectionDescriptor:
    """Derive the IMAP connection descriptor for a submitted SMTP account."""
    host = imap_host_for(cred.host)
    if host != cred.host:
        logger.debug(f"Converted SMTP host {cred.host} to IMAP host {host}")
    else:
        logger.debug(f"Using host as-is: {host}")

    secure = cred.security.is_secure
    descriptor = ConnectionDescriptor(
        host=host,
        port=IMAP_SECURE_PORT if secure else IMAP_PLAIN_PORT,
        use_tls=secure,
        username=cred.username,
        password=cred.password,
        timeouts=DEFAULT_TIMEOUTS,
        verify_certificates=verify_certificates,
    )
    logger.debug(f"IMAP config: {descriptor.redacted()}")
    return descriptor
