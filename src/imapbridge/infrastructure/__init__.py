"""Infrastructure layer - IMAP access, configuration and logging."""

from imapbridge.infrastructure.logging_setup import configure_logging
from imapbridge.infrastructure.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
]
