"""imapbridge - HTTP gateway that reads IMAP mailboxes from SMTP-style credentials."""

__version__ = "0.1.0"
