"""One-shot mailbox check from the command line, using the same path as the API."""

from __future__ import annotations

import argparse
import json
import os

from loguru import logger

from imapbridge.application.use_cases.fetch_mailbox import MailboxFetchUseCase
from imapbridge.domain.entities.credentials import CredentialConfig
from imapbridge.domain.errors import MailboxError
from imapbridge.infrastructure import configure_logging, get_settings


def credentials_from_env() -> CredentialConfig:
    return CredentialConfig(
        host=os.environ["IMAPBRIDGE_HOST"],
        username=os.environ["IMAPBRIDGE_USERNAME"],
        password=os.environ["IMAPBRIDGE_PASSWORD"],
        security=os.getenv("IMAPBRIDGE_SECURITY", "SSL"),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch recent messages from an IMAP mailbox")
    parser.add_argument("--test", action="store_true", help="Only test the connection, do not download messages")
    parser.add_argument("--window", type=int, default=None, help="Number of trailing messages to fetch")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.window is not None and args.window < 1:
        parser.error("--window must be a positive integer")

    try:
        cred = credentials_from_env()
    except KeyError as e:
        logger.error(f"Missing environment variable {e.args[0]}")
        return 2

    use_case = MailboxFetchUseCase(
        window_size=args.window or settings.fetch_window_size,
        mailbox=settings.imap_mailbox,
        verify_certificates=settings.verify_certificates,
    )
    descriptor = use_case.descriptor_for(cred)

    try:
        if args.test:
            snapshot = use_case.test_connection(cred, descriptor)
            out = {
                "success": True,
                "mailboxInfo": {
                    "totalMessages": snapshot.total_messages,
                    "host": descriptor.host,
                    "port": descriptor.port,
                },
            }
        else:
            result = use_case.fetch_recent(cred, descriptor=descriptor)
            out = {
                "success": True,
                "totalMessages": result.total_messages,
                "newMessages": result.new_messages,
                "fetchedEmails": [m.to_dict() for m in result.fetched_messages],
            }
    except MailboxError as e:
        out = {"success": False, "error": e.title, "details": e.details, "suggestion": e.suggestion}
        print(json.dumps(out, indent=2))
        return 1

    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
