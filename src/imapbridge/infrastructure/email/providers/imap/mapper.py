from __future__ import annotations

from datetime import datetime, timezone
from email import policy
from email.headerregistry import AddressHeader, DateHeader
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Optional

from imapbridge.domain.entities.email_message import HeaderValue, NormalizedMessage, RawMessage
from imapbridge.domain.errors import ParseError

NO_SUBJECT = "(No Subject)"


def _part_text(part: Optional[EmailMessage]) -> str:
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, ValueError):
        # Unknown or lying charset: decode what we can
        payload = part.get_payload(decode=True) or b""
        try:
            return payload.decode(part.get_content_charset() or "utf-8", errors="replace")
        except LookupError:
            return payload.decode("utf-8", errors="replace")


def _header_text(em: EmailMessage, name: str) -> Optional[str]:
    value = em.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _collect_headers(em: EmailMessage) -> dict[str, HeaderValue]:
    # Repeated headers (Received, DKIM-Signature, ...) keep every value in arrival order
    headers: dict[str, HeaderValue] = {}
    for name, value in em.items():
        key = name.lower()
        text = str(value)
        if key not in headers:
            headers[key] = text
        elif isinstance(headers[key], list):
            headers[key].append(text)
        else:
            headers[key] = [headers[key], text]
    return headers


def _received_at(em: EmailMessage) -> datetime:
    # Date parsing can be messy; default to now if absent/unparseable
    header = em.get("Date")
    dt = header.datetime if isinstance(header, DateHeader) else None
    if dt is None:
        return datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_message(raw: RawMessage, account: str) -> NormalizedMessage:
    """Turn one fetched RFC 822 source into the gateway's message record.

    ``account`` is the requesting login; it stands in for the recipient when
    the message has no usable To header (bounces, BCC copies).
    """
    if not raw.source:
        raise ParseError(f"Message {raw.sequence} has an empty source")

    try:
        em = BytesParser(policy=policy.default).parsebytes(raw.source)

        sender_header = em.get("From")
        first = None
        if isinstance(sender_header, AddressHeader) and sender_header.addresses:
            first = sender_header.addresses[0]

        return NormalizedMessage(
            uid=str(raw.uid) if raw.uid is not None else "",
            message_id=_header_text(em, "Message-ID"),
            sender=_header_text(em, "From") or "",
            sender_email=first.addr_spec if first is not None and first.username else "",
            sender_name=first.display_name if first is not None else "",
            recipient=_header_text(em, "To") or account,
            subject=_header_text(em, "Subject") or NO_SUBJECT,
            body_text=_part_text(em.get_body(preferencelist=("plain",))),
            body_html=_part_text(em.get_body(preferencelist=("html",))),
            received_at=_received_at(em),
            headers=_collect_headers(em),
            in_reply_to=_header_text(em, "In-Reply-To"),
            references=_header_text(em, "References"),
        )
    except ParseError:
        raise
    except Exception as e:
        raise ParseError(f"Message {raw.sequence} could not be parsed: {e}") from e
