"""
API routes for the IMAP bridge.

Clients submit the SMTP settings they already have; the bridge works out the
IMAP side and reports either the mailbox size or its most recent messages.
"""

from __future__ import annotations

import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from imapbridge.application.use_cases.fetch_mailbox import MailboxFetchUseCase
from imapbridge.domain.entities.credentials import CredentialConfig
from imapbridge.domain.entities.email_message import format_timestamp
from imapbridge.domain.errors import MailboxError
from imapbridge.infrastructure.settings import Settings, get_settings

router = APIRouter()

FETCH_ACTIONS = ("check", "fetch")


# ============================================================================
# Request Models
# ============================================================================


class ConnectionTestRequest(BaseModel):
    """Request body for the connection test endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    email_config: CredentialConfig = Field(..., alias="emailConfig")


class FetchEmailRequest(BaseModel):
    """Request body for the fetch endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(..., min_length=1, description="'check' or 'fetch' download the recent window")
    email_config: CredentialConfig = Field(..., alias="emailConfig")


# ============================================================================
# Dependencies
# ============================================================================


def get_fetch_use_case(settings: Settings = Depends(get_settings)) -> MailboxFetchUseCase:
    return MailboxFetchUseCase(
        window_size=settings.fetch_window_size,
        mailbox=settings.imap_mailbox,
        verify_certificates=settings.verify_certificates,
    )


def _mailbox_error_response(error: MailboxError, title: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": title,
            "details": error.details,
            "suggestion": error.suggestion,
        },
    )


# ============================================================================
# Mailbox Endpoints
# ============================================================================


@router.get("/api/test-connection", tags=["mailbox"])
async def test_connection_reachable() -> dict[str, str]:
    """Reachability check for clients checking the route exists."""
    return {"message": "GET method reached successfully"}


@router.post("/api/test-connection", tags=["mailbox"])
async def test_connection(
    request: ConnectionTestRequest,
    use_case: MailboxFetchUseCase = Depends(get_fetch_use_case),
) -> Any:
    """Log in and select the inbox without downloading anything."""
    cred = request.email_config
    descriptor = use_case.descriptor_for(cred)
    try:
        snapshot = await run_in_threadpool(use_case.test_connection, cred, descriptor)
    except MailboxError as e:
        return _mailbox_error_response(e, "Connection test failed")

    return {
        "success": True,
        "message": "Connection test successful",
        "mailboxInfo": {
            "totalMessages": snapshot.total_messages,
            "host": descriptor.host,
            "port": descriptor.port,
        },
    }


@router.post("/api/fetch-email", tags=["mailbox"])
async def fetch_email(
    request: FetchEmailRequest,
    use_case: MailboxFetchUseCase = Depends(get_fetch_use_case),
) -> Any:
    """
    Return the most recent inbox messages.

    ``check`` and ``fetch`` both download the trailing window; any other
    action only reports the mailbox size.
    """
    cred = request.email_config
    try:
        if request.action in FETCH_ACTIONS:
            result = await run_in_threadpool(use_case.fetch_recent, cred)
            total, messages = result.total_messages, result.fetched_messages
        else:
            logger.info(f"Action '{request.action}' does not download messages")
            snapshot = await run_in_threadpool(use_case.test_connection, cred)
            total, messages = snapshot.total_messages, []
    except MailboxError as e:
        return _mailbox_error_response(e, e.title)

    return {
        "success": True,
        "message": "Emails fetched successfully",
        "totalMessages": total,
        "newMessages": len(messages),
        "fetchedEmails": [m.to_dict() for m in messages],
    }


# ============================================================================
# Service Endpoints
# ============================================================================


@router.get("/health", tags=["health"])
async def health_check(request: Request, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Liveness check; never touches a mailbox."""
    started = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "ok",
        "timestamp": format_timestamp(datetime.now(timezone.utc)),
        "environment": settings.environment,
        "version": settings.app_version,
        "serverInfo": {
            "platform": sys.platform,
            "pythonVersion": platform.python_version(),
            "uptime": round(time.monotonic() - started, 3),
        },
    }


@router.get("/", tags=["health"])
async def service_info(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Basic service information and endpoint catalogue."""
    return {
        "service": settings.app_name,
        "status": "running",
        "endpoints": [
            {"path": "/api/test-connection", "method": "POST", "description": "Test IMAP connection"},
            {"path": "/api/fetch-email", "method": "POST", "description": "Fetch emails from IMAP server"},
            {"path": "/health", "method": "GET", "description": "Server health check"},
        ],
    }
