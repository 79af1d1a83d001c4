"""Pydantic schemas for email capture, the waitlist and Notion setup."""

from typing import Optional
from uuid import UUID

from app.schemas.common import CamelModel


class EmailCaptureRequest(CamelModel):
    email: str = ""
    source: str = "audit"
    audit_url: Optional[str] = None


class EmailCaptureResponse(CamelModel):
    """Result of capturing an email.

    Attributes:
        exists: True if the address was already captured.
        id: Subscriber id.
    """

    exists: bool
    id: UUID


class WaitlistRequest(CamelModel):
    email: str = ""
    source: str = "waitlist"


class MessageResponse(CamelModel):
    message: str


class NotionSyncRequest(CamelModel):
    """Request body for a manual Notion sync."""

    email: str = ""
    source: str = "waitlist"
    audit_url: Optional[str] = None
