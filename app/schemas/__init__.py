"""Pydantic schemas for API request/response validation."""

from app.schemas.admin import (
    AdminLoginRequest,
    AdminLoginResponse,
    AuditListResponse,
    DashboardResponse,
    SubscriptionListResponse,
    UserListResponse,
)
from app.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    InvoiceListResponse,
    PackCheckoutRequest,
    UsageCheckResult,
)
from app.schemas.common import CamelModel
from app.schemas.scraped import ScrapedData
from app.schemas.subscriber import (
    EmailCaptureRequest,
    EmailCaptureResponse,
    MessageResponse,
    WaitlistRequest,
)
from app.schemas.website_type import (
    WebsiteTypeCreate,
    WebsiteTypeResponse,
    WebsiteTypeUpdate,
)

__all__ = [
    "AdminLoginRequest",
    "AdminLoginResponse",
    "AuditListResponse",
    "DashboardResponse",
    "SubscriptionListResponse",
    "UserListResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "InvoiceListResponse",
    "PackCheckoutRequest",
    "UsageCheckResult",
    "CamelModel",
    "ScrapedData",
    "EmailCaptureRequest",
    "EmailCaptureResponse",
    "MessageResponse",
    "WaitlistRequest",
    "WebsiteTypeCreate",
    "WebsiteTypeResponse",
    "WebsiteTypeUpdate",
]
