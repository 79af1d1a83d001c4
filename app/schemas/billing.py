"""Pydantic schemas for billing and usage endpoints."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from app.schemas.common import CamelModel


class UsageCheckResult(CamelModel):
    """Whether a user may start an audit, and what the plan allows.

    Attributes:
        allowed: True if the user may run another audit.
        reason: Human readable refusal reason.
        audits_remaining: Monthly audits left (purchased audits excluded).
        audits_limit: Monthly allowance.
        purchased_audits: Audits left from purchased packs.
        tier: Effective tier.
        pages_limit: Pages per audit for the tier.
        allowed_categories: Category ids the tier may run.
        can_buy_packs: Whether audit packs may be purchased.
    """

    allowed: bool
    reason: Optional[str] = None
    audits_remaining: int
    audits_limit: int
    purchased_audits: int = 0
    tier: str
    pages_limit: int
    allowed_categories: List[str]
    can_buy_packs: bool = False


class CheckoutRequest(CamelModel):
    """Request body for a subscription checkout."""

    tier: Literal["starter", "pro", "agency"]
    billing_period: Literal["monthly", "yearly"] = "monthly"


class PackCheckoutRequest(CamelModel):
    """Request body for an audit pack checkout."""

    pack_size: Literal["small", "medium", "large"]


class CheckoutResponse(CamelModel):
    """Redirect target for Stripe Checkout or the billing portal."""

    url: str


class InvoiceItem(CamelModel):
    """A Stripe invoice as shown on the billing page."""

    id: UUID
    stripe_invoice_id: str
    amount: int
    currency: str
    status: str
    invoice_url: Optional[str] = None
    invoice_pdf: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    created_at: datetime


class InvoiceListResponse(CamelModel):
    invoices: List[InvoiceItem]
