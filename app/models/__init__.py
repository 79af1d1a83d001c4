"""SQLAlchemy ORM models for the WebCore Audit application."""

from app.models.audit import Audit
from app.models.email_subscriber import EmailSubscriber
from app.models.invoice import Invoice
from app.models.subscription_event import SubscriptionEvent
from app.models.user_profile import UserProfile
from app.models.website_type import WebsiteType

__all__ = [
    "Audit",
    "EmailSubscriber",
    "Invoice",
    "SubscriptionEvent",
    "UserProfile",
    "WebsiteType",
]
