"""Business logic services for the WebCore Audit application."""
