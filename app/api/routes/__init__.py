"""API route definitions."""

from fastapi import APIRouter

from app.api.routes import (
    admin,
    audits,
    billing,
    contact_scraper,
    health,
    notion,
    subscribers,
    webhooks,
    website_types,
)

router = APIRouter()

# Include all route modules
router.include_router(health.router, tags=["health"])
router.include_router(audits.router, tags=["audits"])
router.include_router(subscribers.router, tags=["subscribers"])
router.include_router(billing.router, tags=["billing"])
router.include_router(webhooks.router, tags=["webhooks"])
router.include_router(notion.router, tags=["notion"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(website_types.router, prefix="/admin", tags=["admin"])
router.include_router(contact_scraper.router, prefix="/admin", tags=["admin"])
