"""Admin CRUD routes for website types."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DatabaseDep
from app.core.auth import AdminUser
from app.models.website_type import WebsiteType
from app.schemas.website_type import (
    WebsiteTypeCreate,
    WebsiteTypeEnvelope,
    WebsiteTypeListResponse,
    WebsiteTypeResponse,
    WebsiteTypeUpdate,
)
from app.services.website_type_service import InvalidWebsiteTypeError, website_type_service

router = APIRouter(prefix="/website-types")


def _to_response(website_type: WebsiteType, audit_count=None) -> WebsiteTypeResponse:
    response = WebsiteTypeResponse.model_validate(website_type)
    response.audit_count = audit_count
    return response


@router.get("", response_model=WebsiteTypeListResponse)
async def list_website_types(
    admin: AdminUser,
    db: DatabaseDep,
    includeInactive: bool = False,
) -> WebsiteTypeListResponse:
    """List website types, default first, with how many audits use each."""
    types = await website_type_service.list_types(db, include_inactive=includeInactive)
    return WebsiteTypeListResponse(
        website_types=[_to_response(website_type, count) for website_type, count in types]
    )


@router.post("", response_model=WebsiteTypeEnvelope, status_code=status.HTTP_201_CREATED)
async def create_website_type(
    body: WebsiteTypeCreate,
    admin: AdminUser,
    db: DatabaseDep,
) -> WebsiteTypeEnvelope:
    try:
        website_type = await website_type_service.create_type(db, body)
    except InvalidWebsiteTypeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return WebsiteTypeEnvelope(website_type=_to_response(website_type))


@router.get("/{type_id}", response_model=WebsiteTypeEnvelope)
async def get_website_type(type_id: UUID, admin: AdminUser, db: DatabaseDep) -> WebsiteTypeEnvelope:
    try:
        website_type = await website_type_service.get_type(db, type_id)
    except InvalidWebsiteTypeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    count = await website_type_service.audit_count(db, type_id)
    return WebsiteTypeEnvelope(website_type=_to_response(website_type, count))


@router.put("/{type_id}", response_model=WebsiteTypeEnvelope)
async def update_website_type(
    type_id: UUID,
    body: WebsiteTypeUpdate,
    admin: AdminUser,
    db: DatabaseDep,
) -> WebsiteTypeEnvelope:
    """Update only the fields present in the request body."""
    try:
        website_type = await website_type_service.update_type(db, type_id, body)
    except InvalidWebsiteTypeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return WebsiteTypeEnvelope(website_type=_to_response(website_type))


@router.delete("/{type_id}")
async def delete_website_type(type_id: UUID, admin: AdminUser, db: DatabaseDep) -> dict:
    """Delete a website type no audit uses; used types must be deactivated instead."""
    try:
        await website_type_service.delete_type(db, type_id)
    except InvalidWebsiteTypeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True}
