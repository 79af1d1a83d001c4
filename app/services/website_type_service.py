"""Website type management and lookup for weighted audits."""

import logging
import re
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import Audit
from app.models.website_type import WebsiteType
from app.schemas.website_type import DEFAULT_CATEGORY_WEIGHTS, WebsiteTypeCreate, WebsiteTypeUpdate

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class InvalidWebsiteTypeError(Exception):
    """A website type request that cannot be applied."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def slugify(name: str) -> str:
    """Lowercase ``name`` and collapse non-alphanumeric runs into hyphens."""
    return _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")


class WebsiteTypeService:
    """CRUD over website types.

    At most one type is the default: marking a type as default clears the
    flag on every other type.
    """

    async def audit_counts(self, db: AsyncSession) -> Dict[UUID, int]:
        result = await db.execute(
            select(Audit.website_type_id, func.count(Audit.id))
            .where(Audit.website_type_id.is_not(None))
            .group_by(Audit.website_type_id)
        )
        return {type_id: count for type_id, count in result.all()}

    async def audit_count(self, db: AsyncSession, type_id: UUID) -> int:
        count = await db.scalar(
            select(func.count(Audit.id)).where(Audit.website_type_id == type_id)
        )
        return count or 0

    async def list_types(
        self, db: AsyncSession, include_inactive: bool = False
    ) -> List[Tuple[WebsiteType, int]]:
        """Website types with their audit counts, default first then by name."""
        query = select(WebsiteType).order_by(WebsiteType.is_default.desc(), WebsiteType.name.asc())
        if not include_inactive:
            query = query.where(WebsiteType.is_active.is_(True))

        types = (await db.execute(query)).scalars().all()
        counts = await self.audit_counts(db)
        return [(website_type, counts.get(website_type.id, 0)) for website_type in types]

    async def get_type(self, db: AsyncSession, type_id: UUID) -> WebsiteType:
        """Fetch one type.

        Raises:
            InvalidWebsiteTypeError: 404 if it does not exist.
        """
        website_type = await db.get(WebsiteType, type_id)
        if website_type is None:
            raise InvalidWebsiteTypeError("Website type not found", status_code=404)
        return website_type

    async def get_active_by_slug(self, db: AsyncSession, slug: str) -> Optional[WebsiteType]:
        result = await db.execute(
            select(WebsiteType).where(
                WebsiteType.slug == slug,
                WebsiteType.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def resolve_for_audit(self, db: AsyncSession, slug: Optional[str]) -> Optional[WebsiteType]:
        """The type an audit should be weighted by.

        An explicit slug must name an active type; without one the active
        default type is used, if any.

        Raises:
            InvalidWebsiteTypeError: 404 if the slug names no active type.
        """
        if slug:
            website_type = await self.get_active_by_slug(db, slug)
            if website_type is None:
                raise InvalidWebsiteTypeError("Website type not found", status_code=404)
            return website_type

        result = await db.execute(
            select(WebsiteType).where(
                WebsiteType.is_default.is_(True),
                WebsiteType.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def _slug_taken(self, db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None) -> bool:
        query = select(WebsiteType.id).where(WebsiteType.slug == slug)
        if exclude_id is not None:
            query = query.where(WebsiteType.id != exclude_id)
        return (await db.execute(query)).first() is not None

    async def _clear_default(self, db: AsyncSession, exclude_id: Optional[UUID] = None) -> None:
        stmt = update(WebsiteType).where(WebsiteType.is_default.is_(True))
        if exclude_id is not None:
            stmt = stmt.where(WebsiteType.id != exclude_id)
        await db.execute(stmt.values(is_default=False))

    async def create_type(self, db: AsyncSession, data: WebsiteTypeCreate) -> WebsiteType:
        """Create a website type.

        Raises:
            InvalidWebsiteTypeError: If the name is missing or its slug is taken.
        """
        if not data.name or not data.name.strip():
            raise InvalidWebsiteTypeError("Name is required")

        slug = slugify(data.name)
        if await self._slug_taken(db, slug):
            raise InvalidWebsiteTypeError("A website type with this name already exists")

        if data.is_default:
            await self._clear_default(db)

        website_type = WebsiteType(
            name=data.name,
            slug=slug,
            description=data.description or None,
            icon=data.icon or None,
            category_weights=(
                dict(DEFAULT_CATEGORY_WEIGHTS) if data.category_weights is None else data.category_weights
            ),
            focus_areas=data.focus_areas,
            best_practices=data.best_practices,
            is_active=data.is_active,
            is_default=data.is_default,
        )
        db.add(website_type)
        await db.flush()
        await db.refresh(website_type)
        logger.info(f"[WebsiteTypes] Created {slug}")
        return website_type

    async def update_type(self, db: AsyncSession, type_id: UUID, data: WebsiteTypeUpdate) -> WebsiteType:
        """Apply the fields present in ``data``.

        A new name re-derives the slug.

        Raises:
            InvalidWebsiteTypeError: 404 if missing, 400 on a slug conflict.
        """
        website_type = await self.get_type(db, type_id)
        changes = data.model_dump(exclude_unset=True)

        name = changes.pop("name", None)
        if name and name != website_type.name:
            slug = slugify(name)
            if await self._slug_taken(db, slug, exclude_id=type_id):
                raise InvalidWebsiteTypeError("A website type with this name already exists")
            website_type.name = name
            website_type.slug = slug

        if changes.get("is_default") and not website_type.is_default:
            await self._clear_default(db, exclude_id=type_id)

        for field, value in changes.items():
            if value is None and field in ("category_weights", "focus_areas", "best_practices", "is_active", "is_default"):
                continue
            setattr(website_type, field, value)

        await db.flush()
        await db.refresh(website_type)
        return website_type

    async def delete_type(self, db: AsyncSession, type_id: UUID) -> None:
        """Delete a type that no audit references.

        Raises:
            InvalidWebsiteTypeError: 404 if missing, 400 if audits use it.
        """
        website_type = await self.get_type(db, type_id)
        count = await self.audit_count(db, type_id)
        if count > 0:
            raise InvalidWebsiteTypeError(
                f"Cannot delete: {count} audits are using this website type. Deactivate it instead."
            )
        await db.delete(website_type)
        await db.flush()
        logger.info(f"[WebsiteTypes] Deleted {website_type.slug}")


website_type_service = WebsiteTypeService()
