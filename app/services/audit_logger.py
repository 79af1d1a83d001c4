"""Audit logging to the audits table.

Logging never fails the request that triggered it: every method catches,
logs and returns a neutral value. The logger opens its own sessions so it
can run after the request session has closed.
"""

import hashlib
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.database import engine
from app.models.audit import Audit
from app.schemas.audit import AuditResult
from app.services.analysis_service import category_db_key
from app.services.usage_service import usage_service

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 256


def hash_ip(ip: Optional[str]) -> Optional[str]:
    """Salted, truncated SHA-256 of an IP address."""
    if not ip or ip == "unknown":
        return None
    return hashlib.sha256(f"{ip}{settings.IP_HASH_SALT}".encode()).hexdigest()[:16]


def truncate_user_agent(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    return user_agent[:USER_AGENT_MAX_LENGTH]


def category_scores_for(result: AuditResult) -> Dict[str, int]:
    return {category_db_key(c.name): c.score for c in result.categories}


class AuditLogger:
    """Persists audit lifecycle records."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory

    def _get_session_factory(self) -> async_sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    async def create_audit_record(
        self,
        url: str,
        source_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        user_id: Optional[UUID] = None,
        is_admin: bool = False,
        website_type_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """Insert an audit in ``processing`` state.

        Returns:
            The new audit id, or None if the insert failed.
        """
        try:
            async with self._get_session_factory()() as session:
                audit = Audit(
                    url=url,
                    status=Audit.STATUS_PROCESSING,
                    source_ip=hash_ip(source_ip),
                    user_agent=truncate_user_agent(user_agent),
                    user_id=user_id,
                    is_admin=is_admin,
                    website_type_id=website_type_id,
                )
                session.add(audit)
                await session.commit()
                return audit.id
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to create audit record: {e}")
            return None

    async def complete_audit_record(self, audit_id: UUID, result: AuditResult) -> bool:
        try:
            async with self._get_session_factory()() as session:
                audit = await session.get(Audit, audit_id)
                if audit is None:
                    logger.warning(f"[AuditLogger] Audit {audit_id} not found")
                    return False
                self._apply_result(audit, result)
                await session.commit()
                return True
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to complete audit record {audit_id}: {e}")
            return False

    async def fail_audit_record(self, audit_id: UUID, error_message: str) -> bool:
        try:
            async with self._get_session_factory()() as session:
                audit = await session.get(Audit, audit_id)
                if audit is None:
                    return False
                audit.mark_failed(error_message)
                await session.commit()
                return True
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to mark audit {audit_id} as failed: {e}")
            return False

    def _apply_result(self, audit: Audit, result: AuditResult) -> None:
        audit.mark_complete(
            score=result.overall_score,
            category_scores=category_scores_for(result),
            summary=result.summary,
            brief=result.brief.to_record(),
        )
        usage = result.token_usage
        if usage:
            audit.input_tokens = usage.input_tokens
            audit.output_tokens = usage.output_tokens
            audit.total_tokens = usage.total_tokens
            audit.estimated_cost = usage.estimated_cost

    async def log_audit(
        self,
        result: AuditResult,
        source_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[UUID]:
        """Record a finished audit in one insert."""
        try:
            async with self._get_session_factory()() as session:
                audit = Audit(
                    url=result.url,
                    source_ip=hash_ip(source_ip),
                    user_agent=truncate_user_agent(user_agent),
                )
                self._apply_result(audit, result)
                session.add(audit)
                await session.commit()
                logger.info(f"[AuditLogger] Logged audit {audit.id} for {result.url}")
                return audit.id
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to log audit: {e}")
            return None

    async def log_failed_audit(
        self,
        url: str,
        error_message: str,
        source_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[UUID]:
        try:
            async with self._get_session_factory()() as session:
                audit = Audit(
                    url=url,
                    source_ip=hash_ip(source_ip),
                    user_agent=truncate_user_agent(user_agent),
                )
                audit.mark_failed(error_message)
                session.add(audit)
                await session.commit()
                return audit.id
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to log failed audit: {e}")
            return None

    async def increment_user_audit_usage(self, user_id: UUID) -> bool:
        try:
            async with self._get_session_factory()() as session:
                updated = await usage_service.increment_usage(session, user_id)
                await session.commit()
                return updated
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to increment usage for {user_id}: {e}")
            return False

    async def get_audit_stats(self) -> Optional[Dict[str, Any]]:
        """Aggregate counts, average score, tokens and cost."""
        try:
            async with self._get_session_factory()() as session:
                total = await session.scalar(select(func.count(Audit.id))) or 0
                completed_filter = Audit.status == Audit.STATUS_COMPLETED
                completed = await session.scalar(
                    select(func.count(Audit.id)).where(completed_filter)
                ) or 0
                failed = await session.scalar(
                    select(func.count(Audit.id)).where(Audit.status == Audit.STATUS_FAILED)
                ) or 0
                row = (await session.execute(
                    select(
                        func.avg(Audit.overall_score),
                        func.coalesce(func.sum(Audit.total_tokens), 0),
                        func.coalesce(func.sum(Audit.estimated_cost), 0),
                    ).where(completed_filter)
                )).one()
        except Exception as e:
            logger.error(f"[AuditLogger] Failed to load audit stats: {e}")
            return None

        avg_score, total_tokens, total_cost = row
        return {
            "total": total,
            "completed": completed,
            "failed": failed,
            "avgScore": round(avg_score) if avg_score is not None else 0,
            "totalTokens": int(total_tokens),
            "totalCost": round(float(total_cost), 4),
        }


audit_logger = AuditLogger()
