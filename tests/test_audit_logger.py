from app.core.config import settings
from app.models.audit import Audit
from app.services.audit_logger import audit_logger, hash_ip, truncate_user_agent


def test_hash_ip_is_salted_and_truncated(monkeypatch):
    monkeypatch.setattr(settings, "IP_HASH_SALT", "pepper")
    hashed = hash_ip("203.0.113.7")
    assert len(hashed) == 16
    assert hashed == hash_ip("203.0.113.7")
    assert hashed != hash_ip("203.0.113.8")

    monkeypatch.setattr(settings, "IP_HASH_SALT", "other")
    assert hash_ip("203.0.113.7") != hashed


def test_hash_ip_ignores_unknown():
    assert hash_ip(None) is None
    assert hash_ip("") is None
    assert hash_ip("unknown") is None


def test_truncate_user_agent():
    assert truncate_user_agent(None) is None
    assert truncate_user_agent("curl/8.0") == "curl/8.0"
    assert len(truncate_user_agent("x" * 400)) == 256


async def test_audit_record_lifecycle(session_factory):
    audit_id = await audit_logger.create_audit_record(
        url="https://acme.example",
        source_ip="203.0.113.7",
        user_agent="y" * 300,
        is_admin=True,
    )
    assert audit_id is not None

    async with session_factory() as session:
        audit = await session.get(Audit, audit_id)
        assert audit.status == Audit.STATUS_PROCESSING
        assert audit.source_ip == hash_ip("203.0.113.7")
        assert len(audit.user_agent) == 256
        assert audit.is_admin is True

    assert await audit_logger.fail_audit_record(audit_id, "Scrape timeout after 60 seconds") is True

    async with session_factory() as session:
        audit = await session.get(Audit, audit_id)
        assert audit.status == Audit.STATUS_FAILED
        assert audit.error_message == "Scrape timeout after 60 seconds"
        assert audit.completed_at is not None


async def test_log_failed_audit_and_stats(session_factory):
    await audit_logger.log_failed_audit("https://down.example", "Technical scrape failed", "198.51.100.1")

    stats = await audit_logger.get_audit_stats()

    assert stats["total"] == 1
    assert stats["failed"] == 1
    assert stats["completed"] == 0
    assert stats["avgScore"] == 0
