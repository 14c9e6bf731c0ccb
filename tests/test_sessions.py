"""
Tests for session lifecycle management.
"""

from datetime import timedelta

import pytest

from ledtech.security.sessions import SessionManager
from ledtech.security.stores import MemoryStore


@pytest.fixture
def manager(token_service, clock):
    return SessionManager(token_service, store=MemoryStore(), clock=clock)


@pytest.fixture
def lenient_manager(token_service, clock):
    """Expiry enforced only by the sweep."""
    return SessionManager(
        token_service, store=MemoryStore(), strict_expiry=False, clock=clock
    )


class TestSessionLifecycle:
    def test_create_and_validate(self, manager):
        session_id = manager.create_session("user_001", "192.168.1.1", "Mozilla/5.0")

        assert isinstance(session_id, str)
        assert manager.validate_session(session_id) is True

        session = manager.get_session(session_id)
        assert session.user_id == "user_001"
        assert session.ip_address == "192.168.1.1"
        assert session.user_agent == "Mozilla/5.0"
        assert session.last_access_at >= session.created_at

    def test_sessions_of_one_user_are_distinct(self, manager):
        first = manager.create_session("user_001")
        second = manager.create_session("user_001")

        assert first != second
        assert manager.get_active_session_count() == 2

    def test_unknown_or_forged_session(self, manager, token_service):
        assert manager.validate_session("invalid_session") is False
        # Correctly signed but never stored
        assert manager.validate_session(token_service.mint_session_id("user_001")) is False

    def test_validate_touches_last_access(self, manager, clock):
        session_id = manager.create_session("user_001")
        created = manager.get_session(session_id).created_at

        clock.advance(minutes=30)
        assert manager.validate_session(session_id)

        session = manager.get_session(session_id)
        assert session.created_at == created
        assert session.last_access_at == created + timedelta(minutes=30)

    def test_get_session_does_not_touch(self, manager, clock):
        session_id = manager.create_session("user_001")
        clock.advance(minutes=10)
        manager.get_session(session_id)

        session = manager.get_session(session_id)
        assert session.last_access_at == session.created_at

    def test_destroy_session(self, manager):
        session_id = manager.create_session("user_001")

        manager.destroy_session(session_id)
        manager.destroy_session(session_id)  # idempotent

        assert manager.validate_session(session_id) is False
        assert manager.get_session(session_id) is None

    def test_destroy_user_sessions(self, manager):
        s1 = manager.create_session("user_001")
        s2 = manager.create_session("user_001")
        s3 = manager.create_session("user_002")
        assert manager.get_active_session_count() == 3

        removed = manager.destroy_user_sessions("user_001")

        assert removed == 2
        assert manager.get_active_session_count() == 1
        assert manager.validate_session(s1) is False
        assert manager.validate_session(s2) is False
        assert manager.validate_session(s3) is True

    def test_destroy_during_validation_is_not_undone(self, token_service, clock):
        class RacingStore(MemoryStore):
            """Another worker ends the user's sessions right after each read"""

            manager = None

            def get(self, key):
                record = super().get(key)
                self.manager.destroy_user_sessions("user_001")
                return record

        store = RacingStore()
        manager = SessionManager(token_service, store=store, clock=clock)
        store.manager = manager
        session_id = manager.create_session("user_001")

        assert manager.validate_session(session_id) is False
        assert manager.get_session(session_id) is None
        assert manager.get_active_session_count() == 0


class TestSessionExpiry:
    def test_strict_expiry_rejects_idle_session(self, manager, clock):
        session_id = manager.create_session("user_001")

        clock.advance(hours=24, seconds=1)

        assert manager.validate_session(session_id) is False
        assert manager.get_session(session_id) is None

    def test_activity_keeps_session_alive(self, manager, clock):
        session_id = manager.create_session("user_001")

        for _ in range(3):
            clock.advance(hours=20)
            assert manager.validate_session(session_id) is True

    def test_lenient_expiry_waits_for_sweep(self, lenient_manager, clock):
        session_id = lenient_manager.create_session("user_001")

        clock.advance(hours=25)
        assert lenient_manager.validate_session(session_id) is True

        clock.advance(hours=25)
        assert lenient_manager.cleanup_expired_sessions() == 1
        assert lenient_manager.validate_session(session_id) is False

    def test_cleanup_only_removes_idle_sessions(self, manager, clock):
        old = manager.create_session("user_001")
        clock.advance(hours=20)
        fresh = manager.create_session("user_002")
        clock.advance(hours=5)

        assert manager.cleanup_expired_sessions() == 1
        assert manager.get_session(old) is None
        assert manager.get_session(fresh) is not None

    def test_custom_ttl(self, token_service, clock):
        manager = SessionManager(token_service, ttl=timedelta(minutes=5), clock=clock)
        session_id = manager.create_session("user_001")

        clock.advance(minutes=6)

        assert manager.validate_session(session_id) is False
