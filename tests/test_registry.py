import pytest
from faker import Faker

from app.config.settings import Settings, settings
from app.modules.auth.schemas import Principal
from app.modules.workshops import registry
from app.modules.workshops.guard import GuardState
from app.modules.workshops.schemas import Workshop
from app.modules.workshops.session import WorkshopSession

fake = Faker()


def _session_helper(dirty=False):
    principal = Principal(id=fake.uuid4(), email=fake.email())
    workshop = Workshop(id=fake.uuid4(), name=fake.catch_phrase(), created_by=principal.id)
    session = WorkshopSession(workshop=workshop, steps=[], principal=principal)
    if dirty:
        session.guard.state = GuardState.DIRTY
    return session


def _key(session):
    return session.principal.id, session.workshop.id


def test_idle_session_is_dropped():
    session = _session_helper()
    registry.register(session)
    session.touched_at -= settings.session_ttl_seconds + 1

    assert registry.get_session(*_key(session)) is None
    assert registry.size() == 0


def test_session_with_write_in_flight_is_kept():
    session = _session_helper()
    registry.register(session)
    session.touched_at -= settings.session_ttl_seconds + 1
    session.busy = True

    assert registry.get_session(*_key(session)) is session


def test_lookup_refreshes_idle_clock():
    session = _session_helper()
    registry.register(session)
    session.touched_at -= settings.session_ttl_seconds - 5

    assert registry.get_session(*_key(session)) is session
    session.touched_at -= 10
    assert registry.get_session(*_key(session)) is session


def test_full_registry_evicts_oldest_clean_session(monkeypatch):
    monkeypatch.setattr(registry, "_MAX_SESSIONS", 2)
    dirty, clean, newest = _session_helper(dirty=True), _session_helper(), _session_helper()

    for session in (dirty, clean, newest):
        registry.register(session)

    assert registry.get_session(*_key(dirty)) is dirty
    assert registry.get_session(*_key(clean)) is None
    assert registry.get_session(*_key(newest)) is newest


def test_service_role_key_is_not_a_setting(monkeypatch):
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "secret")

    config = Settings()

    assert "supabase_service_role_key" not in Settings.model_fields
    assert config.session_ttl_seconds == 3600
    assert config.create_latch_ttl_seconds == 600
