"""Registry of open workshop sessions keyed by (user_id, workshop_id)."""
import logging
import time
from typing import Dict, Optional, Tuple

from app.config.settings import settings
from app.modules.workshops.session import WorkshopSession

logger = logging.getLogger(__name__)
_registry: Dict[Tuple[str, str], WorkshopSession] = {}
_MAX_SESSIONS = 1000


def _expired(session: WorkshopSession, now: float) -> bool:
    # A session with a write in flight is never dropped
    return not session.busy and now - session.touched_at > settings.session_ttl_seconds


def _evict(now: float) -> None:
    for key in [k for k, s in _registry.items() if _expired(s, now)]:
        del _registry[key]
        logger.info(f"Dropped idle session for workshop {key[1]} (user {key[0]})")
    overflow = len(_registry) - _MAX_SESSIONS + 1
    if overflow <= 0:
        return
    # Oldest clean sessions go first; drafts are only lost to the TTL
    clean = sorted(
        (s.touched_at, k) for k, s in _registry.items() if not s.busy and not s.guard.is_dirty
    )
    for _, key in clean[:overflow]:
        del _registry[key]
        logger.info(f"Evicted session for workshop {key[1]} (user {key[0]}): registry full")


def register(session: WorkshopSession) -> None:
    now = time.monotonic()
    _evict(now)
    session.touched_at = now
    _registry[(session.principal.id, session.workshop.id)] = session
    logger.debug(f"Registered session for workshop {session.workshop.id} (user {session.principal.id})")


def unregister(user_id: str, workshop_id: str) -> None:
    _registry.pop((user_id, workshop_id), None)
    logger.debug(f"Unregistered session for workshop {workshop_id} (user {user_id})")


def get_session(user_id: str, workshop_id: str) -> Optional[WorkshopSession]:
    session = _registry.get((user_id, workshop_id))
    if session is None:
        return None
    now = time.monotonic()
    if _expired(session, now):
        unregister(user_id, workshop_id)
        return None
    session.touched_at = now
    return session


def size() -> int:
    return len(_registry)


def clear() -> None:
    _registry.clear()
