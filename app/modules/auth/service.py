import hashlib
import logging
import time
from supabase import AsyncClient
from app.modules.auth.schemas import Principal
from app.config.settings import settings
from fastapi import HTTPException
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, Tuple[Principal, float]] = {}
_AUTH_CACHE_MAX_SIZE = 500


class AuthService:
    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    async def get_current_user(self, token: str) -> Principal:
        """Resolve the caller from a Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                principal, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return principal
                del _AUTH_USER_CACHE[cache_key]
            user_response = await self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            principal = Principal(id=user.id, email=user.email)
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (principal, now + settings.auth_cache_ttl_seconds)
            return principal
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            logger.warning(f"Token verification failed: {error_msg}")
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()
