"""
Core dependencies for route protection and workshop access checks
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.errors import PermissionDenied
from app.database.supabase_client import SupabaseClient
from app.modules.auth.schemas import Principal
from app.modules.auth.service import AuthService
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_auth_service() -> AuthService:
    return AuthService(await SupabaseClient.get_client())


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Principal:
    """Extract the current principal from the JWT token"""
    return await auth_service.get_current_user(credentials.credentials)


def can_access_workshop(workshop, principal: Principal) -> bool:
    """Creator, invited participant (by email) or anyone when the workshop is public"""
    if workshop.created_by == principal.id:
        return True
    if principal.email and principal.email in (workshop.participants or []):
        return True
    return bool(workshop.is_public)


def check_workshop_access(workshop, principal: Principal):
    if not can_access_workshop(workshop, principal):
        logger.warning(f"User {principal.id} denied access to workshop {workshop.id}")
        raise PermissionDenied("You don't have permission to view this workshop.")
    return principal
