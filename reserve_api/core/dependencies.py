"""
Core dependencies for route protection and ownership checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from reserve_api.database.supabase_client import get_supabase
from reserve_api.modules.auth.service import AuthService
from reserve_api.modules.profiles.schemas import ProfileResponse
from reserve_api.modules.profiles.service import ProfileService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_current_profile(
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> Optional[ProfileResponse]:
    """Profile of the current user, or None when it has not been created yet"""
    return ProfileService(supabase).get_profile_by_user_id(user_data["id"])


def is_admin(profile: Optional[ProfileResponse]) -> bool:
    """Admin override comes from profiles.admin"""
    return bool(profile and profile.admin)


def get_current_actor(
    user_data: dict = Depends(get_current_user_id),
    profile: Optional[ProfileResponse] = Depends(get_current_profile)
) -> Dict[str, Any]:
    """Current user plus its admin flag, read once per request"""
    return {
        **user_data,
        "admin": is_admin(profile),
        "profile_id": profile.id if profile else None,
    }


def require_admin(actor: Dict[str, Any] = Depends(get_current_actor)) -> Dict[str, Any]:
    if not actor["admin"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return actor


def check_profile_access(profile_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
    """Allow if the profile is the actor's own or the actor is admin"""
    if actor["admin"] or actor.get("profile_id") == profile_id:
        return actor
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only edit your own profile"
    )
