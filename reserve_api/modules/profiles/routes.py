from fastapi import APIRouter, Depends, HTTPException, status
from reserve_api.database.supabase_client import get_supabase, get_service_supabase
from reserve_api.modules.profiles.schemas import ProfileUpdate, ProfileAdminUpdate, ProfileResponse
from reserve_api.modules.profiles.service import ProfileService
from reserve_api.core.dependencies import (
    get_current_user_id, get_current_actor, require_admin, check_profile_access
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """List all profiles ordered by name"""
    return service.list_profiles()


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get the current user's profile"""
    profile = service.get_profile_by_user_id(current_user["id"])
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get profile by ID"""
    return service.get_profile_by_id(profile_id)


@router.put("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: int,
    profile_data: ProfileUpdate,
    actor: Dict = Depends(get_current_actor),
    service: ProfileService = Depends(get_profile_service)
):
    """Update name/organization (own profile, or any profile for admins)"""
    check_profile_access(profile_id, actor)
    return service.update_profile(profile_id, profile_data)


@router.put("/{profile_id}/admin", response_model=ProfileResponse)
async def set_admin(
    profile_id: int,
    admin_data: ProfileAdminUpdate,
    actor: Dict = Depends(require_admin),
    supabase: Client = Depends(get_service_supabase)
):
    """Grant or revoke the admin flag (admins only)"""
    return ProfileService(supabase).set_admin(profile_id, admin_data.admin)
