from supabase import Client
from reserve_api.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from typing import List, Optional
from fastapi import HTTPException


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile_by_id(self, profile_id: int) -> ProfileResponse:
        """Get profile by ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", profile_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_profile_by_user_id(self, user_id: str) -> Optional[ProfileResponse]:
        """Get the profile of an auth user, or None"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                return None

            return ProfileResponse(**result.data)
        except Exception:
            return None

    def create_profile(self, user_id: str, name: Optional[str] = None) -> ProfileResponse:
        """Create the profile row for a newly registered user"""
        try:
            result = self.supabase.table("profiles").insert({
                "user_id": user_id,
                "name": name,
                "admin": False
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create profile")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_profiles(self) -> List[ProfileResponse]:
        """List all profiles by name"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .order("name")\
                .execute()
            return [ProfileResponse(**profile) for profile in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_profile(self, profile_id: int, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update name and organization"""
        try:
            update_data = {}
            if profile_data.name is not None:
                update_data["name"] = profile_data.name
            if profile_data.organization is not None:
                update_data["organization"] = profile_data.organization
            if not update_data:
                return self.get_profile_by_id(profile_id)

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", profile_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_admin(self, profile_id: int, admin: bool) -> ProfileResponse:
        """Grant or revoke the admin override"""
        try:
            result = self.supabase.table("profiles")\
                .update({"admin": admin})\
                .eq("id", profile_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
