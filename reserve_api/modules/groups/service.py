from supabase import Client
from reserve_api.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithMembersResponse, GroupMember
)
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_group(self, group_data: GroupCreate) -> GroupWithMembersResponse:
        """Create a new group with its initial members"""
        try:
            result = self.supabase.table("groups").insert({
                "name": group_data.name,
                "description": group_data.description
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")

            group_id = result.data[0]["id"]
            self._insert_members(group_id, group_data.member_ids)
            logger.info(f"Created group {group_id} with {len(group_data.member_ids)} member(s)")

            return self.get_group_with_members(group_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_by_id(self, group_id: int) -> GroupResponse:
        """Get group by ID"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_with_members(self, group_id: int) -> GroupWithMembersResponse:
        """Get group with its member profiles"""
        group = self.get_group_by_id(group_id)
        members = self.list_members(group_id)
        return GroupWithMembersResponse(**group.model_dump(), members=members)

    def list_groups(self) -> List[GroupResponse]:
        """List all groups by name"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .order("name")\
                .execute()
            return [GroupResponse(**group) for group in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_group(self, group_id: int, group_data: GroupUpdate) -> GroupWithMembersResponse:
        """Update group fields and, when member_ids is given, replace its members"""
        try:
            self.get_group_by_id(group_id)

            update_data = {}
            if group_data.name:
                update_data["name"] = group_data.name
            if group_data.description is not None:
                update_data["description"] = group_data.description

            if update_data:
                self.supabase.table("groups")\
                    .update(update_data)\
                    .eq("id", group_id)\
                    .execute()

            if group_data.member_ids is not None:
                self.supabase.table("user_group_relations")\
                    .delete()\
                    .eq("group_id", group_id)\
                    .execute()
                self._insert_members(group_id, group_data.member_ids)

            return self.get_group_with_members(group_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_group(self, group_id: int) -> bool:
        """Delete group"""
        try:
            # Delete memberships first
            self.supabase.table("user_group_relations")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            # Detach from reservations
            self.supabase.table("reserve_group_relations")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            # Delete group
            result = self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: int) -> List[GroupMember]:
        """List the member profiles of a group"""
        try:
            relations = self.supabase.table("user_group_relations")\
                .select("user_id")\
                .eq("group_id", group_id)\
                .execute()
            profile_ids = [r["user_id"] for r in relations.data or []]
            if not profile_ids:
                return []

            profiles = self.supabase.table("profiles")\
                .select("id, name, organization")\
                .in_("id", profile_ids)\
                .order("name")\
                .execute()
            return [GroupMember(**p) for p in profiles.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def member_ids_for_groups(self, group_ids: List[int]) -> List[int]:
        """Profile ids of everyone in any of the given groups"""
        if not group_ids:
            return []
        result = self.supabase.table("user_group_relations")\
            .select("group_id, user_id")\
            .in_("group_id", group_ids)\
            .execute()
        seen = []
        for relation in result.data or []:
            if relation["user_id"] not in seen:
                seen.append(relation["user_id"])
        return seen

    def _insert_members(self, group_id: int, member_ids: List[int]):
        if not member_ids:
            return
        self.supabase.table("user_group_relations").insert([
            {"group_id": group_id, "user_id": member_id} for member_id in member_ids
        ]).execute()
