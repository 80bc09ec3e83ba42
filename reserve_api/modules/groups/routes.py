from fastapi import APIRouter, Depends
from reserve_api.database.supabase_client import get_supabase
from reserve_api.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithMembersResponse, GroupMember
)
from reserve_api.modules.groups.service import GroupService
from reserve_api.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupWithMembersResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group with initial members"""
    return service.create_group(group_data)


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List all groups ordered by name"""
    return service.list_groups()


@router.get("/{group_id}", response_model=GroupWithMembersResponse)
async def get_group(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Get group with its members"""
    return service.get_group_with_members(group_id)


@router.put("/{group_id}", response_model=GroupWithMembersResponse)
async def update_group(
    group_id: int,
    group_data: GroupUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Update group and optionally replace its members"""
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Delete group, its memberships and its reservation links"""
    service.delete_group(group_id)
    return None


@router.get("/{group_id}/members", response_model=List[GroupMember])
async def list_members(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List all members of a group"""
    return service.list_members(group_id)
