from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: List[int] = []


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    member_ids: Optional[List[int]] = None  # None keeps the current members


class GroupResponse(BaseModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMember(BaseModel):
    id: int
    name: Optional[str] = None
    organization: Optional[str] = None


class GroupWithMembersResponse(BaseModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    members: List[GroupMember] = []

    class Config:
        from_attributes = True
