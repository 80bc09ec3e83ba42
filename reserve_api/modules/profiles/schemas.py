from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    organization: Optional[str] = None


class ProfileAdminUpdate(BaseModel):
    admin: bool


class ProfileResponse(BaseModel):
    id: int
    user_id: Optional[str] = None
    name: Optional[str] = None
    organization: Optional[str] = None
    admin: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
