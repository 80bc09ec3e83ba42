from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class EditMode(str, Enum):
    SINGLE = "single"
    ALL = "all"


class ReserveBase(BaseModel):
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    group_ids: List[int] = []
    member_ids: List[int] = []
    expand_group_members: bool = False  # also select every member of the chosen groups


class ReserveCreate(ReserveBase):
    is_recurring: bool = False
    recurring_weeks: int = Field(default=1, ge=1)


class ReserveUpdate(ReserveBase):
    pass


class ReserveResponse(BaseModel):
    id: int
    user_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reserve_group_id: Optional[int] = None
    group_ids: List[int] = []
    member_ids: List[int] = []

    class Config:
        from_attributes = True


class ReserveCreateResult(BaseModel):
    reserve_group_id: Optional[int] = None
    reserves: List[ReserveResponse]


class SeriesResult(BaseModel):
    mode: EditMode
    reserve_group_id: Optional[int] = None
    affected_ids: List[int] = []
    skipped_ids: List[int] = []  # occurrences owned by someone else
    partial: bool = False


class ConflictCheckRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    exclude_ids: List[int] = []


class ConflictCheckResponse(BaseModel):
    conflict: bool
    conflict_ids: List[int] = []
