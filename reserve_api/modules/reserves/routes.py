from datetime import datetime
from fastapi import APIRouter, Depends
from reserve_api.database.supabase_client import get_supabase
from reserve_api.modules.reserves.schemas import (
    EditMode, ReserveCreate, ReserveUpdate, ReserveResponse, ReserveCreateResult,
    SeriesResult, ConflictCheckRequest, ConflictCheckResponse
)
from reserve_api.modules.reserves.service import ReserveService
from reserve_api.core.dependencies import get_current_user_id, get_current_actor
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/reserves", tags=["reserves"])


def get_reserve_service(supabase: Client = Depends(get_supabase)) -> ReserveService:
    return ReserveService(supabase)


@router.get("", response_model=List[ReserveResponse])
async def list_reserves(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: ReserveService = Depends(get_reserve_service)
):
    """List reservations ordered by start time, optionally those starting in [start, end)"""
    return service.list_reserves(start, end)


@router.post("/check", response_model=ConflictCheckResponse)
async def check_conflicts(
    check: ConflictCheckRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: ReserveService = Depends(get_reserve_service)
):
    """Preview whether an interval collides with existing reservations"""
    conflict_ids = service.check_conflicts(check.start_time, check.end_time, check.exclude_ids)
    return ConflictCheckResponse(conflict=bool(conflict_ids), conflict_ids=conflict_ids)


@router.post("", response_model=ReserveCreateResult, status_code=201)
async def create_reserve(
    reserve_data: ReserveCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: ReserveService = Depends(get_reserve_service)
):
    """Create a reservation, or a weekly series when is_recurring is set"""
    return service.create_reserve(reserve_data, current_user["id"])


@router.get("/series/{reserve_group_id}", response_model=List[ReserveResponse])
async def get_series(
    reserve_group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ReserveService = Depends(get_reserve_service)
):
    """List every reservation of a weekly series"""
    return service.get_series(reserve_group_id)


@router.get("/{reserve_id}", response_model=ReserveResponse)
async def get_reserve(
    reserve_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ReserveService = Depends(get_reserve_service)
):
    """Get reservation by ID"""
    return service.get_reserve(reserve_id)


@router.put("/{reserve_id}", response_model=SeriesResult)
async def update_reserve(
    reserve_id: int,
    reserve_data: ReserveUpdate,
    mode: Optional[EditMode] = None,
    actor: Dict = Depends(get_current_actor),
    service: ReserveService = Depends(get_reserve_service)
):
    """Update one reservation or, with mode=all, every occurrence of its series (owner or admin)"""
    return service.update_reserve(reserve_id, reserve_data, mode, actor["id"], actor["admin"])


@router.delete("/{reserve_id}", response_model=SeriesResult)
async def delete_reserve(
    reserve_id: int,
    mode: Optional[EditMode] = None,
    actor: Dict = Depends(get_current_actor),
    service: ReserveService = Depends(get_reserve_service)
):
    """Delete one reservation or, with mode=all, its whole series (owner or admin)"""
    return service.delete_reserve(reserve_id, mode, actor["id"], actor["admin"])
