from datetime import datetime, timedelta
from supabase import Client
from typing import List, Optional, Tuple
import logging

from reserve_api.config.settings import settings
from reserve_api.core.errors import AuthorizationError, StoreError, ValidationError
from reserve_api.modules.groups.service import GroupService
from reserve_api.modules.reserves.saga import Saga
from reserve_api.modules.reserves.scheduling import (
    can_mutate, ensure_bookable, expand_weekly, find_conflicts, plan_series_update,
    resolve_mode, round_to_slot, time_of_day_delta, to_local, validate_series,
)
from reserve_api.modules.reserves.schemas import (
    EditMode, ReserveBase, ReserveCreate, ReserveCreateResult, ReserveResponse,
    ReserveUpdate, SeriesResult,
)
from reserve_api.modules.reserves.store import ReserveStore, serialize_time

logger = logging.getLogger(__name__)


class ReserveService:
    def __init__(
        self,
        supabase: Client,
        timezone: Optional[str] = None,
        slot_minutes: Optional[int] = None,
        max_recurring_weeks: Optional[int] = None,
    ):
        self.supabase = supabase
        self.store = ReserveStore(supabase)
        self.groups = GroupService(supabase)
        self.timezone = timezone or settings.timezone
        self.slot_minutes = settings.slot_minutes if slot_minutes is None else slot_minutes
        self.max_recurring_weeks = max_recurring_weeks or settings.max_recurring_weeks

    # Helpers

    def _normalize(self, start: datetime, end: datetime) -> Tuple[datetime, datetime]:
        start = round_to_slot(to_local(start, self.timezone), self.slot_minutes)
        end = round_to_slot(to_local(end, self.timezone), self.slot_minutes)
        return start, end

    def _selection(self, data: ReserveBase) -> Tuple[List[int], List[int]]:
        """Selected group ids and member ids, de-duplicated in selection order."""
        group_ids = list(dict.fromkeys(data.group_ids))
        member_ids = list(data.member_ids)
        if data.expand_group_members and group_ids:
            try:
                member_ids += self.groups.member_ids_for_groups(group_ids)
            except Exception as e:
                raise StoreError(f"select group members failed: {e}", operation="select user_group_relations") from e
        return group_ids, list(dict.fromkeys(member_ids))

    @staticmethod
    def _owner_scope(reserve: ReserveResponse, user_id: str, admin: bool) -> Optional[str]:
        # admins act on the row's own owner; ownerless rows are only reachable by admins
        if admin:
            return reserve.user_id
        return user_id

    def _series_of(self, reserve: ReserveResponse) -> List[ReserveResponse]:
        if reserve.reserve_group_id is None:
            return [reserve]
        return self.store.list_series(reserve.reserve_group_id) or [reserve]

    def _purge_reserve(self, reserve_id: int, owner_id: Optional[str]) -> bool:
        """Delete a reservation and every row that references it, children first."""
        self.store.delete_member_relations(reserve_id)
        self.store.delete_group_relations(reserve_id)
        self.store.unlink_series(reserve_id)
        return self.store.delete_reserve(reserve_id, owner_id)

    def _restore(self, reserve: ReserveResponse, owner_id: Optional[str]):
        self.store.update_reserve(reserve.id, {
            "title": reserve.title,
            "description": reserve.description,
            "start_time": serialize_time(reserve.start_time),
            "end_time": serialize_time(reserve.end_time),
        }, owner_id)

    # Reads

    def list_reserves(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[ReserveResponse]:
        if start is not None:
            start = to_local(start, self.timezone)
        if end is not None:
            end = to_local(end, self.timezone)
        return self.store.list_reserves(start, end)

    def get_reserve(self, reserve_id: int) -> ReserveResponse:
        return self.store.get_reserve(reserve_id)

    def get_series(self, reserve_group_id: int) -> List[ReserveResponse]:
        return self.store.list_series(reserve_group_id)

    def check_conflicts(self, start: datetime, end: datetime, exclude_ids: List[int]) -> List[int]:
        """Ids of conflicting reservations; raises ValidationError for a malformed interval."""
        start, end = self._normalize(start, end)
        if start >= end:
            raise ValidationError("Start time must be before end time")
        existing = self.store.list_reserves()
        return [r.id for r in find_conflicts(start, end, existing, exclude_ids)]

    # Create

    def create_reserve(self, data: ReserveCreate, user_id: str) -> ReserveCreateResult:
        """Create one reservation, or one per week linked to a new series."""
        start, end = self._normalize(data.start_time, data.end_time)
        weeks = data.recurring_weeks if data.is_recurring else 1
        if weeks > self.max_recurring_weeks:
            raise ValidationError(f"Recurring weeks must be at most {self.max_recurring_weeks}")

        if data.is_recurring:
            intervals = expand_weekly(start, end, weeks, self.timezone)
        else:
            intervals = [(start, end)]

        existing = self.store.list_reserves()
        validate_series(intervals, existing)
        group_ids, member_ids = self._selection(data)

        created_ids = []
        reserve_group_id = None
        with Saga("create reservation") as saga:
            if data.is_recurring:
                reserve_group_id = self.store.create_reserve_group()
                saga.add_compensation(
                    f"delete reserve group {reserve_group_id}",
                    self.store.delete_reserve_group, reserve_group_id,
                )

            for index, (week_start, week_end) in enumerate(intervals):
                row = self.store.insert_reserve({
                    "user_id": user_id,
                    "title": data.title,
                    "description": data.description,
                    "start_time": serialize_time(week_start),
                    "end_time": serialize_time(week_end),
                })
                saga.add_compensation(
                    f"delete reserve {row['id']}",
                    self._purge_reserve, row["id"], user_id,
                )
                if reserve_group_id is not None:
                    self.store.link_series(row["id"], reserve_group_id)
                self.store.insert_group_relations(row["id"], group_ids)
                self.store.insert_member_relations(row["id"], member_ids)
                created_ids.append(row["id"])
                logger.info(f"Created reserve {row['id']} (week {index + 1}/{len(intervals)}) for user {user_id}")

        if reserve_group_id is not None:
            reserves = self.store.list_series(reserve_group_id)
        else:
            reserves = [self.store.get_reserve(created_ids[0])]
        return ReserveCreateResult(reserve_group_id=reserve_group_id, reserves=reserves)

    # Update

    def update_reserve(
        self,
        reserve_id: int,
        data: ReserveUpdate,
        mode: Optional[EditMode],
        user_id: str,
        admin: bool = False,
    ) -> SeriesResult:
        target = self.store.get_reserve(reserve_id)
        if not can_mutate(target, user_id, admin):
            raise AuthorizationError("You do not have permission to update this reservation")

        series = self._series_of(target)
        mode = resolve_mode(mode, target.reserve_group_id, len(series))
        start, end = self._normalize(data.start_time, data.end_time)
        if start >= end:
            raise ValidationError("Start time must be before end time")
        group_ids, member_ids = self._selection(data)

        if mode is EditMode.ALL:
            return self._update_series(target, series, data, start, group_ids, member_ids, user_id, admin)
        return self._update_single(target, data, start, end, group_ids, member_ids, user_id, admin)

    def _update_single(self, target, data, start, end, group_ids, member_ids, user_id, admin) -> SeriesResult:
        existing = self.store.list_reserves()
        ensure_bookable(start, end, existing, exclude_ids=[target.id])
        owner_id = self._owner_scope(target, user_id, admin)

        with Saga(f"update reserve {target.id}") as saga:
            saga.add_compensation(f"restore reserve {target.id}", self._restore, target, owner_id)
            self.store.update_reserve(target.id, {
                "title": data.title,
                "description": data.description,
                "start_time": serialize_time(start),
                "end_time": serialize_time(end),
                "updated_at": datetime.utcnow().isoformat(),
            }, owner_id)

            # an individually edited occurrence leaves its series
            if target.reserve_group_id is not None:
                self.store.unlink_series(target.id)
                saga.add_compensation(
                    f"relink reserve {target.id}",
                    self.store.link_series, target.id, target.reserve_group_id,
                )

            saga.add_compensation(
                f"restore relations of reserve {target.id}",
                self.store.replace_relations, target.id, target.group_ids, target.member_ids,
            )
            self.store.replace_relations(target.id, group_ids, member_ids)

        logger.info(f"Updated reserve {target.id} by user {user_id}")
        return SeriesResult(
            mode=EditMode.SINGLE,
            reserve_group_id=target.reserve_group_id,
            affected_ids=[target.id],
        )

    def _update_series(self, target, series, data, start, group_ids, member_ids, user_id, admin) -> SeriesResult:
        if target.start_time is not None:
            delta = time_of_day_delta(target.start_time, start, self.timezone)
        else:
            delta = timedelta()
        plan = plan_series_update(series, delta, self.timezone, user_id, admin)

        existing = self.store.list_reserves()
        moving_ids = plan.update_ids
        for planned in plan.updates:
            if planned.start_time is not None:
                ensure_bookable(planned.start_time, planned.end_time, existing, exclude_ids=moving_ids)

        with Saga(f"update series {target.reserve_group_id}") as saga:
            for planned in plan.updates:
                reserve = planned.reserve
                owner_id = self._owner_scope(reserve, user_id, admin)
                fields = {
                    "title": data.title,
                    "description": data.description,
                    "updated_at": datetime.utcnow().isoformat(),
                }
                if planned.start_time is not None:
                    fields["start_time"] = serialize_time(planned.start_time)
                    fields["end_time"] = serialize_time(planned.end_time)

                saga.add_compensation(f"restore reserve {reserve.id}", self._restore, reserve, owner_id)
                self.store.update_reserve(reserve.id, fields, owner_id)
                saga.add_compensation(
                    f"restore relations of reserve {reserve.id}",
                    self.store.replace_relations, reserve.id, reserve.group_ids, reserve.member_ids,
                )
                self.store.replace_relations(reserve.id, group_ids, member_ids)

        for reserve in plan.skipped:
            logger.warning(f"Skipped reserve {reserve.id} in series {target.reserve_group_id}: not owned by user {user_id}")
        logger.info(f"Updated {len(plan.updates)} reserve(s) in series {target.reserve_group_id}")

        return SeriesResult(
            mode=EditMode.ALL,
            reserve_group_id=target.reserve_group_id,
            affected_ids=moving_ids,
            skipped_ids=plan.skipped_ids,
            partial=bool(plan.skipped),
        )

    # Delete

    def delete_reserve(
        self,
        reserve_id: int,
        mode: Optional[EditMode],
        user_id: str,
        admin: bool = False,
    ) -> SeriesResult:
        target = self.store.get_reserve(reserve_id)
        if not can_mutate(target, user_id, admin):
            raise AuthorizationError("You do not have permission to delete this reservation")

        series = self._series_of(target)
        mode = resolve_mode(mode, target.reserve_group_id, len(series))
        if mode is EditMode.ALL:
            return self._delete_series(target, series, user_id, admin)

        self._purge_reserve(target.id, self._owner_scope(target, user_id, admin))
        if target.reserve_group_id is not None and len(series) <= 1:
            self.store.delete_reserve_group(target.reserve_group_id)
        logger.info(f"Deleted reserve {target.id} by user {user_id}")
        return SeriesResult(
            mode=EditMode.SINGLE,
            reserve_group_id=target.reserve_group_id,
            affected_ids=[target.id],
        )

    def _delete_series(self, target, series, user_id, admin) -> SeriesResult:
        """Purge the series children before parents: relations, links, reserves, then the series row."""
        authorized = [r for r in series if can_mutate(r, user_id, admin)]
        skipped = [r for r in series if not can_mutate(r, user_id, admin)]
        reserve_group_id = target.reserve_group_id

        for reserve in authorized:
            self.store.delete_member_relations(reserve.id)
        for reserve in authorized:
            self.store.delete_group_relations(reserve.id)

        # skipped occurrences stay in the series, so only the deleted ones lose their link
        if skipped:
            for reserve in authorized:
                self.store.unlink_series(reserve.id)
        else:
            self.store.unlink_series_by_group(reserve_group_id)

        for reserve in authorized:
            self.store.delete_reserve(reserve.id, self._owner_scope(reserve, user_id, admin))

        if not skipped:
            self.store.delete_reserve_group(reserve_group_id)
        for reserve in skipped:
            logger.warning(f"Kept reserve {reserve.id} in series {reserve_group_id}: not owned by user {user_id}")
        logger.info(f"Deleted {len(authorized)} reserve(s) of series {reserve_group_id}")

        return SeriesResult(
            mode=EditMode.ALL,
            reserve_group_id=reserve_group_id,
            affected_ids=[r.id for r in authorized],
            skipped_ids=[r.id for r in skipped],
            partial=bool(skipped),
        )
