from datetime import datetime
from supabase import Client
from typing import Dict, List, Optional, Any
import logging

from reserve_api.core.errors import NotFoundError, StoreError
from reserve_api.modules.reserves.schemas import ReserveResponse

logger = logging.getLogger(__name__)


def serialize_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class ReserveStore:
    """Thin adapter over the reservation tables. Every failed call becomes a StoreError."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _execute(self, operation: str, query):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Store call failed ({operation}): {e}")
            raise StoreError(f"{operation} failed: {e}", operation=operation) from e

    # Reads

    def _attach_relations(self, rows: List[Dict[str, Any]]) -> List[ReserveResponse]:
        """Join series id, group ids and member ids onto reserve rows."""
        if not rows:
            return []
        ids = [row["id"] for row in rows]

        links = self._execute(
            "select reserve_relations",
            self.supabase.table("reserve_relations")
                .select("reserve_id, reserve_group_id")
                .in_("reserve_id", ids),
        )
        group_rels = self._execute(
            "select reserve_group_relations",
            self.supabase.table("reserve_group_relations")
                .select("reserve_id, group_id")
                .in_("reserve_id", ids),
        )
        member_rels = self._execute(
            "select reserve_member_relations",
            self.supabase.table("reserve_member_relations")
                .select("reserve_id, member_id")
                .in_("reserve_id", ids),
        )

        series: Dict[int, int] = {}
        for link in links.data or []:
            series.setdefault(link["reserve_id"], link["reserve_group_id"])
        groups: Dict[int, List[int]] = {}
        for rel in group_rels.data or []:
            groups.setdefault(rel["reserve_id"], []).append(rel["group_id"])
        members: Dict[int, List[int]] = {}
        for rel in member_rels.data or []:
            members.setdefault(rel["reserve_id"], []).append(rel["member_id"])

        return [
            ReserveResponse(
                **row,
                reserve_group_id=series.get(row["id"]),
                group_ids=groups.get(row["id"], []),
                member_ids=members.get(row["id"], []),
            )
            for row in rows
        ]

    def list_reserves(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> List[ReserveResponse]:
        """All reservations ordered by start time, optionally starting inside [window_start, window_end)."""
        query = self.supabase.table("reserves").select("*")
        if window_start is not None:
            query = query.gte("start_time", serialize_time(window_start))
        if window_end is not None:
            query = query.lt("start_time", serialize_time(window_end))
        result = self._execute("list reserves", query.order("start_time"))
        return self._attach_relations(result.data or [])

    def get_reserve(self, reserve_id: int) -> ReserveResponse:
        result = self._execute(
            "get reserve",
            self.supabase.table("reserves")
                .select("*")
                .eq("id", reserve_id)
                .maybe_single(),
        )
        if not result or not result.data:
            raise NotFoundError(f"Reservation {reserve_id} not found")
        return self._attach_relations([result.data])[0]

    def list_series(self, reserve_group_id: int) -> List[ReserveResponse]:
        links = self._execute(
            "select series links",
            self.supabase.table("reserve_relations")
                .select("reserve_id")
                .eq("reserve_group_id", reserve_group_id),
        )
        ids = [link["reserve_id"] for link in links.data or []]
        if not ids:
            return []
        result = self._execute(
            "list series reserves",
            self.supabase.table("reserves")
                .select("*")
                .in_("id", ids)
                .order("start_time"),
        )
        return self._attach_relations(result.data or [])

    # Reserve rows

    def insert_reserve(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute("insert reserve", self.supabase.table("reserves").insert(fields))
        if not result.data:
            raise StoreError("Failed to create reservation", operation="insert reserve")
        return result.data[0]

    def update_reserve(self, reserve_id: int, fields: Dict[str, Any], owner_id: Optional[str]) -> Dict[str, Any]:
        """Update scoped by id and owner; no matching row means the owner did not match."""
        query = self.supabase.table("reserves").update(fields).eq("id", reserve_id)
        if owner_id is not None:
            query = query.eq("user_id", owner_id)
        result = self._execute("update reserve", query)
        if not result.data:
            raise NotFoundError(f"Reservation {reserve_id} not found for this owner")
        return result.data[0]

    def delete_reserve(self, reserve_id: int, owner_id: Optional[str]) -> bool:
        query = self.supabase.table("reserves").delete().eq("id", reserve_id)
        if owner_id is not None:
            query = query.eq("user_id", owner_id)
        result = self._execute("delete reserve", query)
        return bool(result.data)

    # Series

    def create_reserve_group(self) -> int:
        result = self._execute("insert reserve_group", self.supabase.table("reserve_groups").insert({}))
        if not result.data:
            raise StoreError("Failed to create reservation series", operation="insert reserve_group")
        return result.data[0]["id"]

    def delete_reserve_group(self, reserve_group_id: int):
        self._execute(
            "delete reserve_group",
            self.supabase.table("reserve_groups").delete().eq("id", reserve_group_id),
        )

    def link_series(self, reserve_id: int, reserve_group_id: int):
        self._execute(
            "insert reserve_relation",
            self.supabase.table("reserve_relations").insert({
                "reserve_id": reserve_id,
                "reserve_group_id": reserve_group_id,
            }),
        )

    def unlink_series(self, reserve_id: int):
        self._execute(
            "delete reserve_relation",
            self.supabase.table("reserve_relations").delete().eq("reserve_id", reserve_id),
        )

    def unlink_series_by_group(self, reserve_group_id: int):
        self._execute(
            "delete reserve_relations",
            self.supabase.table("reserve_relations").delete().eq("reserve_group_id", reserve_group_id),
        )

    # Participants

    def insert_group_relations(self, reserve_id: int, group_ids: List[int]):
        if not group_ids:
            return
        self._execute(
            "insert reserve_group_relations",
            self.supabase.table("reserve_group_relations").insert([
                {"reserve_id": reserve_id, "group_id": group_id} for group_id in group_ids
            ]),
        )

    def insert_member_relations(self, reserve_id: int, member_ids: List[int]):
        if not member_ids:
            return
        self._execute(
            "insert reserve_member_relations",
            self.supabase.table("reserve_member_relations").insert([
                {"reserve_id": reserve_id, "member_id": member_id} for member_id in member_ids
            ]),
        )

    def delete_group_relations(self, reserve_id: int):
        self._execute(
            "delete reserve_group_relations",
            self.supabase.table("reserve_group_relations").delete().eq("reserve_id", reserve_id),
        )

    def delete_member_relations(self, reserve_id: int):
        self._execute(
            "delete reserve_member_relations",
            self.supabase.table("reserve_member_relations").delete().eq("reserve_id", reserve_id),
        )

    def replace_relations(self, reserve_id: int, group_ids: List[int], member_ids: List[int]):
        self.delete_group_relations(reserve_id)
        self.delete_member_relations(reserve_id)
        self.insert_group_relations(reserve_id, group_ids)
        self.insert_member_relations(reserve_id, member_ids)
