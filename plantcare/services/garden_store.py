"""
Garden entry persistence.

Provides:
- GardenEntry / PlantMetadata records
- GardenStore: the interface the garden service and reminder engines use
- SupabaseGardenStore: durable store on the `garden_entries` table
- MemoryGardenStore: in-process store for tests and local development

Stores raise StoreError for infrastructure failures. "Not found" and lost
compare-and-update races are outcomes (see plantcare.constants), not errors.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import threading
import uuid

from plantcare.constants import (
    CARE_FIELDS,
    OUTCOME_CONFLICT,
    OUTCOME_NOT_FOUND,
    OUTCOME_OK,
)
from plantcare.services.watering import as_utc

logger = logging.getLogger(__name__)

GARDEN_TABLE = "garden_entries"


class StoreError(Exception):
    """Raised when the backing store cannot be reached or rejects a query."""


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def _from_iso(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    # PostgREST returns "+00:00" offsets; older rows may carry a trailing "Z"
    text = str(value).replace("Z", "+00:00")
    return as_utc(datetime.fromisoformat(text))


@dataclass(frozen=True)
class PlantMetadata:
    common_name: str
    scientific_name: str = "Unknown"
    confidence: int = 0
    family: str = "Unknown Family"
    care: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def water(self) -> Optional[str]:
        return self.care.get("water")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PlantMetadata":
        care = row.get("care") or {}
        return cls(
            common_name=row.get("common_name") or "Unknown Plant",
            scientific_name=row.get("scientific_name") or "Unknown",
            confidence=int(row.get("confidence") or 0),
            family=row.get("family") or "Unknown Family",
            care={key: care.get(key) for key in CARE_FIELDS},
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "common_name": self.common_name,
            "scientific_name": self.scientific_name,
            "confidence": self.confidence,
            "family": self.family,
            "care": dict(self.care),
        }


@dataclass(frozen=True)
class GardenEntry:
    user_id: str
    plant: PlantMetadata
    last_watered: datetime
    next_watering: datetime
    added_at: datetime
    id: Optional[str] = None
    last_reminded_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GardenEntry":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            plant=PlantMetadata.from_row(row),
            last_watered=_from_iso(row.get("last_watered")),
            next_watering=_from_iso(row.get("next_watering")),
            added_at=_from_iso(row.get("added_at")),
            last_reminded_at=_from_iso(row.get("last_reminded_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        row = {
            "user_id": self.user_id,
            **self.plant.to_row(),
            "last_watered": _to_iso(self.last_watered),
            "next_watering": _to_iso(self.next_watering),
            "added_at": _to_iso(self.added_at),
            "last_reminded_at": _to_iso(self.last_reminded_at),
        }
        if self.id:
            row["id"] = self.id
        return row

    def to_api(self) -> Dict[str, Any]:
        """Shape returned by the JSON API (camelCase, ISO timestamps)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "commonName": self.plant.common_name,
            "scientificName": self.plant.scientific_name,
            "confidence": self.plant.confidence,
            "family": self.plant.family,
            "care": dict(self.plant.care),
            "lastWatered": _to_iso(self.last_watered),
            "nextWatering": _to_iso(self.next_watering),
            "lastRemindedAt": _to_iso(self.last_reminded_at),
            "addedAt": _to_iso(self.added_at),
        }


class GardenStore:
    """Interface shared by the garden store backends."""

    def create(self, entry: GardenEntry) -> str:
        raise NotImplementedError

    def get(self, entry_id: str) -> Optional[GardenEntry]:
        raise NotImplementedError

    def list_for_user(self, user_id: str) -> List[GardenEntry]:
        """Entries owned by `user_id`, newest first."""
        raise NotImplementedError

    def list_due_before(self, when: datetime) -> List[GardenEntry]:
        """Entries whose next_watering is at or before `when`."""
        raise NotImplementedError

    def list_scheduled(self) -> List[GardenEntry]:
        """Every entry carrying a next_watering (timer reconstruction)."""
        raise NotImplementedError

    def update_watering(self, entry_id: str, last_watered: datetime, next_watering: datetime) -> str:
        raise NotImplementedError

    def advance_reminder(
        self,
        entry_id: str,
        expected_next: datetime,
        next_watering: datetime,
        reminded_at: datetime,
    ) -> str:
        """
        Compare-and-update used to claim a due window.

        Moves next_watering forward and stamps last_reminded_at only if the
        stored next_watering still equals `expected_next`.

        Returns:
            OUTCOME_OK, OUTCOME_NOT_FOUND or OUTCOME_CONFLICT
        """
        raise NotImplementedError

    def delete(self, entry_id: str) -> str:
        raise NotImplementedError


class MemoryGardenStore(GardenStore):
    """Thread-safe dict-backed store. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._entries: Dict[str, GardenEntry] = {}
        self._lock = threading.Lock()

    def create(self, entry: GardenEntry) -> str:
        entry_id = entry.id or str(uuid.uuid4())
        with self._lock:
            self._entries[entry_id] = replace(entry, id=entry_id)
        return entry_id

    def get(self, entry_id: str) -> Optional[GardenEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def list_for_user(self, user_id: str) -> List[GardenEntry]:
        with self._lock:
            entries = [e for e in self._entries.values() if e.user_id == user_id]
        return sorted(entries, key=lambda e: e.added_at, reverse=True)

    def list_due_before(self, when: datetime) -> List[GardenEntry]:
        when = as_utc(when)
        with self._lock:
            entries = [e for e in self._entries.values() if e.next_watering and e.next_watering <= when]
        return sorted(entries, key=lambda e: e.next_watering)

    def list_scheduled(self) -> List[GardenEntry]:
        with self._lock:
            entries = [e for e in self._entries.values() if e.next_watering]
        return sorted(entries, key=lambda e: e.next_watering)

    def update_watering(self, entry_id: str, last_watered: datetime, next_watering: datetime) -> str:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return OUTCOME_NOT_FOUND
            self._entries[entry_id] = replace(
                entry,
                last_watered=as_utc(last_watered),
                next_watering=as_utc(next_watering),
            )
        return OUTCOME_OK

    def advance_reminder(
        self,
        entry_id: str,
        expected_next: datetime,
        next_watering: datetime,
        reminded_at: datetime,
    ) -> str:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return OUTCOME_NOT_FOUND
            if entry.next_watering != as_utc(expected_next):
                return OUTCOME_CONFLICT
            self._entries[entry_id] = replace(
                entry,
                next_watering=as_utc(next_watering),
                last_reminded_at=as_utc(reminded_at),
            )
        return OUTCOME_OK

    def delete(self, entry_id: str) -> str:
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                return OUTCOME_NOT_FOUND
        return OUTCOME_OK


class SupabaseGardenStore(GardenStore):
    """
    Store backed by the Supabase `garden_entries` table.

    Uses the admin (service role) client: the reminder engines run outside
    any user session, and owner checks happen in the garden service.
    """

    def __init__(self, client) -> None:
        self._client = client

    def _table(self):
        if self._client is None:
            raise StoreError("Database not configured")
        return self._client.table(GARDEN_TABLE)

    def _rows(self, query) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            raise StoreError(f"Supabase query on {GARDEN_TABLE} failed: {e}") from e
        return response.data or []

    def create(self, entry: GardenEntry) -> str:
        row = entry.to_row()
        row.setdefault("id", str(uuid.uuid4()))
        rows = self._rows(self._table().insert(row))
        if not rows:
            raise StoreError("Insert into garden_entries returned no rows")
        return str(rows[0]["id"])

    def get(self, entry_id: str) -> Optional[GardenEntry]:
        rows = self._rows(self._table().select("*").eq("id", entry_id).limit(1))
        return GardenEntry.from_row(rows[0]) if rows else None

    def list_for_user(self, user_id: str) -> List[GardenEntry]:
        rows = self._rows(
            self._table().select("*").eq("user_id", user_id).order("added_at", desc=True)
        )
        return [GardenEntry.from_row(row) for row in rows]

    def list_due_before(self, when: datetime) -> List[GardenEntry]:
        rows = self._rows(
            self._table()
            .select("*")
            .lte("next_watering", _to_iso(when))
            .order("next_watering")
        )
        return [GardenEntry.from_row(row) for row in rows]

    def list_scheduled(self) -> List[GardenEntry]:
        rows = self._rows(
            self._table().select("*").not_.is_("next_watering", "null").order("next_watering")
        )
        return [GardenEntry.from_row(row) for row in rows]

    def update_watering(self, entry_id: str, last_watered: datetime, next_watering: datetime) -> str:
        rows = self._rows(
            self._table()
            .update({
                "last_watered": _to_iso(last_watered),
                "next_watering": _to_iso(next_watering),
            })
            .eq("id", entry_id)
        )
        return OUTCOME_OK if rows else OUTCOME_NOT_FOUND

    def advance_reminder(
        self,
        entry_id: str,
        expected_next: datetime,
        next_watering: datetime,
        reminded_at: datetime,
    ) -> str:
        # Filtering on the old next_watering makes the update a compare-and-set
        rows = self._rows(
            self._table()
            .update({
                "next_watering": _to_iso(next_watering),
                "last_reminded_at": _to_iso(reminded_at),
            })
            .eq("id", entry_id)
            .eq("next_watering", _to_iso(expected_next))
        )
        if rows:
            return OUTCOME_OK
        # Distinguish a lost race from a deleted row
        return OUTCOME_CONFLICT if self.get(entry_id) else OUTCOME_NOT_FOUND

    def delete(self, entry_id: str) -> str:
        rows = self._rows(self._table().delete().eq("id", entry_id))
        return OUTCOME_OK if rows else OUTCOME_NOT_FOUND
