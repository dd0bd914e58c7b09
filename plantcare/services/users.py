"""
User lookups needed by the garden and reminder services.

The account itself (signup, password, OTP verification) lives outside this
package; here we only read who to notify and keep the profile counters that
garden mutations change.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import threading

from plantcare.constants import COUNTER_TASKS_COMPLETED, COUNTER_TOTAL_PLANTS, RECENT_ACTIVITY_LIMIT
from plantcare.services.garden_store import StoreError
from plantcare.utils.sanitize import mask_email

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


@dataclass(frozen=True)
class NotificationTarget:
    user_id: str
    address: str
    name: str = ""
    notifications_enabled: bool = True


class UserDirectory:
    """Interface shared by the user directory backends."""

    def get_notification_target(self, user_id: str) -> Optional[NotificationTarget]:
        """Return who to notify for `user_id`, or None if the user is gone.

        Raises:
            StoreError: the lookup itself failed (retry later)
        """
        raise NotImplementedError

    def adjust_counter(self, user_id: str, counter: str, delta: int) -> bool:
        raise NotImplementedError

    def adjust_plant_count(self, user_id: str, delta: int) -> bool:
        return self.adjust_counter(user_id, COUNTER_TOTAL_PLANTS, delta)

    def record_task_completed(self, user_id: str) -> bool:
        return self.adjust_counter(user_id, COUNTER_TASKS_COMPLETED, 1)

    def record_activity(self, user_id: str, text: str, at: datetime) -> bool:
        """Append to the profile's recent activity feed (newest RECENT_ACTIVITY_LIMIT kept)."""
        raise NotImplementedError


class SupabaseUserDirectory(UserDirectory):
    """Reads the `profiles` table; counters go through an atomic RPC."""

    def __init__(self, client) -> None:
        self._client = client

    def get_notification_target(self, user_id: str) -> Optional[NotificationTarget]:
        if self._client is None:
            raise StoreError("Database not configured")

        try:
            response = (self._client
                        .table(PROFILES_TABLE)
                        .select("id, email, name, notifications_enabled")
                        .eq("id", user_id)
                        .limit(1)
                        .execute())
        except Exception as e:
            raise StoreError(f"Profile lookup failed for {user_id}: {e}") from e

        rows = response.data or []
        if not rows or not rows[0].get("email"):
            return None

        profile = rows[0]
        return NotificationTarget(
            user_id=user_id,
            address=profile["email"],
            name=profile.get("name") or "",
            # Column defaults to true; treat NULL the same way
            notifications_enabled=profile.get("notifications_enabled") is not False,
        )

    def adjust_counter(self, user_id: str, counter: str, delta: int) -> bool:
        if self._client is None:
            return False

        try:
            self._client.rpc("adjust_profile_counter", {
                "p_user_id": user_id,
                "p_counter": counter,
                "p_delta": delta,
            }).execute()
            return True
        except Exception as e:
            logger.warning(f"Failed to adjust {counter} by {delta} for user {user_id}: {e}")
            return False

    def record_activity(self, user_id: str, text: str, at: datetime) -> bool:
        if self._client is None:
            return False

        # Appends and trims to the newest p_limit items in one statement
        try:
            self._client.rpc("push_profile_activity", {
                "p_user_id": user_id,
                "p_text": text,
                "p_time": at.isoformat(),
                "p_limit": RECENT_ACTIVITY_LIMIT,
            }).execute()
            return True
        except Exception as e:
            logger.warning(f"Failed to record activity for user {user_id}: {e}")
            return False


class MemoryUserDirectory(UserDirectory):
    """In-process profiles for tests and local development."""

    def __init__(self) -> None:
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add_user(
        self,
        user_id: str,
        email: str,
        name: str = "",
        notifications_enabled: bool = True,
    ) -> None:
        with self._lock:
            self._profiles[user_id] = {
                "email": email,
                "name": name,
                "notifications_enabled": notifications_enabled,
                COUNTER_TOTAL_PLANTS: 0,
                COUNTER_TASKS_COMPLETED: 0,
                "recent_activity": [],
            }
        logger.debug(f"Registered in-memory profile {user_id} ({mask_email(email)})")

    def set_notifications(self, user_id: str, enabled: bool) -> None:
        with self._lock:
            self._profiles[user_id]["notifications_enabled"] = enabled

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            profile = self._profiles.get(user_id)
            if not profile:
                return None
            copy = dict(profile)
            copy["recent_activity"] = list(profile["recent_activity"])
            return copy

    def get_notification_target(self, user_id: str) -> Optional[NotificationTarget]:
        profile = self.get_profile(user_id)
        if not profile:
            return None
        return NotificationTarget(
            user_id=user_id,
            address=profile["email"],
            name=profile["name"],
            notifications_enabled=profile["notifications_enabled"],
        )

    def adjust_counter(self, user_id: str, counter: str, delta: int) -> bool:
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return False
            profile[counter] = max(0, profile.get(counter, 0) + delta)
        return True

    def record_activity(self, user_id: str, text: str, at: datetime) -> bool:
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return False
            activity: List[Dict[str, Any]] = profile["recent_activity"]
            activity.append({"text": text, "time": at.isoformat()})
            del activity[:-RECENT_ACTIVITY_LIMIT]
        return True
