"""
Watering reminder engine (sweep strategy).

A sweep tick lists every garden entry whose next_watering has passed, groups
the entries by owner, and for each one:

1. claims the due window with a compare-and-update that moves next_watering
   to one interval after now (derived fresh from the current care text),
2. sends one reminder if the owner exists and has notifications enabled.

Claiming before sending gives at-most-one reminder per due window, even with
overlapping ticks or a concurrent "mark watered". A failed send is logged and
the entry stays rescheduled: best-effort notification, reliable scheduling.

The per-entry timer strategy lives in reminder_timers.py and reuses `remind`.
"""

from __future__ import annotations
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging

from plantcare.constants import (
    OUTCOME_OK,
    REMINDER_CONFLICT,
    REMINDER_ERROR,
    REMINDER_FAILED,
    REMINDER_SENT,
    REMINDER_SKIPPED,
    STRATEGY_SWEEP,
)
from plantcare.services.email import NotificationResult, Notifier
from plantcare.services.garden_store import GardenEntry, GardenStore, StoreError
from plantcare.services.users import NotificationTarget, UserDirectory
from plantcare.services.watering import schedule_from, utcnow
from plantcare.utils.cache import invalidate_user_garden_cache
from plantcare.utils.sanitize import describe_recipient

logger = logging.getLogger(__name__)

# Outcome -> key in the stats dict returned by run_sweep_tick
_STATS_KEYS = {
    REMINDER_SENT: "sent",
    REMINDER_FAILED: "failed",
    REMINDER_SKIPPED: "skipped",
    REMINDER_CONFLICT: "conflicts",
    REMINDER_ERROR: "errors",
}


def empty_stats() -> Dict[str, int]:
    return {"due": 0, "sent": 0, "failed": 0, "skipped": 0, "conflicts": 0, "errors": 0}


class ReminderEngine:
    """
    Decides when garden entries are due and notifies their owners.

    Args:
        store: Garden entry store
        users: Owner lookup (notification targets)
        notifier: Delivers one reminder per call
        clock: Returns the current aware UTC datetime
        max_workers: Owners processed in parallel during a sweep
    """

    strategy = STRATEGY_SWEEP

    def __init__(
        self,
        store: GardenStore,
        users: UserDirectory,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
        max_workers: int = 4,
    ) -> None:
        self.store = store
        self.users = users
        self.notifier = notifier
        self.clock = clock
        self.max_workers = max(1, int(max_workers))

    # ------------------------------------------------------------------
    # Triggers called by the garden service
    # ------------------------------------------------------------------

    def on_plant_added(self, entry: GardenEntry) -> None:
        # Nothing to schedule: the next sweep picks the entry up once due
        logger.debug(f"[Watering Reminders] Entry {entry.id} due at {entry.next_watering.isoformat()}")

    def on_mark_watered(self, entry_id: str) -> None:
        logger.debug(f"[Watering Reminders] Entry {entry_id} watered; next sweep uses the new due date")

    def on_plant_deleted(self, entry_id: str) -> None:
        logger.debug(f"[Watering Reminders] Entry {entry_id} deleted")

    # ------------------------------------------------------------------
    # Delivery core shared by both strategies
    # ------------------------------------------------------------------

    def remind(
        self,
        entry: GardenEntry,
        target: Optional[NotificationTarget],
        now: datetime,
    ) -> str:
        """
        Claim the entry's current due window and notify its owner.

        Args:
            entry: Entry as read by the caller (its next_watering is the
                compare value for the claim)
            target: Owner to notify, or None if the owner no longer exists
            now: Time of this run; the next due date restarts from here

        Returns:
            One of the REMINDER_* outcomes
        """
        _, new_next = schedule_from(entry.plant.water, now)

        try:
            claim = self.store.advance_reminder(entry.id, entry.next_watering, new_next, now)
        except StoreError as e:
            logger.error(f"[Watering Reminders] Could not claim entry {entry.id}: {e}")
            return REMINDER_ERROR

        if claim != OUTCOME_OK:
            # Watered, deleted or claimed by another run since we read it
            logger.info(f"[Watering Reminders] Entry {entry.id} changed before reminding ({claim}), skipping")
            return REMINDER_CONFLICT

        invalidate_user_garden_cache(entry.user_id)

        if target is None or not target.notifications_enabled:
            return REMINDER_SKIPPED

        try:
            result = self.notifier.send(target, entry)
        except Exception as e:
            result = NotificationResult(False, str(e))

        if result.success:
            logger.info(
                f"[Watering Reminders] Reminded {describe_recipient(target.user_id, target.address)} "
                f"about {entry.plant.common_name}; next due {new_next.isoformat()}"
            )
            return REMINDER_SENT

        logger.warning(
            f"[Watering Reminders] Failed to remind {describe_recipient(target.user_id, target.address)} "
            f"about entry {entry.id}: {result.reason}"
        )
        return REMINDER_FAILED

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def _process_owner(self, user_id: str, entries: List[GardenEntry], now: datetime) -> List[str]:
        """Remind one owner about each of their due entries, sequentially."""
        try:
            target = self.users.get_notification_target(user_id)
        except StoreError as e:
            # Leave the entries unclaimed so the next tick retries them
            logger.error(f"[Watering Reminders] Owner lookup failed for user {user_id}: {e}")
            return [REMINDER_ERROR] * len(entries)

        outcomes = []
        for entry in entries:
            try:
                outcomes.append(self.remind(entry, target, now))
            except Exception as e:
                logger.error(f"[Watering Reminders] Error processing entry {entry.id}: {e}", exc_info=True)
                outcomes.append(REMINDER_ERROR)
        return outcomes

    def run_sweep_tick(self) -> Dict[str, int]:
        """
        Run one sweep over every due entry.

        Safe to call while users add, water or delete plants, and safe to
        overlap with another tick: each due window is claimed exactly once.

        Returns:
            Dict with counts:
            {
                "due": 12,
                "sent": 9,
                "failed": 1,
                "skipped": 1,
                "conflicts": 1,
                "errors": 0
            }
        """
        stats = empty_stats()
        now = self.clock()

        try:
            due_entries = self.store.list_due_before(now)
        except StoreError as e:
            logger.error(f"[Watering Reminders] Sweep aborted, could not list due entries: {e}")
            stats["errors"] += 1
            return stats

        stats["due"] = len(due_entries)
        if not due_entries:
            logger.debug("[Watering Reminders] No entries due")
            return stats

        by_owner: Dict[str, List[GardenEntry]] = defaultdict(list)
        for entry in due_entries:
            by_owner[entry.user_id].append(entry)

        logger.info(
            f"[Watering Reminders] {len(due_entries)} entries due across {len(by_owner)} users"
        )

        workers = min(self.max_workers, len(by_owner))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="watering-reminder") as executor:
            future_to_owner = {
                executor.submit(self._process_owner, user_id, entries, now): user_id
                for user_id, entries in by_owner.items()
            }

            for future in as_completed(future_to_owner):
                user_id = future_to_owner[future]
                try:
                    outcomes = future.result()
                except Exception as e:
                    logger.error(f"[Watering Reminders] Error processing user {user_id}: {e}")
                    stats["errors"] += len(by_owner[user_id])
                    continue
                for outcome in outcomes:
                    stats[_STATS_KEYS[outcome]] += 1

        logger.info(
            f"[Watering Reminders] Completed: "
            f"{stats['sent']} sent, {stats['failed']} failed, {stats['skipped']} skipped, "
            f"{stats['conflicts']} conflicts, {stats['errors']} errors"
        )
        return stats
