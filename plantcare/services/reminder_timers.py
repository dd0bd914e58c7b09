"""
Watering reminder engine (per-entry timer strategy).

Every garden entry owns exactly one APScheduler date job, id
"watering-reminder:<entry id>", that fires at its next_watering. Adding a job
for an entry that already has one replaces it, so an entry re-watered before
its timer fires never ends up with two live timers.

On fire the job re-reads the entry, claims and notifies through
ReminderEngine.remind, then schedules itself again at the entry's new
next_watering. Jobs live in memory only: `restore()` must run at startup to
rebuild them from the persisted due dates.
"""

from __future__ import annotations
from contextlib import nullcontext
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import logging

from apscheduler.jobstores.base import JobLookupError

from plantcare.constants import (
    REMINDER_CONFLICT,
    REMINDER_ERROR,
    STRATEGY_TIMER,
    TIMER_JOB_PREFIX,
)
from plantcare.services.garden_store import GardenEntry, StoreError
from plantcare.services.reminders import ReminderEngine
from plantcare.services.watering import utcnow

logger = logging.getLogger(__name__)

RESTORE_JOB_ID = "watering-reminder-restore"


def job_id_for(entry_id: str) -> str:
    return f"{TIMER_JOB_PREFIX}{entry_id}"


class TimerReminderEngine(ReminderEngine):
    """
    Reminder engine that keeps one deferred job per garden entry.

    Args:
        scheduler: APScheduler scheduler hosting the per-entry jobs
        context_factory: Returns a context manager each job runs inside
            (the app factory passes `app.app_context`)
        retry_seconds: Delay before retrying a firing that hit a store error
    """

    strategy = STRATEGY_TIMER

    def __init__(
        self,
        store,
        users,
        notifier,
        scheduler,
        clock: Callable[[], datetime] = utcnow,
        max_workers: int = 4,
        retry_seconds: int = 300,
        context_factory: Optional[Callable] = None,
    ) -> None:
        super().__init__(store, users, notifier, clock=clock, max_workers=max_workers)
        self.scheduler = scheduler
        self.retry_seconds = retry_seconds
        self._context_factory = context_factory or nullcontext

    # ------------------------------------------------------------------
    # Job management
    # ------------------------------------------------------------------

    def _add_job(self, entry_id: str, run_at: datetime) -> None:
        self.scheduler.add_job(
            self._fire,
            trigger="date",
            run_date=run_at,
            args=[entry_id],
            id=job_id_for(entry_id),
            name=f"Watering reminder {entry_id}",
            replace_existing=True,
            misfire_grace_time=None,  # late jobs still run (e.g. after a busy pool)
            coalesce=True,
        )

    def schedule(self, entry: GardenEntry) -> datetime:
        """
        (Re)schedule the single job for `entry` at its next_watering.

        Entries already overdue are scheduled for now, so they fire on the
        scheduler's next wakeup instead of being dropped as misfires.
        """
        run_at = max(entry.next_watering, self.clock())
        self._add_job(entry.id, run_at)
        logger.debug(f"[Watering Timers] Entry {entry.id} scheduled for {run_at.isoformat()}")
        return run_at

    def cancel(self, entry_id: str) -> bool:
        """Remove the pending job for `entry_id`. Returns False if none was pending."""
        try:
            self.scheduler.remove_job(job_id_for(entry_id))
        except JobLookupError:
            logger.debug(f"[Watering Timers] No pending job for entry {entry_id}")
            return False
        return True

    def pending_entry_ids(self) -> List[str]:
        return [
            job.id[len(TIMER_JOB_PREFIX):]
            for job in self.scheduler.get_jobs()
            if job.id.startswith(TIMER_JOB_PREFIX)
        ]

    def _schedule_retry(self, entry_id: str, now: datetime) -> None:
        retry_at = now + timedelta(seconds=self.retry_seconds)
        self._add_job(entry_id, retry_at)
        logger.info(f"[Watering Timers] Entry {entry_id} will retry at {retry_at.isoformat()}")

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def on_plant_added(self, entry: GardenEntry) -> None:
        self.schedule(entry)

    def on_mark_watered(self, entry_id: str) -> None:
        try:
            entry = self.store.get(entry_id)
        except StoreError as e:
            # The old job still fires, sees the later due date and follows it
            logger.error(f"[Watering Timers] Could not reload entry {entry_id} after watering: {e}")
            return

        if entry is None:
            self.cancel(entry_id)
            return
        self.schedule(entry)

    def on_plant_deleted(self, entry_id: str) -> None:
        self.cancel(entry_id)

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def _reschedule_from_store(self, entry_id: str, now: datetime) -> None:
        try:
            entry = self.store.get(entry_id)
        except StoreError as e:
            logger.error(f"[Watering Timers] Could not reload entry {entry_id}: {e}")
            self._schedule_retry(entry_id, now)
            return

        if entry is None:
            logger.info(f"[Watering Timers] Entry {entry_id} no longer exists; timer stopped")
            return
        self.schedule(entry)

    def _fire(self, entry_id: str) -> None:
        """Job body: remind about one entry, then schedule its next reminder."""
        with self._context_factory():
            self.fire(entry_id)

    def fire(self, entry_id: str) -> str:
        """
        Handle a due timer for `entry_id`.

        Returns:
            The REMINDER_* outcome, or "rescheduled" when the entry turned out
            not to be due yet and "gone" when it was deleted
        """
        now = self.clock()

        try:
            entry = self.store.get(entry_id)
        except StoreError as e:
            logger.error(f"[Watering Timers] Could not load entry {entry_id}: {e}")
            self._schedule_retry(entry_id, now)
            return REMINDER_ERROR

        if entry is None:
            logger.info(f"[Watering Timers] Entry {entry_id} no longer exists; timer stopped")
            return "gone"

        if entry.next_watering > now:
            # Re-watered after this job was queued
            self.schedule(entry)
            return "rescheduled"

        try:
            target = self.users.get_notification_target(entry.user_id)
        except StoreError as e:
            logger.error(f"[Watering Timers] Owner lookup failed for entry {entry_id}: {e}")
            self._schedule_retry(entry_id, now)
            return REMINDER_ERROR

        outcome = self.remind(entry, target, now)

        if outcome == REMINDER_ERROR:
            self._schedule_retry(entry_id, now)
        else:
            # Sent, failed, skipped or lost a race: follow what is stored now
            self._reschedule_from_store(entry_id, now)

        if outcome == REMINDER_CONFLICT:
            logger.debug(f"[Watering Timers] Entry {entry_id} was claimed elsewhere")
        return outcome

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------

    def restore(self) -> int:
        """
        Rebuild one job per persisted entry (run once at process start).

        Entries that fell due while the process was down fire immediately.
        If the store is unreachable a retry of the whole restore is queued.

        Returns:
            Number of jobs scheduled
        """
        try:
            entries = self.store.list_scheduled()
        except StoreError as e:
            logger.error(f"[Watering Timers] Could not restore timers: {e}")
            self.scheduler.add_job(
                self._restore_job,
                trigger="date",
                run_date=self.clock() + timedelta(seconds=self.retry_seconds),
                id=RESTORE_JOB_ID,
                replace_existing=True,
                misfire_grace_time=None,
            )
            return 0

        for entry in entries:
            self.schedule(entry)

        logger.info(f"[Watering Timers] Restored {len(entries)} watering timers")
        return len(entries)

    def _restore_job(self) -> None:
        with self._context_factory():
            self.restore()

    def shutdown(self) -> None:
        """Cancel every pending watering job (no orphaned work after exit)."""
        cancelled = 0
        for entry_id in self.pending_entry_ids():
            if self.cancel(entry_id):
                cancelled += 1
        logger.info(f"[Watering Timers] Cancelled {cancelled} pending watering timers")
