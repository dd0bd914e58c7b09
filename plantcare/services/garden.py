"""
Garden service: adding, watering, listing and deleting garden plants.

Wires the garden store, the owner's profile counters and the reminder engine
together. Route handlers and CLI commands call these functions; they return
(result, error) tuples where error is None, "not_found" or "database".
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import logging
from flask import current_app

from plantcare.constants import OUTCOME_OK, STRATEGY_TIMER
from plantcare.services.email import Notifier, ResendNotifier
from plantcare.services.garden_store import (
    GardenEntry,
    GardenStore,
    MemoryGardenStore,
    PlantMetadata,
    StoreError,
    SupabaseGardenStore,
)
from plantcare.services.reminder_timers import TimerReminderEngine
from plantcare.services.reminders import ReminderEngine
from plantcare.services.supabase_client import get_admin_client, is_configured
from plantcare.services.users import MemoryUserDirectory, SupabaseUserDirectory, UserDirectory
from plantcare.services.watering import schedule_from, utcnow
from plantcare.utils.cache import (
    cache_garden_listing,
    configure_garden_cache,
    invalidate_user_garden_cache,
)

logger = logging.getLogger(__name__)

EXTENSION_KEY = "garden"

ERROR_NOT_FOUND = "not_found"
ERROR_DATABASE = "database"


@dataclass
class GardenContext:
    store: GardenStore
    users: UserDirectory
    notifier: Notifier
    engine: ReminderEngine
    clock: Callable[[], datetime] = utcnow


def init_garden(app, scheduler=None) -> GardenContext:
    """
    Build the garden collaborators from app config and attach them to the app.

    Call this from the Flask app factory, after init_supabase(). The timer
    strategy needs `scheduler`; without one the sweep strategy is used.
    """
    backend = app.config.get("GARDEN_BACKEND", "supabase")
    if backend == "memory":
        store: GardenStore = MemoryGardenStore()
        users: UserDirectory = MemoryUserDirectory()
        app.logger.warning("Garden store is in-memory; gardens are lost on restart")
    else:
        if not is_configured():
            app.logger.warning("Garden store has no Supabase client; garden requests will fail")
        admin = get_admin_client()
        store = SupabaseGardenStore(admin)
        users = SupabaseUserDirectory(admin)

    configure_garden_cache(app.config.get("GARDEN_CACHE_TTL_SECONDS", 300))
    notifier = ResendNotifier.from_config(app.config)
    workers = app.config.get("REMINDER_SWEEP_WORKERS", 4)

    strategy = app.config.get("REMINDER_STRATEGY", "sweep")
    if strategy == STRATEGY_TIMER and scheduler is not None:
        engine: ReminderEngine = TimerReminderEngine(
            store,
            users,
            notifier,
            scheduler,
            max_workers=workers,
            retry_seconds=app.config.get("REMINDER_RETRY_SECONDS", 300),
            context_factory=app.app_context,
        )
    else:
        if strategy == STRATEGY_TIMER:
            app.logger.warning("REMINDER_STRATEGY=timer needs the scheduler; falling back to sweep")
        engine = ReminderEngine(store, users, notifier, max_workers=workers)

    context = GardenContext(store=store, users=users, notifier=notifier, engine=engine)
    app.extensions[EXTENSION_KEY] = context
    return context


def get_context() -> GardenContext:
    """Garden collaborators of the current app."""
    return current_app.extensions[EXTENSION_KEY]


def _get_owned_entry(user_id: str, entry_id: str) -> Optional[GardenEntry]:
    """Load an entry, hiding entries that belong to someone else."""
    entry = get_context().store.get(entry_id)
    if entry is None or entry.user_id != user_id:
        return None
    return entry


def _notify_added(ctx: GardenContext, entry: GardenEntry) -> None:
    """Best-effort "added to your garden" email; never fails the add."""
    try:
        target = ctx.users.get_notification_target(entry.user_id)
        if target is None or not target.notifications_enabled:
            return
        result = ctx.notifier.send_garden_added(target, entry)
        if not result.success:
            logger.warning(f"Garden confirmation email failed for entry {entry.id}: {result.reason}")
    except Exception as e:
        logger.warning(f"Garden confirmation email failed for entry {entry.id}: {e}")


@cache_garden_listing
def _list_garden(user_id: str) -> List[GardenEntry]:
    return get_context().store.list_for_user(user_id)


def list_garden(user_id: str) -> Tuple[List[GardenEntry], Optional[str]]:
    """
    Get the user's garden, newest first.

    Returns:
        (entries, error)
    """
    try:
        return _list_garden(user_id), None
    except StoreError as e:
        logger.error(f"Error fetching garden for user {user_id}: {e}")
        return [], ERROR_DATABASE


def add_plant(user_id: str, plant: PlantMetadata) -> Tuple[Optional[GardenEntry], Optional[str]]:
    """
    Commit an identified plant to the user's garden.

    Sets last_watered to now and derives the first next_watering from the
    plant's watering text, then hands the entry to the reminder engine.

    Args:
        user_id: Owner's id
        plant: Validated plant metadata

    Returns:
        (created_entry, error)
    """
    ctx = get_context()
    now = ctx.clock()
    _, first_due = schedule_from(plant.water, now)

    entry = GardenEntry(
        user_id=user_id,
        plant=plant,
        last_watered=now,
        next_watering=first_due,
        added_at=now,
    )

    try:
        entry_id = ctx.store.create(entry)
    except StoreError as e:
        logger.error(f"Error adding {plant.common_name} to garden of user {user_id}: {e}")
        return None, ERROR_DATABASE

    created = replace(entry, id=entry_id)

    invalidate_user_garden_cache(user_id)
    ctx.users.adjust_plant_count(user_id, 1)
    ctx.users.record_activity(user_id, f"Added {plant.common_name} to garden", now)
    ctx.engine.on_plant_added(created)
    _notify_added(ctx, created)

    logger.info(f"Added {plant.common_name} ({entry_id}) for user {user_id}; next watering {first_due.isoformat()}")
    return created, None


def mark_watered(user_id: str, entry_id: str) -> Tuple[Optional[GardenEntry], Optional[str]]:
    """
    Record a watering now and restart the schedule from this moment.

    The new next_watering is computed from this call's timestamp, never from
    the previous due date, so repeated calls do not compound.

    Returns:
        (updated_entry, error)
    """
    ctx = get_context()

    try:
        entry = _get_owned_entry(user_id, entry_id)
        if entry is None:
            return None, ERROR_NOT_FOUND

        now = ctx.clock()
        _, due = schedule_from(entry.plant.water, now)
        outcome = ctx.store.update_watering(entry_id, now, due)
    except StoreError as e:
        logger.error(f"Error marking entry {entry_id} watered: {e}")
        return None, ERROR_DATABASE

    if outcome != OUTCOME_OK:
        return None, ERROR_NOT_FOUND

    invalidate_user_garden_cache(user_id)
    ctx.users.record_task_completed(user_id)
    ctx.engine.on_mark_watered(entry_id)

    return replace(entry, last_watered=now, next_watering=due), None


def delete_plant(user_id: str, entry_id: str) -> Tuple[bool, Optional[str]]:
    """
    Remove a plant from the user's garden and cancel its reminders.

    Returns:
        (deleted, error)
    """
    ctx = get_context()

    try:
        entry = _get_owned_entry(user_id, entry_id)
        if entry is None:
            return False, ERROR_NOT_FOUND
        outcome = ctx.store.delete(entry_id)
    except StoreError as e:
        logger.error(f"Error deleting entry {entry_id}: {e}")
        return False, ERROR_DATABASE

    if outcome != OUTCOME_OK:
        return False, ERROR_NOT_FOUND

    invalidate_user_garden_cache(user_id)
    ctx.users.adjust_plant_count(user_id, -1)
    ctx.engine.on_plant_deleted(entry_id)
    return True, None
