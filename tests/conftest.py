"""
Shared test fixtures for the garden and watering reminder suite.

Provides:
- A Flask app on TestConfig (in-memory store, no background scheduler)
- A controllable clock and a recording notifier swapped into the app
- Stand-alone store / user directory / engine fixtures for service tests
- Helpers for seeding garden entries

Usage:
    def test_example(engine, store, clock, seed_entry):
        entry = seed_entry(ALICE, water="Every 5 days")
        clock.advance(days=5)
        assert engine.run_sweep_tick()["sent"] == 1
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from plantcare.services.email import NotificationResult, Notifier
from plantcare.services.garden_store import GardenEntry, MemoryGardenStore, PlantMetadata
from plantcare.services.reminders import ReminderEngine
from plantcare.services.users import MemoryUserDirectory
from plantcare.services.watering import schedule_from
from plantcare.utils.cache import clear_all_garden_cache

# ---------------------------------------------------------------------------
# Logging, keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("plantcare").setLevel(logging.WARNING)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

ALICE = "user-alice"
BOB = "user-bob"
ALICE_EMAIL = "alice@example.com"
BOB_EMAIL = "bob@example.com"


class FakeClock:
    """Callable clock whose time only moves when a test advances it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingNotifier(Notifier):
    """Notifier that records deliveries; entries can be set to fail or raise."""

    def __init__(self) -> None:
        self.sent = []
        self.added = []
        self.fail_for = set()
        self.raise_for = set()

    def send(self, target, entry) -> NotificationResult:
        if entry.id in self.raise_for:
            raise RuntimeError("smtp connection reset")
        if entry.id in self.fail_for:
            return NotificationResult(False, "rejected")
        self.sent.append((target.user_id, entry.id))
        return NotificationResult(True)

    def send_garden_added(self, target, entry) -> NotificationResult:
        self.added.append((target.user_id, entry.id))
        return NotificationResult(True)

    def sent_entry_ids(self):
        return [entry_id for _, entry_id in self.sent]


def make_plant(name: str = "Snake Plant", water: str | None = "Every 5 days") -> PlantMetadata:
    return PlantMetadata(
        common_name=name,
        scientific_name="Dracaena trifasciata",
        confidence=87,
        family="Asparagaceae",
        care={"water": water, "light": "Bright indirect", "soil": None, "temp": None, "toxic": None},
    )


# ========================== Clock / Notifier ===============================


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture(autouse=True)
def _clear_garden_cache():
    clear_all_garden_cache()
    yield
    clear_all_garden_cache()


# ========================== Service Fixtures ===============================


@pytest.fixture()
def store():
    return MemoryGardenStore()


@pytest.fixture()
def users():
    directory = MemoryUserDirectory()
    directory.add_user(ALICE, ALICE_EMAIL, name="Alice")
    directory.add_user(BOB, BOB_EMAIL, name="Bob")
    return directory


@pytest.fixture()
def engine(store, users, notifier, clock):
    """Sweep engine over the in-memory store."""
    return ReminderEngine(store, users, notifier, clock=clock, max_workers=2)


@pytest.fixture()
def seed_entry(store, clock):
    """Factory: insert an entry watered at `watered_at` (defaults to clock now)."""

    def _seed(user_id: str = ALICE, water: str | None = "Every 5 days",
              name: str = "Snake Plant", watered_at: datetime | None = None) -> GardenEntry:
        watered_at = watered_at or clock()
        _, due = schedule_from(water, watered_at)
        entry = GardenEntry(
            user_id=user_id,
            plant=make_plant(name, water),
            last_watered=watered_at,
            next_watering=due,
            added_at=watered_at,
        )
        entry_id = store.create(entry)
        return store.get(entry_id)

    return _seed


# ========================== App Fixtures ===================================


@pytest.fixture()
def app(monkeypatch, clock, notifier):
    """Flask app on TestConfig with the fake clock and notifier wired in."""
    monkeypatch.setenv("APP_CONFIG", "plantcare.config.TestConfig")

    from plantcare import create_app

    app = create_app()
    ctx = app.extensions["garden"]
    ctx.notifier = notifier
    ctx.clock = clock
    ctx.engine = ReminderEngine(ctx.store, ctx.users, notifier, clock=clock, max_workers=2)
    ctx.users.add_user(ALICE, ALICE_EMAIL, name="Alice")
    ctx.users.add_user(BOB, BOB_EMAIL, name="Bob")
    yield app


@pytest.fixture()
def garden_ctx(app):
    return app.extensions["garden"]


def _login(client, user_id: str, verified: bool = True):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["verified"] = verified
    return client


@pytest.fixture()
def anon_client(app):
    return app.test_client()


@pytest.fixture()
def client(app):
    """Test client signed in as Alice (verified)."""
    return _login(app.test_client(), ALICE)


@pytest.fixture()
def bob_client(app):
    return _login(app.test_client(), BOB)


@pytest.fixture()
def unverified_client(app):
    return _login(app.test_client(), ALICE, verified=False)


AJAX = {"X-Requested-With": "XMLHttpRequest"}
