from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from plantcare.services.garden_store import StoreError
from plantcare.services.users import SupabaseUserDirectory

from conftest import ALICE, ALICE_EMAIL, T0


def test_memory_counters_never_go_negative(users):
    users.adjust_plant_count(ALICE, 1)
    users.adjust_plant_count(ALICE, -1)
    users.adjust_plant_count(ALICE, -1)
    users.record_task_completed(ALICE)

    profile = users.get_profile(ALICE)
    assert profile["total_plants"] == 0
    assert profile["tasks_completed"] == 1


def test_memory_unknown_user_has_no_target(users):
    assert users.get_notification_target("nobody") is None
    assert users.adjust_plant_count("nobody", 1) is False
    assert users.record_activity("nobody", "Added Fern to garden", T0) is False


def test_memory_activity_keeps_newest_ten(users):
    for i in range(12):
        users.record_activity(ALICE, f"Added Plant {i} to garden", T0 + timedelta(minutes=i))

    activity = users.get_profile(ALICE)["recent_activity"]

    assert len(activity) == 10
    assert activity[0] == {"text": "Added Plant 2 to garden", "time": (T0 + timedelta(minutes=2)).isoformat()}
    assert activity[-1]["text"] == "Added Plant 11 to garden"


def test_memory_profile_copy_does_not_leak_activity(users):
    users.get_profile(ALICE)["recent_activity"].append({"text": "tampered"})
    assert users.get_profile(ALICE)["recent_activity"] == []


def _profiles(client):
    return client.table.return_value.select.return_value.eq.return_value.limit.return_value


def test_supabase_target_from_profile():
    client = MagicMock()
    _profiles(client).execute.return_value.data = [
        {"id": ALICE, "email": ALICE_EMAIL, "name": None, "notifications_enabled": None}
    ]

    target = SupabaseUserDirectory(client).get_notification_target(ALICE)

    client.table.assert_called_once_with("profiles")
    assert target.address == ALICE_EMAIL
    assert target.name == ""
    # NULL preference means the column default (enabled)
    assert target.notifications_enabled is True


def test_supabase_opted_out_profile():
    client = MagicMock()
    _profiles(client).execute.return_value.data = [
        {"id": ALICE, "email": ALICE_EMAIL, "name": "Alice", "notifications_enabled": False}
    ]

    assert SupabaseUserDirectory(client).get_notification_target(ALICE).notifications_enabled is False


def test_supabase_missing_profile_is_none():
    client = MagicMock()
    _profiles(client).execute.return_value.data = []

    assert SupabaseUserDirectory(client).get_notification_target(ALICE) is None


def test_supabase_lookup_failure_raises_store_error():
    client = MagicMock()
    _profiles(client).execute.side_effect = RuntimeError("timeout")

    with pytest.raises(StoreError):
        SupabaseUserDirectory(client).get_notification_target(ALICE)


def test_supabase_counters_use_rpc():
    client = MagicMock()

    assert SupabaseUserDirectory(client).adjust_plant_count(ALICE, -1) is True

    client.rpc.assert_called_once_with("adjust_profile_counter", {
        "p_user_id": ALICE,
        "p_counter": "total_plants",
        "p_delta": -1,
    })


def test_supabase_counter_failure_is_not_fatal():
    client = MagicMock()
    client.rpc.return_value.execute.side_effect = RuntimeError("function missing")

    assert SupabaseUserDirectory(client).record_task_completed(ALICE) is False


def test_supabase_activity_uses_rpc():
    client = MagicMock()

    assert SupabaseUserDirectory(client).record_activity(ALICE, "Added Fern to garden", T0) is True

    client.rpc.assert_called_once_with("push_profile_activity", {
        "p_user_id": ALICE,
        "p_text": "Added Fern to garden",
        "p_time": T0.isoformat(),
        "p_limit": 10,
    })


def test_supabase_activity_failure_is_not_fatal():
    client = MagicMock()
    client.rpc.return_value.execute.side_effect = RuntimeError("function missing")

    assert SupabaseUserDirectory(client).record_activity(ALICE, "Added Fern to garden", T0) is False
