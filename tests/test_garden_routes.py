from datetime import timedelta

from plantcare.services.garden_store import StoreError

from conftest import AJAX, ALICE, T0

PLANT = {
    "commonName": "Snake Plant",
    "scientificName": "Dracaena trifasciata",
    "confidence": 87.4,
    "family": "Asparagaceae",
    "care": {"water": "Every 5 days", "light": "Bright indirect"},
}


def _add(client, plant=None):
    return client.post("/api/v1/garden", json={"plant": plant or PLANT}, headers=AJAX)


# ========================== Auth / request guards ===========================


def test_listing_requires_sign_in(anon_client):
    response = anon_client.get("/api/v1/garden")
    assert response.status_code == 401
    assert response.get_json()["redirect"] == "/login"


def test_unverified_users_are_redirected_to_verification(unverified_client):
    response = unverified_client.get("/api/v1/garden")
    assert response.status_code == 403
    assert response.get_json()["redirect"] == "/verify-otp"


def test_mutations_require_ajax_header(client):
    response = client.post("/api/v1/garden", json={"plant": PLANT})
    assert response.status_code == 403


def test_add_requires_plant_payload(client):
    response = client.post("/api/v1/garden", json={}, headers=AJAX)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Plant data required"


def test_add_rejects_non_object_body(client):
    response = client.post("/api/v1/garden", json=["plant"], headers=AJAX)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Plant data required"


def test_add_clamps_infinite_confidence(client):
    response = _add(client, {**PLANT, "confidence": "Infinity"})
    assert response.status_code == 201
    assert response.get_json()["plant"]["confidence"] == 100


def test_add_requires_common_name(client):
    response = _add(client, {"care": {"water": "Every 5 days"}})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Plant common name is required"


def test_security_headers_are_set(client):
    response = client.get("/api/v1/garden")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


# ========================== Add / list ======================================


def test_add_plant_derives_first_watering(client, garden_ctx, notifier):
    response = _add(client)

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["nextWatering"] == (T0 + timedelta(days=5)).isoformat()
    assert body["plant"]["lastWatered"] == T0.isoformat()
    assert body["plant"]["confidence"] == 87
    assert body["plant"]["care"]["soil"] is None

    assert garden_ctx.users.get_profile(ALICE)["total_plants"] == 1
    assert notifier.added == [(ALICE, body["plant"]["id"])]


def test_add_plant_is_recorded_in_activity_feed(client, garden_ctx):
    _add(client)

    activity = garden_ctx.users.get_profile(ALICE)["recent_activity"]
    assert activity == [{"text": "Added Snake Plant to garden", "time": T0.isoformat()}]


def test_add_plant_without_care_text_uses_default_interval(client):
    body = _add(client, {"commonName": "Mystery Plant"}).get_json()
    assert body["nextWatering"] == (T0 + timedelta(days=3)).isoformat()


def test_list_returns_newest_first_and_only_own_plants(client, bob_client, clock):
    _add(client, {**PLANT, "commonName": "Fern"})
    clock.advance(minutes=5)
    _add(client, {**PLANT, "commonName": "Monstera"})
    _add(bob_client, {**PLANT, "commonName": "Cactus"})

    plants = client.get("/api/v1/garden").get_json()["plants"]

    assert [p["commonName"] for p in plants] == ["Monstera", "Fern"]


def test_list_store_failure_returns_generic_error(client, garden_ctx, monkeypatch):
    def _boom(user_id):
        raise StoreError("connection refused")

    monkeypatch.setattr(garden_ctx.store, "list_for_user", _boom)

    response = client.get("/api/v1/garden")

    assert response.status_code == 500
    assert "connection refused" not in response.get_data(as_text=True)


# ========================== Water ===========================================


def test_watering_restarts_schedule_from_now(client, garden_ctx, clock):
    plant = _add(client).get_json()["plant"]
    assert plant["nextWatering"] == (T0 + timedelta(days=5)).isoformat()

    t1 = clock.advance(days=2)
    response = client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX)

    assert response.status_code == 200
    body = response.get_json()
    assert body["nextWatering"] == (t1 + timedelta(days=5)).isoformat()
    assert body["plant"]["lastWatered"] == t1.isoformat()
    assert garden_ctx.users.get_profile(ALICE)["tasks_completed"] == 1


def test_watering_twice_does_not_compound(client, clock):
    plant = _add(client).get_json()["plant"]
    t1 = clock.advance(hours=1)

    client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX)
    body = client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX).get_json()

    assert body["nextWatering"] == (t1 + timedelta(days=5)).isoformat()


def test_listing_reflects_watering_immediately(client, clock):
    plant = _add(client).get_json()["plant"]
    client.get("/api/v1/garden")  # warm the cache

    t1 = clock.advance(days=1)
    client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX)

    listed = client.get("/api/v1/garden").get_json()["plants"][0]
    assert listed["nextWatering"] == (t1 + timedelta(days=5)).isoformat()


def test_cannot_water_someone_elses_plant(client, bob_client):
    plant = _add(client).get_json()["plant"]

    response = bob_client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX)

    assert response.status_code == 404
    assert response.get_json()["error"] == "Plant not found"


def test_water_with_malformed_id_is_not_found(client):
    response = client.post("/api/v1/garden/not-a-uuid/water", headers=AJAX)
    assert response.status_code == 404


# ========================== Delete ==========================================


def test_delete_removes_plant_and_decrements_count(client, garden_ctx):
    plant = _add(client).get_json()["plant"]

    response = client.delete(f"/api/v1/garden/{plant['id']}", headers=AJAX)

    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    assert client.get("/api/v1/garden").get_json()["plants"] == []
    assert garden_ctx.users.get_profile(ALICE)["total_plants"] == 0

    again = client.delete(f"/api/v1/garden/{plant['id']}", headers=AJAX)
    assert again.status_code == 404


def test_cannot_delete_someone_elses_plant(client, bob_client, garden_ctx):
    plant = _add(client).get_json()["plant"]

    response = bob_client.delete(f"/api/v1/garden/{plant['id']}", headers=AJAX)

    assert response.status_code == 404
    assert garden_ctx.store.get(plant["id"]) is not None


def test_deleted_plant_is_never_reminded(client, garden_ctx, notifier, clock):
    plant = _add(client).get_json()["plant"]
    client.delete(f"/api/v1/garden/{plant['id']}", headers=AJAX)

    clock.advance(days=6)
    stats = garden_ctx.engine.run_sweep_tick()

    assert stats["due"] == 0
    assert notifier.sent == []


# ========================== End to end ======================================


def test_added_plant_is_reminded_once_when_due(client, garden_ctx, notifier, clock):
    plant = _add(client).get_json()["plant"]

    clock.advance(days=4)
    assert garden_ctx.engine.run_sweep_tick()["sent"] == 0

    now = clock.advance(days=1)
    assert garden_ctx.engine.run_sweep_tick()["sent"] == 1
    assert garden_ctx.engine.run_sweep_tick()["sent"] == 0

    listed = client.get("/api/v1/garden").get_json()["plants"][0]
    assert notifier.sent == [(ALICE, plant["id"])]
    assert listed["lastRemindedAt"] == now.isoformat()
    assert listed["nextWatering"] == (now + timedelta(days=5)).isoformat()


def test_watering_before_due_postpones_reminder(client, garden_ctx, notifier, clock):
    plant = _add(client).get_json()["plant"]

    clock.advance(days=4)
    client.post(f"/api/v1/garden/{plant['id']}/water", headers=AJAX)

    clock.advance(days=2)
    assert garden_ctx.engine.run_sweep_tick()["sent"] == 0
    assert notifier.sent == []
