import pytest

from plantcare.utils.sanitize import describe_recipient, mask_email
from plantcare.utils.validation import is_valid_uuid, validate_plant_payload


def test_valid_payload_is_normalized():
    plant, error = validate_plant_payload({
        "commonName": "  Snake   Plant \x07",
        "confidence": 150,
        "care": {"water": " Every 2-3 days ", "light": ""},
    })

    assert error is None
    assert plant.common_name == "Snake Plant"
    assert plant.scientific_name == "Unknown"
    assert plant.family == "Unknown Family"
    assert plant.confidence == 100
    assert plant.water == "Every 2-3 days"
    assert plant.care["light"] is None


@pytest.mark.parametrize("payload, error", [
    (None, "Plant data required"),
    ("Fern", "Plant data required"),
    ({"commonName": "   "}, "Plant common name is required"),
    ({"commonName": "Fern", "care": "water often"}, "Plant care must be an object"),
])
def test_invalid_payloads(payload, error):
    assert validate_plant_payload(payload) == (None, error)


@pytest.mark.parametrize("raw, expected", [
    ("abc", 0),
    (float("nan"), 0),
    (-5, 0),
    (49.5, 50),
    ("Infinity", 100),
    ("-Infinity", 0),
    ("1e999", 100),
    (float("inf"), 100),
    (1e300, 100),
])
def test_confidence_is_clamped(raw, expected):
    plant, _ = validate_plant_payload({"commonName": "Fern", "confidence": raw})
    assert plant.confidence == expected


def test_uuid_check():
    assert is_valid_uuid("550e8400-e29b-41d4-a716-446655440000")
    assert not is_valid_uuid("550e8400")
    assert not is_valid_uuid(None)


def test_mask_email():
    assert mask_email("alice@example.com") == "a***@example.com"
    assert mask_email("nope") == "***"
    assert describe_recipient("u1", "bob@example.com") == "user u1 (b***@example.com)"
