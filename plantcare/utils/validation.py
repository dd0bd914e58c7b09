"""
Input validation and normalization for garden payloads.

Trims and bounds field lengths, strips control characters, clamps the
classifier confidence, and builds a PlantMetadata for the garden service.
"""

from __future__ import annotations
import math
import re
from typing import Any, Dict, Optional, Tuple

from plantcare.constants import CARE_FIELDS
from plantcare.services.garden_store import PlantMetadata

# UUID validation pattern (RFC 4122 compliant)
_UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)

MAX_NAME_LEN = 120
MAX_CARE_LEN = 200


def _soft_sanitize(text: Any, max_len: int) -> str:
    """
    Normalizes free-text fields:
    - strip whitespace
    - bound length
    - remove control characters
    - collapse repeated spaces/tabs
    """
    if not isinstance(text, str):
        return ""
    t = text.strip()
    if not t:
        return ""
    t = t[:max_len]
    t = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", t)
    t = re.sub(r"[ \t]{2,}", " ", t)
    return t.strip()


def _normalize_confidence(value: Any) -> int:
    """Classifier confidence as an integer percentage in 0..100."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    return max(0, min(100, int(number + 0.5)))


def validate_plant_payload(payload: Any) -> Tuple[Optional[PlantMetadata], Optional[str]]:
    """
    Validate the plant object posted when adding to the garden.

    Accepts the camelCase shape the identification step returns:
        {
            "commonName": "Snake Plant",
            "scientificName": "Dracaena trifasciata",
            "confidence": 87,
            "family": "Asparagaceae",
            "care": {"water": "Every 2-3 days", "light": "...", ...}
        }

    Returns:
        (PlantMetadata, None) on success, (None, error_message) otherwise
    """
    if not isinstance(payload, dict):
        return None, "Plant data required"

    common_name = _soft_sanitize(payload.get("commonName"), MAX_NAME_LEN)
    if not common_name:
        return None, "Plant common name is required"

    raw_care = payload.get("care") or {}
    if not isinstance(raw_care, dict):
        return None, "Plant care must be an object"

    care: Dict[str, Optional[str]] = {}
    for key in CARE_FIELDS:
        care[key] = _soft_sanitize(raw_care.get(key), MAX_CARE_LEN) or None

    return PlantMetadata(
        common_name=common_name,
        scientific_name=_soft_sanitize(payload.get("scientificName"), MAX_NAME_LEN) or "Unknown",
        confidence=_normalize_confidence(payload.get("confidence")),
        family=_soft_sanitize(payload.get("family"), MAX_NAME_LEN) or "Unknown Family",
        care=care,
    ), None


def is_valid_uuid(value: str | None) -> bool:
    """
    Check if a string is a valid UUID (RFC 4122 format).

    Example:
        >>> is_valid_uuid("550e8400-e29b-41d4-a716-446655440000")
        True
        >>> is_valid_uuid("invalid")
        False
    """
    if not value or not isinstance(value, str):
        return False
    return bool(_UUID_PATTERN.match(value))
