"""
Privacy-safe formatting for log lines.

Reminder and email logs name recipients; these helpers keep full addresses
out of the logs while leaving enough to correlate entries.
"""

from __future__ import annotations
from typing import Optional


def mask_email(email: Optional[str]) -> str:
    """Mask an address for logging (e.g., 'j***@example.com')."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.rsplit("@", 1)
    return f"{local[0]}***@{domain}" if local else f"***@{domain}"


def describe_recipient(user_id: str, email: Optional[str]) -> str:
    """Compact 'user <id> (<masked email>)' label for reminder logs."""
    return f"user {user_id} ({mask_email(email)})"
