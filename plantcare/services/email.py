"""
Email service using Resend for transactional emails.

Provides:
- Watering reminder emails (sent by the reminder engines)
- "Added to your garden" confirmation emails
- ResendNotifier: the notifier the reminder engines and garden service call
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import html
import logging
import os
import requests

from plantcare.utils.sanitize import mask_email

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_SENDER = "PlantCare AI <reminders@updates.plantcare.app>"
DEFAULT_TIMEOUT_SECONDS = 10


def _send_via_resend(
    email: str,
    subject: str,
    html_content: str,
    text_content: str,
    api_key: Optional[str] = None,
    sender: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Dict[str, Any]:
    """
    Post one email to the Resend API.

    Returns:
        Dict with 'success' bool and 'message' or 'error'
    """
    api_key = api_key or os.getenv("RESEND_API_KEY")
    if not api_key:
        logger.error("RESEND_API_KEY not configured")
        return {
            "success": False,
            "error": "email_not_configured",
            "message": "Email service not configured"
        }

    try:
        response = requests.post(
            RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json"
            },
            json={
                "from": sender or DEFAULT_SENDER,
                "to": [email],
                "subject": subject,
                "html": html_content,
                "text": text_content,
            },
            timeout=timeout
        )

        if response.status_code == 200:
            logger.info(f"Email '{subject}' sent to {mask_email(email)}")
            return {"success": True, "message": f"Email sent to {mask_email(email)}"}

        error_data = response.json() if response.text else {}
        error_message = error_data.get("message", "Unknown error")
        logger.error(f"Resend API error: {response.status_code} - {error_message}")

        if response.status_code == 429:
            return {
                "success": False,
                "error": "rate_limit",
                "message": "Too many emails sent. Please wait a few minutes and try again."
            }

        return {
            "success": False,
            "error": "email_send_failed",
            "message": f"Resend rejected the email ({response.status_code})"
        }

    except requests.exceptions.Timeout:
        logger.error("Resend API timeout")
        return {"success": False, "error": "timeout", "message": "Email service timed out"}
    except requests.exceptions.ConnectionError:
        logger.error("Resend API connection error (service may be down)")
        return {"success": False, "error": "service_unavailable", "message": "Email service unreachable"}
    except Exception as e:
        logger.error(f"Error sending email via Resend: {e}")
        return {"success": False, "error": "unknown", "message": "Unexpected email error"}


def send_watering_reminder_email(
    email: str,
    name: str,
    plant_name: str,
    care_water: Optional[str] = None,
    **resend_options: Any,
) -> Dict[str, Any]:
    """
    Send a "time to water" reminder.

    Args:
        email: Recipient email address
        name: Recipient display name (may be empty)
        plant_name: Common name of the plant that is due
        care_water: The plant's watering instruction, echoed in the body
        **resend_options: api_key / sender / timeout overrides

    Returns:
        Dict with 'success' bool and 'message' or 'error'
    """
    greeting = f"Hi {name}," if name else "Hi,"
    schedule_line = f"Watering guide: {care_water}" if care_water else ""

    text_content = "\n".join([
        greeting,
        "",
        f"Your {plant_name} needs watering. Give it some water today!",
        schedule_line,
        "",
        "We'll remind you again next time.",
        "PlantCare AI",
    ])

    html_content = (
        f"<p>{html.escape(greeting)}</p>"
        f"<p>Your <strong>{html.escape(plant_name)}</strong> needs watering. Give it some water today!</p>"
        + (f"<p>{html.escape(schedule_line)}</p>" if schedule_line else "")
        + "<p><em>We'll remind you again next time.</em></p>"
    )

    return _send_via_resend(
        email,
        f"Time to Water: {plant_name}",
        html_content,
        text_content,
        **resend_options,
    )


def send_garden_added_email(
    email: str,
    name: str,
    plant_name: str,
    next_watering: str,
    **resend_options: Any,
) -> Dict[str, Any]:
    """Confirm that a plant was added to the garden and say when it is next due."""
    greeting = f"Hi {name}," if name else "Hi,"
    text_content = (
        f"{greeting}\n\n"
        f"{plant_name} has been added to your garden.\n"
        f"First watering reminder: {next_watering}\n\n"
        "PlantCare AI"
    )
    html_content = (
        f"<p>{html.escape(greeting)}</p>"
        f"<p><strong>{html.escape(plant_name)}</strong> has been added to your garden.</p>"
        f"<p>First watering reminder: {html.escape(next_watering)}</p>"
    )
    return _send_via_resend(
        email,
        f"Added to Your Garden: {plant_name}",
        html_content,
        text_content,
        **resend_options,
    )


# ============================================================================
# Notifier interface used by the reminder engines
# ============================================================================

@dataclass(frozen=True)
class NotificationResult:
    success: bool
    reason: Optional[str] = None  # only for logging


class Notifier:
    def send(self, target, entry) -> NotificationResult:
        raise NotImplementedError

    def send_garden_added(self, target, entry) -> NotificationResult:
        raise NotImplementedError


class ResendNotifier(Notifier):
    """Delivers reminders by email through Resend."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "ResendNotifier":
        return cls(
            api_key=config.get("RESEND_API_KEY") or None,
            sender=config.get("REMINDER_EMAIL_FROM") or None,
            timeout=config.get("EMAIL_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        )

    def _options(self) -> Dict[str, Any]:
        return {"api_key": self.api_key, "sender": self.sender, "timeout": self.timeout}

    @staticmethod
    def _result(response: Dict[str, Any]) -> NotificationResult:
        if response.get("success"):
            return NotificationResult(True)
        return NotificationResult(False, response.get("error") or response.get("message"))

    def send(self, target, entry) -> NotificationResult:
        return self._result(send_watering_reminder_email(
            target.address,
            target.name,
            entry.plant.common_name,
            entry.plant.water,
            **self._options(),
        ))

    def send_garden_added(self, target, entry) -> NotificationResult:
        return self._result(send_garden_added_email(
            target.address,
            target.name,
            entry.plant.common_name,
            entry.next_watering.strftime("%Y-%m-%d %H:%M UTC"),
            **self._options(),
        ))
