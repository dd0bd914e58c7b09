"""
Supabase client initialization.

Provides centralized access to Supabase for:
- Garden entries (`garden_entries` table)
- Profiles (`profiles` table: email, notification preference, counters)

Only the service-role client is created: reminder jobs run outside any user
session and owner checks happen in the garden service.
"""

from __future__ import annotations
from typing import Optional
from supabase import create_client, Client


# Global client instance (initialized once per app)
_supabase_admin: Optional[Client] = None   # Admin client (service role key)


def init_supabase(app) -> None:
    """
    Initialize the Supabase admin client with app config.

    Call this from the Flask app factory, before init_garden().
    """
    global _supabase_admin

    url = app.config.get("SUPABASE_URL", "")
    service_key = app.config.get("SUPABASE_SERVICE_ROLE_KEY", "")

    if not url or not service_key:
        if app.config.get("GARDEN_BACKEND", "supabase") == "supabase":
            app.logger.warning(
                "SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not configured. Garden features will be disabled."
            )
        _supabase_admin = None
        return

    try:
        _supabase_admin = create_client(url, service_key)
        app.logger.info("Supabase admin client initialized successfully")
    except Exception as e:
        app.logger.error(f"Failed to initialize Supabase client: {e}")
        _supabase_admin = None


def get_admin_client() -> Optional[Client]:
    """Get the admin Supabase client instance (admin client with service role key)."""
    return _supabase_admin


def is_configured() -> bool:
    """Check if the admin client needed by the garden store is available."""
    return _supabase_admin is not None
