"""
Supabase client management.

The import committers and the parent lookup share one cached client.
Imports run with the anon key by default; CLI imports can switch to the
service role key to bypass row-level security.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class ConnectionError(Exception):
    """Supabase client could not be created."""
    pass


def _create(key: str, role: str) -> Client:
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "...",  # Log partial URL only
            role=role
        )
        client = create_client(settings.supabase_url, key)
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            role=role,
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected", role=role)
    return client


@lru_cache()
def get_supabase_client() -> Client:
    """
    Cached client using the anon key.

    Call get_supabase_client.cache_clear() to reconnect.

    Raises:
        ConnectionError: If the client cannot be created
    """
    return _create(settings.supabase_key, "anon")


@lru_cache()
def get_admin_client() -> Optional[Client]:
    """
    Cached client using the service role key.

    Returns None when SUPABASE_SERVICE_KEY is not configured.
    """
    if not settings.supabase_service_key:
        logger.warning("admin_client_not_configured")
        return None
    return _create(settings.supabase_service_key, "service")


def check_connection() -> dict:
    """
    Report whether the import target tables are reachable.

    Returns:
        {"status": "healthy", "inventory_count": .., "leads_count": ..}
        or {"status": "unhealthy", "error": ..}
    """
    try:
        client = get_supabase_client()

        inventory = client.table("inventory").select("id", count="exact").limit(1).execute()
        leads = client.table("leads").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "inventory_count": inventory.count,
            "leads_count": leads.count
        }

    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e)
        }
