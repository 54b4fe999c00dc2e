"""
Settings and the Supabase client.
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    get_admin_client,
    check_connection,
    ConnectionError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "get_supabase_client",
    "get_admin_client",
    "check_connection",
    "ConnectionError",
]
