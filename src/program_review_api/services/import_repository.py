"""
Sheets import and client storage.

Reads spreadsheet imports and the trainer's client list from Supabase and
writes edited programs back to their import.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from supabase import create_client

from program_review_api.config import settings
from program_review_api.models import Client, Program, SheetsImport
from program_review_api.services.retry import storage_retry

logger = logging.getLogger(__name__)


class StorageNotConfiguredError(RuntimeError):
    """Raised when Supabase credentials are missing."""


def get_supabase_client():
    """Get Supabase client instance, or None when credentials are missing."""
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        logger.warning("Supabase credentials not configured. Import storage is unavailable.")
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def _is_no_rows_error(error: Exception) -> bool:
    message = str(error).lower()
    return "no rows" in message or "0 rows" in message


class ImportRepository:
    """Access to the ``sheets_imports`` and ``clients`` tables."""

    IMPORTS_TABLE = "sheets_imports"
    CLIENTS_TABLE = "clients"

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase_client()
        if self._client is None:
            raise StorageNotConfiguredError("Import storage is not configured")
        return self._client

    @storage_retry
    def get_import(self, import_id: str, user_id: str) -> Optional[SheetsImport]:
        """
        Fetch one import owned by ``user_id``.

        Returns:
            The import, or None if it doesn't exist or belongs to someone else
        """
        try:
            result = (
                self.client.table(self.IMPORTS_TABLE)
                .select("*")
                .eq("id", import_id)
                .eq("user_id", user_id)
                .single()
                .execute()
            )
        except Exception as e:
            # single() raises when no rows match
            if _is_no_rows_error(e):
                logger.debug("Import not found: %s", import_id)
                return None
            raise
        if not result.data:
            return None
        return SheetsImport.model_validate(result.data)

    @storage_retry
    def list_active_clients(self, trainer_id: str) -> List[Client]:
        """Active clients of ``trainer_id`` that are linked to a user account."""
        result = (
            self.client.table(self.CLIENTS_TABLE)
            .select("id, name, email, user_id, status")
            .eq("trainer_id", trainer_id)
            .eq("status", "active")
            .not_.is_("user_id", "null")
            .order("name")
            .execute()
        )
        return [Client.model_validate(row) for row in result.data or []]

    def save_program(self, import_id: str, user_id: str, program: Program) -> bool:
        """Write an edited program back to its import. Returns True if a row was updated."""
        result = (
            self.client.table(self.IMPORTS_TABLE)
            .update({
                "program": program.model_dump(),
                "name": program.name,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", import_id)
            .eq("user_id", user_id)
            .execute()
        )
        updated = bool(result.data)
        if updated:
            logger.info("Saved program %r to import %s", program.name, import_id)
        else:
            logger.warning("No import %s for user %s to update", import_id, user_id)
        return updated
