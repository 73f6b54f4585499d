"""Tests for ImportRepository against a mocked Supabase client."""

from unittest.mock import MagicMock, patch

import pytest

from program_review_api.services.import_repository import (
    ImportRepository,
    StorageNotConfiguredError,
)
from program_review_api.services.program_normalizer import normalize_program


def _query(supabase: MagicMock) -> MagicMock:
    """The builder every chained call returns, so .execute() can be stubbed once."""
    builder = MagicMock()
    for method in ("select", "eq", "single", "order", "update", "is_"):
        getattr(builder, method).return_value = builder
    builder.not_ = builder
    supabase.table.return_value = builder
    return builder


class TestGetImport:

    def test_returns_import(self, sheets_import_row):
        supabase = MagicMock()
        _query(supabase).execute.return_value = MagicMock(data=sheets_import_row)

        sheets_import = ImportRepository(supabase).get_import("import-1", "trainer-123")

        assert sheets_import.id == "import-1"
        assert sheets_import.spreadsheet_id == "sheet-abc"
        assert sheets_import.program["is_periodized"] is True
        supabase.table.assert_called_with("sheets_imports")

    def test_no_rows_returns_none(self):
        supabase = MagicMock()
        _query(supabase).execute.side_effect = Exception("JSON object requested, multiple (or no) rows returned: 0 rows")
        assert ImportRepository(supabase).get_import("missing", "trainer-123") is None

    def test_other_errors_propagate(self):
        supabase = MagicMock()
        _query(supabase).execute.side_effect = Exception("permission denied for table sheets_imports")
        with pytest.raises(Exception, match="permission denied"):
            ImportRepository(supabase).get_import("import-1", "trainer-123")


class TestClients:

    def test_lists_active_linked_clients(self):
        supabase = MagicMock()
        builder = _query(supabase)
        builder.execute.return_value = MagicMock(data=[
            {"id": "c1", "name": "Alex", "user_id": "u1", "status": "active"},
            {"id": "c2", "name": "Sam", "user_id": "u2", "status": "active", "extra": "ignored"},
        ])

        clients = ImportRepository(supabase).list_active_clients("trainer-123")

        assert [c.id for c in clients] == ["c1", "c2"]
        builder.eq.assert_any_call("trainer_id", "trainer-123")
        builder.eq.assert_any_call("status", "active")
        builder.is_.assert_called_with("user_id", "null")

    def test_empty_result(self):
        supabase = MagicMock()
        _query(supabase).execute.return_value = MagicMock(data=None)
        assert ImportRepository(supabase).list_active_clients("trainer-123") == []


class TestSaveProgram:

    def test_writes_normalized_program(self, flat_routines):
        supabase = MagicMock()
        builder = _query(supabase)
        builder.execute.return_value = MagicMock(data=[{"id": "import-1"}])
        program = normalize_program({"name": "Edited", "program": {"routines": flat_routines}})

        assert ImportRepository(supabase).save_program("import-1", "trainer-123", program) is True

        update = builder.update.call_args.args[0]
        assert update["name"] == "Edited"
        assert update["program"]["weeks"][0]["routines"][0]["name"] == "Day A"
        assert "updated_at" in update

    def test_nothing_updated(self, flat_routines):
        supabase = MagicMock()
        _query(supabase).execute.return_value = MagicMock(data=[])
        program = normalize_program({"program": {"routines": flat_routines}})
        assert ImportRepository(supabase).save_program("import-1", "trainer-123", program) is False


class TestConfiguration:

    def test_missing_credentials_raise(self):
        with patch(
            "program_review_api.services.import_repository.get_supabase_client",
            return_value=None,
        ):
            with pytest.raises(StorageNotConfiguredError):
                ImportRepository().list_active_clients("trainer-123")
