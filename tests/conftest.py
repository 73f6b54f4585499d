"""
Test fixtures for program-review-api.

Provides sample imports and mock collaborators (Supabase, delivery endpoint)
to enable fast, deterministic, offline testing.
"""

import sys
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import program_review_api...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from program_review_api.main import app
from program_review_api.auth import TrainerContext, get_trainer_context
from program_review_api.api.routes import get_dispatcher, get_repository
from program_review_api.models import Client


# ---------------------------------------------------------------------------
# Auth Mock
# ---------------------------------------------------------------------------


TEST_USER_ID = "trainer-123"


async def mock_get_trainer_context() -> TrainerContext:
    """Mock auth dependency that returns a test trainer."""
    return TrainerContext(user_id=TEST_USER_ID, display_name="Test Trainer")


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_repository() -> MagicMock:
    """ImportRepository stand-in with one active client."""
    repository = MagicMock()
    repository.list_active_clients.return_value = [
        Client(id="client-1", name="Alex Client", user_id="user-1", status="active"),
    ]
    repository.get_import.return_value = None
    repository.save_program.return_value = True
    return repository


@pytest.fixture
def mock_dispatcher() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(mock_repository, mock_dispatcher) -> TestClient:
    """Per-test FastAPI TestClient with auth and storage overridden."""
    app.dependency_overrides[get_trainer_context] = mock_get_trainer_context
    app.dependency_overrides[get_repository] = lambda: mock_repository
    app.dependency_overrides[get_dispatcher] = lambda: mock_dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Sample Data Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def flat_routines() -> list:
    return [
        {
            "name": "Day A",
            "exercises": [
                {"name": "Squat", "sets": [{"reps": 5, "weight": "100kg", "rest": "180"}]},
                {"name": "Bench Press", "sets": [{"reps": 8}, {"reps": 8}]},
            ],
        },
        {
            "routine_name": "Day B",
            "exercises": [
                {"name": "Deadlift", "sets": [{"reps": 3, "rpe": 8}]},
            ],
        },
    ]


@pytest.fixture
def periodized_import() -> Dict[str, Any]:
    """Import that already carries per-week routines and progressions."""
    return {
        "name": "Strength Block",
        "program": {
            "program_title": "Embedded Title",
            "is_periodized": True,
            "duration_weeks": 2,
            "weeks": [
                {
                    "week_number": 1,
                    "routines": [
                        {
                            "name": "Upper",
                            "exercises": [
                                {
                                    "name": "Bench Press",
                                    "weeks": [
                                        {"week_number": 1, "sets": [{"reps": 8}, {"reps": 8}]},
                                        {"week_number": 2, "sets": [{"reps": 6}, {"reps": 6}, {"reps": 6}]},
                                    ],
                                }
                            ],
                        }
                    ],
                },
                {
                    "week_number": 2,
                    "routines": [
                        {"name": "Upper", "exercises": [{"name": "Bench Press", "sets": [{"reps": 6}]}]},
                    ],
                },
            ],
        },
    }


@pytest.fixture
def sheets_import_row(periodized_import) -> Dict[str, Any]:
    """Row as returned by the sheets_imports table."""
    return {
        "id": "import-1",
        "name": periodized_import["name"],
        "program": periodized_import["program"],
        "status": "completed",
        "created_at": "2026-10-01T10:00:00+00:00",
        "updated_at": "2026-10-01T10:00:00+00:00",
        "user_id": TEST_USER_ID,
        "spreadsheet_id": "sheet-abc",
        "sheets_url": "https://docs.google.com/spreadsheets/d/sheet-abc",
    }
