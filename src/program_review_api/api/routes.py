"""API routes for reviewing and sending imported programs."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from pydantic import BaseModel, Field

from program_review_api.auth import TrainerContext, get_trainer_context
from program_review_api.models import (
    Client,
    DispatchReceipt,
    Program,
    ProgramSummary,
)
from program_review_api.services.dispatcher import (
    DispatchTransportError,
    NoClientSelectedError,
    ProgramDispatcher,
)
from program_review_api.services.import_repository import (
    ImportRepository,
    StorageNotConfiguredError,
)
from program_review_api.services.periodization import NoRoutinesError, toggle_periodization
from program_review_api.services.program_normalizer import (
    MAX_DURATION_WEEKS,
    ProgramImportError,
    discarded_week_count,
    normalize_program,
)
from program_review_api.services.program_presenter import ProgramPresenter
from program_review_api.services.review_loader import (
    CancellationToken,
    ImportNotFoundError,
    load_review,
    watch_disconnect,
    week_collapse_warning,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_repository() -> ImportRepository:
    return ImportRepository()


def get_dispatcher() -> ProgramDispatcher:
    return ProgramDispatcher()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class NormalizeRequest(BaseModel):
    name: Optional[str] = None
    program: Optional[Dict[str, Any]] = None
    name_override: Optional[str] = None


class ProgramResponse(BaseModel):
    program: Program
    summary: ProgramSummary
    warnings: List[str] = Field(default_factory=list)


class TogglePeriodizationRequest(BaseModel):
    program: Program
    number_of_weeks: Optional[int] = Field(default=None, ge=1, le=MAX_DURATION_WEEKS)
    week_to_keep: int = Field(default=1, ge=1)


class TogglePeriodizationResponse(BaseModel):
    success: bool = True
    message: str = "Periodization toggled successfully"
    program: Program


class SendToClientRequest(BaseModel):
    client_id: Optional[str] = None
    program: Program
    custom_message: Optional[str] = None
    import_id: Optional[str] = None


class ReviewResponse(ProgramResponse):
    import_id: str
    clients: List[Client] = Field(default_factory=list)


class SaveProgramRequest(BaseModel):
    program: Dict[str, Any]
    name: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Non-standard status (nginx convention) for a request the client abandoned
CLIENT_CLOSED_REQUEST = 499


def _storage_unavailable(exc: StorageNotConfiguredError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(exc))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/programs/normalize", response_model=ProgramResponse)
def normalize(
    payload: NormalizeRequest,
    trainer: TrainerContext = Depends(get_trainer_context),
):
    """
    Normalize a raw spreadsheet import into the canonical weeks layout.

    Returns the program, its summary figures, and a warning when weeks were
    dropped because the program isn't periodized.
    """
    raw = {"name": payload.name, "program": payload.program}
    try:
        program = normalize_program(raw, name_override=payload.name_override)
    except ProgramImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    warning = week_collapse_warning(discarded_week_count(raw))
    return ProgramResponse(
        program=program,
        summary=ProgramPresenter(program).summary(),
        warnings=[warning] if warning else [],
    )


@router.post("/programs/toggle-periodization", response_model=TogglePeriodizationResponse)
def toggle(
    payload: TogglePeriodizationRequest,
    trainer: TrainerContext = Depends(get_trainer_context),
):
    """Switch a normalized program between periodized and single-week layouts."""
    try:
        program = toggle_periodization(
            payload.program,
            number_of_weeks=payload.number_of_weeks,
            week_to_keep=payload.week_to_keep,
        )
    except NoRoutinesError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TogglePeriodizationResponse(program=program)


@router.post("/programs/send-to-client", response_model=DispatchReceipt)
async def send_to_client(
    payload: SendToClientRequest,
    trainer: TrainerContext = Depends(get_trainer_context),
    repository: ImportRepository = Depends(get_repository),
    dispatcher: ProgramDispatcher = Depends(get_dispatcher),
    authorization: Optional[str] = Header(None),
):
    """
    Send a program to one of the trainer's active clients.

    Only one delivery attempt is made; on failure the trainer sends again.
    """
    known_clients = None
    try:
        if payload.client_id and payload.client_id.strip():
            known_clients = await asyncio.to_thread(repository.list_active_clients, trainer.user_id)
        return await dispatcher.send(
            payload.client_id,
            payload.program,
            custom_message=payload.custom_message,
            import_id=payload.import_id,
            known_clients=known_clients,
            headers={"Authorization": authorization} if authorization else None,
        )
    except NoClientSelectedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DispatchTransportError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StorageNotConfiguredError as e:
        raise _storage_unavailable(e)


@router.get("/sheets-imports/{import_id}/review", response_model=ReviewResponse)
async def review_import(
    import_id: str,
    request: Request,
    trainer: TrainerContext = Depends(get_trainer_context),
    repository: ImportRepository = Depends(get_repository),
):
    """
    Load an import with the trainer's clients, normalized for review.

    If the caller disconnects while the reads are in flight, the results are
    discarded and nothing is normalized.
    """
    token = CancellationToken()
    watcher = asyncio.create_task(watch_disconnect(request.is_disconnected, token))
    try:
        context = await load_review(repository, import_id, trainer.user_id, token)
    except ImportNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProgramImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageNotConfiguredError as e:
        raise _storage_unavailable(e)
    finally:
        watcher.cancel()

    if context is None:
        logger.info(f"Review of import {import_id} abandoned by caller")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    return ReviewResponse(
        import_id=import_id,
        program=context.program,
        summary=ProgramPresenter(context.program).summary(),
        warnings=context.warnings,
        clients=context.clients,
    )


@router.patch("/sheets-imports/{import_id}", response_model=Program)
async def save_import_program(
    import_id: str,
    payload: SaveProgramRequest,
    trainer: TrainerContext = Depends(get_trainer_context),
    repository: ImportRepository = Depends(get_repository),
):
    """Normalize an edited program and save it back to its import."""
    try:
        program = normalize_program({"name": payload.name, "program": payload.program})
        saved = await asyncio.to_thread(repository.save_program, import_id, trainer.user_id, program)
    except ProgramImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageNotConfiguredError as e:
        raise _storage_unavailable(e)

    if not saved:
        raise HTTPException(status_code=404, detail=f"Import {import_id} not found")
    return program
