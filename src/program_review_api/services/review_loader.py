"""Loading everything the program review screen needs in one pass."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from program_review_api.models import Client, Program, SheetsImport
from program_review_api.services.import_repository import ImportRepository
from program_review_api.services.program_normalizer import (
    discarded_week_count,
    normalize_program,
)

logger = logging.getLogger(__name__)


class ImportNotFoundError(LookupError):
    """Raised when the requested import doesn't exist for this trainer."""


class CancellationToken:
    """Marks a load whose caller has gone away; late results are discarded."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


async def watch_disconnect(
    is_disconnected: Callable[[], Awaitable[bool]],
    token: CancellationToken,
    poll_interval: float = 0.1,
) -> None:
    """Cancel ``token`` once ``is_disconnected`` reports the caller has gone.

    Meant to run as a task beside :func:`load_review`; the owner cancels the
    task when the load finishes.
    """
    while not token.cancelled:
        if await is_disconnected():
            logger.debug("Caller disconnected; cancelling review load")
            token.cancel()
            return
        await asyncio.sleep(poll_interval)


@dataclass
class ReviewContext:
    sheets_import: SheetsImport
    program: Program
    clients: List[Client] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def week_collapse_warning(discarded: int) -> Optional[str]:
    if discarded <= 0:
        return None
    return f"Program is not periodized: only week 1 is kept, {discarded} later week(s) were dropped."


async def load_review(
    repository: ImportRepository,
    import_id: str,
    user_id: str,
    token: Optional[CancellationToken] = None,
) -> Optional[ReviewContext]:
    """
    Fetch an import and the trainer's clients, then normalize the program.

    Both reads run concurrently. If ``token`` is cancelled before they
    complete, nothing is normalized and None is returned.

    Raises:
        ImportNotFoundError: No such import for ``user_id``
        MissingProgramDataError: The import has no program payload
    """
    sheets_import, clients = await asyncio.gather(
        asyncio.to_thread(repository.get_import, import_id, user_id),
        asyncio.to_thread(repository.list_active_clients, user_id),
    )
    if token is not None and token.cancelled:
        logger.debug("Review load for %s cancelled; discarding results", import_id)
        return None
    if sheets_import is None:
        raise ImportNotFoundError(f"Import {import_id} not found")

    raw = sheets_import.as_raw_import()
    program = normalize_program(raw)
    warning = week_collapse_warning(discarded_week_count(raw))
    return ReviewContext(
        sheets_import=sheets_import,
        program=program,
        clients=clients,
        warnings=[warning] if warning else [],
    )
