"""Converting normalized programs between periodized and single-week layouts."""

import logging
from typing import List, Optional

from program_review_api.config import settings
from program_review_api.models import Program, Routine, Week
from program_review_api.services.program_normalizer import MAX_DURATION_WEEKS

logger = logging.getLogger(__name__)


class NoRoutinesError(ValueError):
    """Raised when a conversion has no routines to work from."""


def _copy_routines(routines: List[Routine]) -> List[Routine]:
    return [routine.model_copy(deep=True) for routine in routines]


def to_periodized(program: Program, number_of_weeks: int) -> Program:
    """Repeat week 1's routines across ``number_of_weeks`` independent weeks."""
    if not 1 <= number_of_weeks <= MAX_DURATION_WEEKS:
        raise ValueError(f"number_of_weeks must be between 1 and {MAX_DURATION_WEEKS}")

    base_routines = program.weeks[0].routines if program.weeks else []
    if not base_routines:
        raise NoRoutinesError("Cannot convert to periodized - no routines found in the program.")

    weeks = [
        Week(week_number=week_number, routines=_copy_routines(base_routines))
        for week_number in range(1, number_of_weeks + 1)
    ]
    logger.info(
        "Converted %r to periodized: %d weeks from %d base routines",
        program.name, number_of_weeks, len(base_routines),
    )
    return program.model_copy(
        update={"is_periodized": True, "weeks": weeks, "duration_weeks": number_of_weeks, "routines": []},
    )


def to_non_periodized(program: Program, week_to_keep: int = 1) -> Program:
    """Keep only the routines of ``week_to_keep``; every other week is dropped."""
    selected = next((w for w in program.weeks if w.week_number == week_to_keep), None)
    if selected is None or not selected.routines:
        raise NoRoutinesError(
            f"No routines found in week {week_to_keep}. Please select a different week."
        )

    logger.info(
        "Converted %r to non-periodized using week %d (%d weeks dropped)",
        program.name, week_to_keep, len(program.weeks) - 1,
    )
    return program.model_copy(
        update={
            "is_periodized": False,
            "weeks": [Week(week_number=1, routines=_copy_routines(selected.routines))],
            "duration_weeks": 1,
            "routines": [],
        },
    )


def toggle_periodization(
    program: Program,
    number_of_weeks: Optional[int] = None,
    week_to_keep: int = 1,
) -> Program:
    """Flip ``program`` to the other layout.

    ``number_of_weeks`` defaults to the configured program length when
    converting to periodized.
    """
    if program.is_periodized:
        return to_non_periodized(program, week_to_keep)
    return to_periodized(program, number_of_weeks or settings.DEFAULT_DURATION_WEEKS)
