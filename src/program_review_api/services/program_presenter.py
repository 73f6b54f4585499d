"""Read-only figures derived from a normalized program for the review screen."""

import logging
import re
from typing import Any, Dict, List, Optional

from program_review_api.models import Program, ProgramSummary, Routine
from program_review_api.services.program_normalizer import (
    ProgramImportError,
    normalize_program,
)

logger = logging.getLogger(__name__)

_REST_SECONDS_RE = re.compile(r"(\d+)")

MINUTES_PER_SET = 2
WARMUP_COOLDOWN_MINUTES = 5
MIN_ROUTINE_MINUTES = 15


class ProgramPresenter:
    """Summary accessors over a canonical :class:`Program`.

    ``program_data`` is the raw import some callers still pass along. When
    given, it is normalized once here and used instead of ``program``; every
    accessor reads only the canonical ``weeks`` shape.
    """

    def __init__(self, program: Optional[Program], program_data: Optional[Dict[str, Any]] = None):
        self.program = program
        if program_data is not None:
            raw = program_data if "program" in program_data else {"program": program_data}
            try:
                self.program = normalize_program(raw)
            except ProgramImportError as e:
                logger.warning(f"Ignoring unusable program data: {e}")

    def _first_week_routines(self) -> List[Routine]:
        if self.program is None or not self.program.weeks:
            return []
        return self.program.weeks[0].routines

    def routine_count(self) -> int:
        return len(self._first_week_routines())

    def total_exercises(self) -> int:
        return sum(len(routine.exercises) for routine in self._first_week_routines())

    def program_weeks(self) -> int:
        if self.program is None:
            return 0
        return self.program.duration_weeks or 0

    def week_routines(self, week_number: int) -> List[Routine]:
        """Routines scheduled in ``week_number``, or an empty list."""
        if self.program is None:
            return []
        for week in self.program.weeks:
            if week.week_number == week_number:
                return week.routines
        return []

    @staticmethod
    def estimate_routine_duration(routine: Routine, week_number: int = 1) -> int:
        """
        Estimate how long a routine takes, in minutes.

        Two minutes per set plus the prescribed rest (seconds), plus warm-up and
        cool-down, never less than fifteen minutes.
        """
        total_minutes = 0.0
        for exercise in routine.exercises:
            sets = exercise.sets_for_week(week_number)
            total_minutes += len(sets) * MINUTES_PER_SET
            for program_set in sets:
                if program_set.rest is None:
                    continue
                match = _REST_SECONDS_RE.search(str(program_set.rest))
                if match:
                    total_minutes += int(match.group(1)) / 60
        total_minutes += WARMUP_COOLDOWN_MINUTES
        return max(round(total_minutes), MIN_ROUTINE_MINUTES)

    def summary(self) -> ProgramSummary:
        return ProgramSummary(
            routine_count=self.routine_count(),
            total_exercises=self.total_exercises(),
            program_weeks=self.program_weeks(),
            estimated_minutes=[
                self.estimate_routine_duration(routine) for routine in self._first_week_routines()
            ],
        )
