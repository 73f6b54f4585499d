"""Normalization of imported spreadsheet programs.

The spreadsheet conversion service produces programs in two shapes: a flat
top-level ``routines`` list, or a ``weeks[].routines[]`` list. This module
turns either into the canonical :class:`Program`, where every routine lives
under ``weeks`` and every set has a sequential ``set_number``.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from program_review_api.models import Program, UNTITLED_PROGRAM

logger = logging.getLogger(__name__)

DEFAULT_DURATION_WEEKS = 4
# Longest program the replication step will lay out; longer values count as invalid
MAX_DURATION_WEEKS = 52

# camelCase spellings some converters emit
_KEY_ALIASES = {
    "durationWeeks": "duration_weeks",
    "isPeriodized": "is_periodized",
    "weekNumber": "week_number",
    "setNumber": "set_number",
    "routineName": "routine_name",
    "programTitle": "program_title",
}


class ProgramImportError(ValueError):
    """Raised when an import is missing data required to build a program."""


class MissingImportError(ProgramImportError):
    def __init__(self, message: str = "No import data provided"):
        super().__init__(message)


class MissingProgramDataError(ProgramImportError):
    def __init__(self, message: str = "No program data found in import"):
        super().__init__(message)


def _canonical_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename camelCase keys in place, keeping an existing snake_case value."""
    for alias, key in _KEY_ALIASES.items():
        if alias in data:
            value = data.pop(alias)
            data.setdefault(key, value)
    return data


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _dict_items(value: Any) -> List[Dict[str, Any]]:
    """Shallow copies of the dict entries of ``value`` if it is a list, else an empty list."""
    if not isinstance(value, list):
        return []
    return [_canonical_keys(dict(item)) for item in value if isinstance(item, dict)]


def _resolve_duration(program: Dict[str, Any]) -> int:
    duration = program.get("duration_weeks")
    if _is_positive_int(duration) and duration <= MAX_DURATION_WEEKS:
        return duration
    return DEFAULT_DURATION_WEEKS


def _resolve_name(raw: Dict[str, Any], program: Dict[str, Any], name_override: Optional[str]) -> str:
    candidates = (
        name_override,
        raw.get("name"),
        program.get("program_title"),
        program.get("title"),
        program.get("name"),
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return UNTITLED_PROGRAM


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1", "x")
    return bool(value)


def _name_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = value.strip() if isinstance(value, str) else str(value)
    return text or None


def _coerce_text(item: Dict[str, Any], key: str) -> None:
    """Stringify a non-text cell, e.g. a numeric note, so it validates as text."""
    value = item.get(key)
    if value is not None and not isinstance(value, str):
        item[key] = str(value)


def _coerce_warmup(item: Dict[str, Any]) -> None:
    warmup = item.get("warmup")
    if warmup is not None and not isinstance(warmup, bool):
        item["warmup"] = _truthy(warmup)
    elif warmup is None:
        item.pop("warmup", None)


def number_sets(sets: Any) -> List[Dict[str, Any]]:
    """Assign ``index + 1`` to every set whose ``set_number`` is not a positive int.

    Valid numbers are kept as they are, duplicates included. Returns new set
    dicts; ``sets`` itself is left untouched.
    """
    numbered = _dict_items(sets)
    for index, item in enumerate(numbered):
        if not _is_positive_int(item.get("set_number")):
            item["set_number"] = index + 1
        _coerce_warmup(item)
    return numbered


def _normalize_exercise(exercise: Dict[str, Any]) -> Dict[str, Any]:
    name = _name_text(exercise.get("name"))
    if name:
        exercise["name"] = name
    else:
        exercise.pop("name", None)
    _coerce_text(exercise, "notes")
    if "weeks" in exercise and exercise["weeks"] is not None:
        weeks = _dict_items(exercise["weeks"])
        for index, week in enumerate(weeks):
            if not _is_positive_int(week.get("week_number")):
                week["week_number"] = index + 1
            week["sets"] = number_sets(week.get("sets"))
        exercise["weeks"] = weeks
    if "sets" in exercise and exercise["sets"] is not None:
        exercise["sets"] = number_sets(exercise["sets"])
    return exercise


def _normalize_routines(routines: Any) -> List[Dict[str, Any]]:
    normalized = []
    for index, routine in enumerate(_dict_items(routines)):
        routine["name"] = (
            _name_text(routine.get("name"))
            or _name_text(routine.get("routine_name"))
            or f"Routine {index + 1}"
        )
        _coerce_text(routine, "notes")
        routine["exercises"] = [
            _normalize_exercise(exercise) for exercise in _dict_items(routine.get("exercises"))
        ]
        normalized.append(routine)
    return normalized


def _build_weeks(program: Dict[str, Any], duration_weeks: int) -> List[Dict[str, Any]]:
    """Lay out weeks for a periodized program."""
    weeks = _dict_items(program.get("weeks"))
    if weeks:
        logger.debug("Using %d imported weeks as-is", len(weeks))
        for index, week in enumerate(weeks):
            if not _is_positive_int(week.get("week_number")):
                week["week_number"] = index + 1
            week["routines"] = _dict_items(week.get("routines"))
        return weeks

    routines = _dict_items(program.get("routines"))
    if routines:
        logger.debug("Replicating %d routines across %d weeks", len(routines), duration_weeks)
    # Each week gets its own copy so edits to one week never leak into another
    return [
        {"week_number": week_number, "routines": copy.deepcopy(routines)}
        for week_number in range(1, duration_weeks + 1)
    ]


def _build_single_week(program: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Collapse a non-periodized program to one week."""
    weeks = _dict_items(program.get("weeks"))
    if weeks:
        if len(weeks) > 1:
            logger.info("Non-periodized import: keeping week 1 of %d", len(weeks))
        routines = _dict_items(weeks[0].get("routines"))
    else:
        routines = _dict_items(program.get("routines"))
    return [{"week_number": 1, "routines": routines}]


def discarded_week_count(raw: Optional[Dict[str, Any]]) -> int:
    """Number of imported weeks a non-periodized normalization would drop."""
    if not isinstance(raw, dict) or not isinstance(raw.get("program"), dict):
        return 0
    program = _canonical_keys(dict(raw["program"]))
    if _truthy(program.get("is_periodized")):
        return 0
    weeks = program.get("weeks")
    if not isinstance(weeks, list):
        return 0
    return max(len([w for w in weeks if isinstance(w, dict)]) - 1, 0)


def normalize_program(raw: Optional[Dict[str, Any]], name_override: Optional[str] = None) -> Program:
    """Build the canonical :class:`Program` from a raw import.

    Args:
        raw: Import document, ``{"name": ..., "program": {...}}``
        name_override: Label supplied by the user; wins over any embedded name

    Returns:
        Program whose routines all live under ``weeks``

    Raises:
        MissingImportError: ``raw`` is None
        MissingProgramDataError: ``raw["program"]`` is absent or not an object
    """
    if raw is None:
        raise MissingImportError()
    if not isinstance(raw, dict) or not isinstance(raw.get("program"), dict):
        raise MissingProgramDataError()

    program = _canonical_keys(copy.deepcopy(raw["program"]))

    duration_weeks = _resolve_duration(program)
    name = _resolve_name(raw, program, name_override)
    is_periodized = _truthy(program.get("is_periodized"))

    if is_periodized:
        weeks = _build_weeks(program, duration_weeks)
        duration_weeks = len(weeks)
    else:
        weeks = _build_single_week(program)
        duration_weeks = 1

    for week in weeks:
        week["routines"] = _normalize_routines(week["routines"])

    description = program.get("description")
    normalized = Program(
        name=name,
        description=description if isinstance(description, str) else None,
        duration_weeks=duration_weeks,
        is_periodized=is_periodized,
        weeks=weeks,
        routines=[],
    )
    logger.debug(
        "Normalized program %r: periodized=%s weeks=%d",
        normalized.name, normalized.is_periodized, len(normalized.weeks),
    )
    return normalized
