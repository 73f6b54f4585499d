"""Data models for imported workout programs."""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

UNTITLED_PROGRAM = "Untitled Program"


class ProgramSet(BaseModel):
    """A single prescribed set."""
    set_number: int = Field(..., ge=1)
    # Spreadsheet cells come through as whatever the converter produced
    reps: Optional[Any] = None
    weight: Optional[Any] = None
    rpe: Optional[Any] = None
    rest: Optional[Any] = None  # Usually seconds, e.g. "90" or "90s"
    notes: Optional[Any] = None
    warmup: bool = False

    class Config:
        extra = "allow"  # Spreadsheet columns we don't model are carried through


class ExerciseWeek(BaseModel):
    """Sets for one exercise in one week of a periodized program."""
    week_number: int = Field(..., ge=1)
    sets: List[ProgramSet] = Field(default_factory=list)

    class Config:
        extra = "allow"


class ProgramExercise(BaseModel):
    """
    An exercise inside a routine.

    Periodized imports carry per-week progressions in ``weeks``; flat imports
    carry a single ``sets`` list.
    """
    name: str = "Untitled Exercise"
    weeks: Optional[List[ExerciseWeek]] = None
    sets: Optional[List[ProgramSet]] = None
    notes: Optional[str] = None

    class Config:
        extra = "allow"

    def sets_for_week(self, week_number: int) -> List[ProgramSet]:
        """Sets prescribed for ``week_number``, falling back to the flat list."""
        for week in self.weeks or []:
            if week.week_number == week_number:
                return week.sets
        return self.sets or []


class Routine(BaseModel):
    """A named session of exercises."""
    name: str
    exercises: List[ProgramExercise] = Field(default_factory=list)
    notes: Optional[str] = None

    class Config:
        extra = "allow"


class Week(BaseModel):
    """One week of a program."""
    week_number: int = Field(..., ge=1)
    routines: List[Routine] = Field(default_factory=list)


class Program(BaseModel):
    """
    Canonical program shape.

    All routine data lives under ``weeks``. The legacy top-level ``routines``
    list is kept in the schema for clients that still send it, but it is
    always empty once a program has been normalized.
    """
    name: str = UNTITLED_PROGRAM
    description: Optional[str] = None
    duration_weeks: int = Field(default=4, ge=1)
    is_periodized: bool = False
    weeks: List[Week] = Field(default_factory=list)
    routines: List[Any] = Field(default_factory=list)

    @field_validator("routines")
    @classmethod
    def _routines_must_be_empty(cls, value: List[Any]) -> List[Any]:
        if value:
            raise ValueError("routines must be empty; routine data belongs under weeks")
        return value

    def as_raw_import(self) -> Dict[str, Any]:
        """Project back to the raw import shape so it can be normalized again."""
        return {"name": self.name, "program": self.model_dump()}


class SheetsImport(BaseModel):
    """A spreadsheet import document as stored by the conversion service."""
    id: str
    name: Optional[str] = None
    program: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    user_id: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    sheets_url: Optional[str] = None

    class Config:
        extra = "ignore"

    def as_raw_import(self) -> Dict[str, Any]:
        return {"name": self.name, "program": self.program}


class Client(BaseModel):
    """A trainer's client, as listed on the review screen."""
    id: str
    name: str = ""
    email: Optional[str] = None
    user_id: Optional[str] = None
    status: Optional[str] = None

    class Config:
        extra = "ignore"


class ProgramSummary(BaseModel):
    """Figures shown above the program on the review screen."""
    routine_count: int = 0
    total_exercises: int = 0
    program_weeks: int = 0
    estimated_minutes: List[int] = Field(default_factory=list)


class DispatchReceipt(BaseModel):
    """Confirmation returned by the delivery endpoint."""
    success: bool = True
    client_id: str
    import_id: Optional[str] = None
    message: Optional[str] = None
