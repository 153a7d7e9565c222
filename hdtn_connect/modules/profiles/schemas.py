from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def parse_skills(raw: str) -> List[str]:
    """Split comma-separated skills input: trimmed, order kept, empty segments dropped."""
    return [skill.strip() for skill in raw.split(",") if skill.strip()]


def parse_location(value: Any) -> Optional[Tuple[float, float]]:
    """Accept [lat, lng], (lat, lng) or Postgres point text "(lat,lng)"."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        parts = value.strip().strip("()").split(",")
        if len(parts) != 2:
            raise ValueError(f"Invalid point value: {value!r}")
        return float(parts[0]), float(parts[1])
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("Location must be a (latitude, longitude) pair")
    return float(value[0]), float(value[1])


def format_location(location: Optional[Tuple[float, float]]) -> Optional[str]:
    if location is None:
        return None
    return f"({location[0]},{location[1]})"


class EducationEntry(BaseModel):
    """One education item; stored in the jsonb column with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    institution: str = ""
    degree: str = ""
    field_of_study: str = Field(default="", alias="fieldOfStudy")
    start_year: str = Field(default="", alias="startYear")
    end_year: str = Field(default="", alias="endYear")


class EducationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    institution: str
    degree: str
    field_of_study: str = Field(default="", alias="fieldOfStudy")
    start_year: str = Field(default="", alias="startYear")
    end_year: str = Field(default="", alias="endYear")

    @field_validator("institution", "degree")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def new_entry(self, existing: List[EducationEntry]) -> EducationEntry:
        """Build an entry whose id is unique within the given list."""
        taken = {entry.id for entry in existing}
        entry_id = uuid4().hex
        while entry_id in taken:
            entry_id = uuid4().hex
        return EducationEntry(id=entry_id, **self.model_dump())


class Profile(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    location: Optional[Tuple[float, float]] = None
    education: List[EducationEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    # True only for placeholder profiles built when the profiles table is unavailable
    is_fallback: bool = False

    @field_validator("skills", "education", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("location", mode="before")
    @classmethod
    def _parse_location(cls, value: Any) -> Optional[Tuple[float, float]]:
        return parse_location(value)

    @computed_field
    @property
    def has_location(self) -> bool:
        return self.location is not None and self.location != (0.0, 0.0)

    def to_row(self) -> Dict[str, Any]:
        """Row payload for the profiles table."""
        row = self.model_dump(mode="json", by_alias=True, exclude={"is_fallback", "has_location"})
        row["location"] = format_location(self.location)
        return row


class ProfileUpdate(BaseModel):
    """Partial profile update; only explicitly supplied fields are written."""

    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    location: Optional[Tuple[float, float]] = None
    education: Optional[List[EducationEntry]] = None

    @field_validator("skills", mode="before")
    @classmethod
    def _split_skills(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_skills(value)
        return value

    @field_validator("location", mode="before")
    @classmethod
    def _parse_location(cls, value: Any) -> Optional[Tuple[float, float]]:
        return parse_location(value)

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        if "location" in row:
            row["location"] = format_location(self.location)
        return row


class TableState(str, Enum):
    EXISTS = "exists"
    MISSING = "missing"
    ERROR = "error"


class TableStatus(BaseModel):
    state: TableState
    code: Optional[str] = None
    message: Optional[str] = None
