"""Pydantic models for person records, requests and status payloads.

These models define the contract between the sync core and its callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PersonKind(str, Enum):
    """Roster kinds held by the registry."""

    ATHLETES = "athletes"
    COACHES = "coaches"
    JUDGES = "judges"


class Gender(str, Enum):
    """Binary gender as recorded by the registry."""

    MALE = "MALE"
    FEMALE = "FEMALE"


class Category(str, Enum):
    """Competition age category."""

    YOUTH = "YOUTH"
    JUNIOR = "JUNIOR"
    SENIOR = "SENIOR"


class ChoreographyType(str, Enum):
    """Competition format, determined by group size."""

    MIND = "MIND"  # Men's individual
    WIND = "WIND"  # Women's individual
    MXP = "MXP"  # Mixed pair
    TRIO = "TRIO"
    GRP = "GRP"  # Group of five
    DNCE = "DNCE"  # Dance, eight


# ---------------------------------------------------------------------------
# Person records
# ---------------------------------------------------------------------------

class PersonRecord(BaseModel):
    """Fields shared by every roster entry.

    ``id`` is the registry-assigned external identifier. Local override
    records also carry their own ``local_id``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: PersonKind
    first_name: str
    last_name: str
    full_name: str
    gender: Gender
    country: str
    discipline: str = "AER"
    image_url: Optional[str] = None
    club: Optional[str] = None
    is_local: bool = False
    local_id: Optional[str] = None


class AthleteRecord(PersonRecord):
    """A licensed gymnast."""

    kind: PersonKind = PersonKind.ATHLETES
    date_of_birth: Optional[date] = None
    license_valid: bool = False
    license_expiry_date: Optional[date] = None
    age: Optional[int] = None  # competition-year age
    display_age: Optional[int] = None
    category: Optional[Category] = None


class CoachRecord(PersonRecord):
    """A certified coach."""

    kind: PersonKind = PersonKind.COACHES
    level: str = ""
    level_description: str = ""


class JudgeRecord(PersonRecord):
    """A brevet judge."""

    kind: PersonKind = PersonKind.JUDGES
    date_of_birth: Optional[date] = None
    category_code: str = ""
    category_description: str = ""


AnyPerson = Union[AthleteRecord, CoachRecord, JudgeRecord]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class LocalPersonCreate(BaseModel):
    """Payload for creating a local override person."""

    external_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    gender: Gender
    country: str = Field(min_length=3, max_length=3)
    discipline: str = "AER"
    club: Optional[str] = None
    date_of_birth: Optional[date] = None
    level: Optional[str] = None
    level_description: Optional[str] = None
    category: Optional[str] = None
    category_description: Optional[str] = None

    @field_validator("external_id")
    @classmethod
    def _strip_external_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("external_id must not be blank")
        return value

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: str) -> str:
        return value.strip().upper()


# NOT NULL columns of the local people table that a partial update may touch.
REQUIRED_LOCAL_FIELDS = ("first_name", "last_name", "gender", "country")


class LocalPersonUpdate(BaseModel):
    """Partial update for a local override person.

    Omitted fields are left alone. The name, gender and country columns are
    required, so an explicit null for them is rejected.
    """

    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[Gender] = None
    country: Optional[str] = Field(default=None, min_length=3, max_length=3)
    club: Optional[str] = None
    date_of_birth: Optional[date] = None
    level: Optional[str] = None
    level_description: Optional[str] = None
    category: Optional[str] = None
    category_description: Optional[str] = None

    @field_validator("first_name", "last_name", "country", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value is not None else None

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> "LocalPersonUpdate":
        for name in REQUIRED_LOCAL_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class RegistrationRequest(BaseModel):
    """A proposed choreography registration."""

    country: str
    category: Category
    choreography_type: ChoreographyType
    member_ids: list[str] = Field(default_factory=list)
    tournament_id: Optional[str] = None
    name: Optional[str] = None


class ValidateRegistrationBody(BaseModel):
    """HTTP body for registration validation."""

    tournament_type: str
    request: RegistrationRequest
    existing_count: int = Field(ge=0)


class ValidationOutcome(BaseModel):
    """Result of a passed validation."""

    valid: bool = True
    tournament_type: str
    max_per_country_per_category: int
    existing_count: int
    remaining: int


# ---------------------------------------------------------------------------
# Cache / warmup status
# ---------------------------------------------------------------------------

class RosterCacheInfo(BaseModel):
    """Cache state for one roster kind."""

    kind: PersonKind
    cached: bool
    size: Optional[int] = None
    expires_in_s: Optional[float] = None


class CacheStats(BaseModel):
    """Cache state for all rosters and the image family."""

    rosters: list[RosterCacheInfo]
    roster_ttl_s: float
    images_cached: int = 0
    image_ttl_s: Optional[float] = None


class ImagePreloadStats(BaseModel):
    """Outcome of an image preload pass."""

    success: int = 0
    failed: int = 0


class WarmupStats(BaseModel):
    """Counts recorded by the last warmup run."""

    athletes: int = 0
    coaches: int = 0
    judges: int = 0
    images: ImagePreloadStats = Field(default_factory=ImagePreloadStats)


class WarmupStatus(BaseModel):
    """Warmup state for health checks."""

    is_warmed_up: bool
    last_warmup_at: Optional[datetime] = None
    running: bool = False
    interval_s: float
    stats: WarmupStats


class WarmupOutcome(BaseModel):
    """Result of a manual warmup trigger."""

    message: str
    success: bool
    stats: WarmupStats
    duration_ms: int


class ClearCachesOutcome(BaseModel):
    """Result of clearing every cache."""

    message: str
    cleared_at: datetime


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageData:
    """A cached image blob with the headers needed to serve it again."""

    data: bytes
    content_type: str
    content_length: int
    last_modified: str
    etag: Optional[str] = None
