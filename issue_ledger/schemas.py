from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IssueStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IssueCategory(str, Enum):
    FACILITY = "Facility"
    SAFETY = "Safety"
    MAINTENANCE = "Maintenance"
    IMPROVEMENT = "Improvement"
    OTHER = "Other"


class IssueRecord(BaseModel):
    """Stored form of an issue, persisted as JSON under ``issue_{id}``."""

    model_config = ConfigDict(use_enum_values=True)

    data: str
    timestamp: int
    category: str
    votes: int = Field(default=0, ge=0)
    status: IssueStatus = IssueStatus.PENDING

    @field_validator("votes", mode="before")
    @classmethod
    def _missing_votes(cls, value):
        # Records written by older clients may carry a null counter
        return 0 if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _missing_status(cls, value):
        return IssueStatus.PENDING if value is None else value


class Issue(IssueRecord):
    id: str

    def to_record(self) -> IssueRecord:
        return IssueRecord.model_validate(self.model_dump(exclude={"id"}))


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class IssueSubmit(BaseModel):
    category: IssueCategory
    description: str = Field(min_length=1, max_length=1000)
    location: Optional[str] = Field(None, max_length=200)


class IssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    data: str
    timestamp: int
    category: str
    votes: int
    status: IssueStatus


class AvailabilityResponse(BaseModel):
    available: bool
