"""Activity domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.dates import to_naive_utc

ACTIVITY_SOURCES = {"phone", "email", "visit", "manual"}


class ActivityCreate(BaseModel):
    """Schema for logging a manual activity"""

    clientId: str
    source: str
    startTime: datetime
    endTime: datetime
    billingCode: Optional[str] = None
    isBillable: bool = True
    notes: Optional[str] = None
    serviceTypeId: Optional[str] = None

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        if v not in ACTIVITY_SOURCES:
            raise ValueError("source must be one of phone, email, visit, manual")
        return v

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_time(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.endTime < self.startTime:
            raise ValueError("endTime must not be before startTime")
        return self


class ActivityResponse(BaseModel):
    id: str
    clientId: str
    cmId: Optional[str] = None
    source: str
    startTime: datetime
    endTime: datetime
    duration: Optional[int] = None
    billingCode: Optional[str] = None
    isBillable: bool
    isFlagged: bool
    notes: Optional[str] = None
    serviceTypeId: Optional[str] = None

    @classmethod
    def from_model(cls, activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            clientId=activity.client_id,
            cmId=activity.cm_id,
            source=activity.source,
            startTime=activity.start_time,
            endTime=activity.end_time,
            duration=activity.duration,
            billingCode=activity.billing_code,
            isBillable=activity.is_billable,
            isFlagged=activity.is_flagged,
            notes=activity.notes,
            serviceTypeId=activity.service_type_id,
        )
