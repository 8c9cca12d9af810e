# salon_scheduler/schemas/org_settings.py

from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.scheduling.tz import is_valid_timezone


class OrgPreferences(BaseModel):
    enforce_opening_hours: bool = False


class OrgSettingsRead(BaseModel):
    org_id: int
    name: str
    timezone: str
    preferences: OrgPreferences


class OrgSettingsUpdate(BaseModel):
    timezone: str | None = None
    preferences: OrgPreferences | None = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if v is not None and not is_valid_timezone(v):
            raise ValueError(f"unknown timezone: {v}")
        return v


class OpeningHoursRowSchema(BaseModel):
    weekday: int = Field(ge=0, le=6, description="0 = Sunday .. 6 = Saturday")
    open_min: int = Field(ge=0, le=1440)
    close_min: int = Field(ge=0, le=1440)

    model_config = {"from_attributes": True}


class OpeningHoursRead(BaseModel):
    org_id: int
    is_default: bool
    rows: list[OpeningHoursRowSchema]


class OpeningHoursUpdate(BaseModel):
    """Replaces the whole week. Weekdays left out fall back to 09:00-18:00."""
    rows: list[OpeningHoursRowSchema]

    @model_validator(mode="after")
    def check_unique_weekdays(self):
        weekdays = [r.weekday for r in self.rows]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError("one row per weekday")
        return self
