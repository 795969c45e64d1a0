"""Report payload for the export layer: patient summary plus diagnostics rows."""

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from smart_toilet.domain.models import CombinedRecord, OverallStatus, ParameterVerdict
from smart_toilet.services.classification import (
    NOT_AVAILABLE,
    classify_record,
    hydration_percentage,
    overall_status,
)


class PatientSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str = NOT_AVAILABLE
    age: int | None = None
    gender: str = NOT_AVAILABLE
    blood_group: str = NOT_AVAILABLE
    phone: str = NOT_AVAILABLE
    email: str = NOT_AVAILABLE
    generated_on: date

    @property
    def age_display(self) -> str:
        return str(self.age) if self.age is not None else NOT_AVAILABLE


class HealthReport(BaseModel):
    """Everything a rendered health report shows, without any layout."""

    model_config = ConfigDict(frozen=True)

    patient: PatientSummary
    record_id: str
    recorded_at: datetime
    has_chemistry: bool
    diagnostics: list[ParameterVerdict] = Field(default_factory=list)
    overall_status: OverallStatus
    hydration_percentage: int = Field(ge=0, le=100)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _birth_date(value: Any) -> date | None:
    # Firestore hands back datetimes; profile forms store ISO strings
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def age_on(birth_date: date | None, today: date) -> int | None:
    """Whole years between birth_date and today, or None if unknown or in the future."""
    if birth_date is None:
        return None
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age if age >= 0 else None


def patient_summary(
    profile: Mapping[str, Any] | None, generated_at: datetime | None = None
) -> PatientSummary:
    profile = profile or {}
    generated_on = (generated_at or datetime.now(UTC)).date()

    full_name = " ".join(
        part for part in (_text(profile.get("firstName")), _text(profile.get("lastName"))) if part
    ) or _text(profile.get("displayName"))
    gender = _text(profile.get("gender"))

    return PatientSummary(
        full_name=full_name or NOT_AVAILABLE,
        age=age_on(_birth_date(profile.get("dateOfBirth")), generated_on),
        gender=gender[0].upper() + gender[1:] if gender else NOT_AVAILABLE,
        blood_group=_text(profile.get("bloodGroup")) or NOT_AVAILABLE,
        phone=_text(profile.get("phoneNumber")) or NOT_AVAILABLE,
        email=_text(profile.get("email")) or NOT_AVAILABLE,
        generated_on=generated_on,
    )


def build_health_report(
    profile: Mapping[str, Any] | None,
    record: CombinedRecord,
    generated_at: datetime | None = None,
) -> HealthReport:
    """Assemble the report for one combined record."""
    verdicts = classify_record(record)
    return HealthReport(
        patient=patient_summary(profile, generated_at),
        record_id=record.id,
        recorded_at=record.timestamp,
        has_chemistry=record.has_chemistry,
        diagnostics=verdicts,
        overall_status=overall_status(verdicts),
        hydration_percentage=hydration_percentage(record.sensor.get("specific_gravity_sensor")),
    )
