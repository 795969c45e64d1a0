"""
Domain models for smart toilet health records.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; the wire shape of the realtime database is
only touched by the `from_node` constructors.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Parameter(str, Enum):
    """Every parameter the classifier knows how to judge."""

    PH = "ph"
    SPECIFIC_GRAVITY = "specific_gravity"
    AMMONIA = "ammonia"
    TURBIDITY = "turbidity"
    TDS = "tds"
    TEMPERATURE = "temperature"
    BLOOD_DETECTED = "blood_detected"
    LEAKAGE_DETECTED = "leakage_detected"

    # Chemistry pads
    UROBILINOGEN = "urobilinogen"
    PROTEIN = "protein"
    BILIRUBIN = "bilirubin"
    KETONES = "ketones"
    ASCORBIC_ACID = "ascorbic_acid"
    GLUCOSE = "glucose"
    BLOOD = "blood"
    NITRITE = "nitrite"
    LEUKOCYTES = "leukocytes"


class ReadingStream(str, Enum):
    """Which session type a parameter is read from."""

    SENSOR = "sensor"
    CHEMISTRY = "chemistry"


# Parameter -> (stream, key inside sensorData / Chemistry_Result)
PARAMETER_SOURCES: dict[Parameter, tuple[ReadingStream, str]] = {
    Parameter.PH: (ReadingStream.SENSOR, "ph_value_sensor"),
    Parameter.SPECIFIC_GRAVITY: (ReadingStream.SENSOR, "specific_gravity_sensor"),
    Parameter.AMMONIA: (ReadingStream.SENSOR, "ammonia_ppm"),
    Parameter.TURBIDITY: (ReadingStream.SENSOR, "turbidity"),
    Parameter.TDS: (ReadingStream.SENSOR, "tds_value"),
    Parameter.TEMPERATURE: (ReadingStream.SENSOR, "temperature"),
    Parameter.BLOOD_DETECTED: (ReadingStream.SENSOR, "blood_detected_sensor"),
    Parameter.LEAKAGE_DETECTED: (ReadingStream.SENSOR, "leakage_detected"),
    Parameter.UROBILINOGEN: (ReadingStream.CHEMISTRY, "chem_urobilinogen"),
    Parameter.PROTEIN: (ReadingStream.CHEMISTRY, "chem_protein"),
    Parameter.BILIRUBIN: (ReadingStream.CHEMISTRY, "chem_bilirubin"),
    Parameter.KETONES: (ReadingStream.CHEMISTRY, "chem_ketones"),
    Parameter.ASCORBIC_ACID: (ReadingStream.CHEMISTRY, "chem_ascorbicAcid"),
    Parameter.GLUCOSE: (ReadingStream.CHEMISTRY, "chem_glucose"),
    Parameter.BLOOD: (ReadingStream.CHEMISTRY, "chem_blood"),
    Parameter.NITRITE: (ReadingStream.CHEMISTRY, "chem_nitrite"),
    Parameter.LEUKOCYTES: (ReadingStream.CHEMISTRY, "chem_leukocytes"),
}


class VerdictStatus(str, Enum):
    """Outcome of classifying a single parameter."""

    NORMAL = "Normal"
    SLIGHTLY_ABNORMAL = "Slightly Abnormal"
    ABNORMAL = "Abnormal"
    DEHYDRATION = "Dehydration"
    UNKNOWN = "Unknown"


OverallStatus = Literal["Normal", "Needs Attention", "Abnormal"]
AlertSeverity = Literal["Warning", "Alert"]


def _session_time(node: Mapping[str, Any]) -> str | None:
    metadata = node.get("metadata")
    if not isinstance(metadata, Mapping):
        return None
    time = metadata.get("time")
    return str(time) if time is not None else None


def parse_session_timestamp(date: str, time: str | None) -> datetime | None:
    """Combine a `YYYY-MM-DD` day and a `HH:MM:SS` time, or None if unparseable."""
    if not time:
        return None
    try:
        return datetime.strptime(f"{date} {time}", TIMESTAMP_FORMAT)
    except ValueError:
        return None


class SensorSession(BaseModel):
    """One hardware capture event recorded by the physical device."""

    model_config = ConfigDict(frozen=True)

    date: str
    session_key: str
    time: str | None = None
    readings: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_node(cls, date: str, session_key: str, node: Mapping[str, Any]) -> "SensorSession":
        readings = node.get("sensorData")
        return cls(
            date=date,
            session_key=session_key,
            time=_session_time(node),
            readings=dict(readings) if isinstance(readings, Mapping) else {},
        )

    @property
    def timestamp(self) -> datetime | None:
        return parse_session_timestamp(self.date, self.time)


class ChemistrySession(BaseModel):
    """One dipstick capture event, produced independently of the hardware session."""

    model_config = ConfigDict(frozen=True)

    date: str
    session_key: str
    time: str | None = None
    readings: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_node(
        cls, date: str, session_key: str, node: Mapping[str, Any]
    ) -> "ChemistrySession":
        readings = node.get("Chemistry_Result")
        return cls(
            date=date,
            session_key=session_key,
            time=_session_time(node),
            readings=dict(readings) if isinstance(readings, Mapping) else {},
        )

    @property
    def timestamp(self) -> datetime | None:
        return parse_session_timestamp(self.date, self.time)


class DailyReport(BaseModel):
    """All sessions captured for one user on one calendar day."""

    date: str
    hardware_sessions: dict[str, SensorSession] = Field(default_factory=dict)
    medical_sessions: dict[str, ChemistrySession] = Field(default_factory=dict)

    @classmethod
    def from_node(cls, date: str, node: Mapping[str, Any] | None) -> "DailyReport":
        """Build from the `Reports/{date}` node of the realtime database."""
        node = node if isinstance(node, Mapping) else {}
        hardware = node.get("Hardware_Sessions")
        medical = node.get("Medical_Sessions")

        hardware_sessions = {
            key: SensorSession.from_node(date, key, leaf)
            for key, leaf in (hardware.items() if isinstance(hardware, Mapping) else [])
            if isinstance(leaf, Mapping)
        }
        medical_sessions = {
            key: ChemistrySession.from_node(date, key, leaf)
            for key, leaf in (medical.items() if isinstance(medical, Mapping) else [])
            if isinstance(leaf, Mapping)
        }
        return cls(
            date=date, hardware_sessions=hardware_sessions, medical_sessions=medical_sessions
        )


class CombinedRecord(BaseModel):
    """A hardware session paired with its best-matching chemistry session."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    timestamp: datetime = Field(description="Local wall-clock time of the hardware session")
    hardware_session_key: str
    medical_session_key: str | None = None
    medical_timestamp: datetime | None = None
    sensor: dict[str, Any] = Field(default_factory=dict)
    chemistry: dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def make_id(date: str, hardware_session_key: str, medical_session_key: str | None) -> str:
        return f"{date}_{hardware_session_key}_{medical_session_key or 'nomed'}"

    @computed_field(return_type=bool)
    def has_chemistry(self) -> bool:
        return self.medical_session_key is not None

    def raw_readings(self) -> dict[Parameter, Any]:
        """Raw value of every known parameter, None where the record lacks it."""
        readings: dict[Parameter, Any] = {}
        for parameter, (stream, key) in PARAMETER_SOURCES.items():
            source = self.sensor if stream is ReadingStream.SENSOR else self.chemistry
            readings[parameter] = source.get(key)
        return readings

    def to_history_document(self) -> dict[str, Any]:
        """Document appended to the per-user historical log."""
        return {
            "recordId": self.id,
            "date": self.date,
            "timestamp": self.timestamp,
            "hardwareSessionKey": self.hardware_session_key,
            "medicalSessionKey": self.medical_session_key,
            "sensorData": dict(self.sensor),
            "Chemistry_Result": dict(self.chemistry) if self.has_chemistry else None,
        }


class ParameterVerdict(BaseModel):
    """Classification of one parameter; derived at read time, never persisted."""

    model_config = ConfigDict(frozen=True)

    parameter: Parameter
    label: str
    status: VerdictStatus
    display_value: str
    reference_range: str

    @computed_field(return_type=bool | None)
    def normal(self) -> bool | None:
        """True/False for a judged value; None when there was not enough data."""
        if self.status == VerdictStatus.UNKNOWN:
            return None
        return self.status == VerdictStatus.NORMAL


class Alert(BaseModel):
    """Edge-triggered alert raised when a parameter leaves its normal range."""

    model_config = ConfigDict(frozen=True)

    parameter: Parameter
    parameter_name: str
    current_value: str
    normal_range_description: str
    status: VerdictStatus
    severity: AlertSeverity
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def message(self) -> str:
        return (
            f"{self.parameter_name} is {self.status.value.lower()}: {self.current_value} "
            f"(normal: {self.normal_range_description})"
        )
