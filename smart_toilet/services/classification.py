"""
Threshold-based classification of health parameters.

Every parameter is judged against the fixed table in
`smart_toilet.domain.reference_ranges`. A missing or unreadable value yields
`VerdictStatus.UNKNOWN` rather than an optimistic "normal", and the caller
decides how to display it.
"""

from collections.abc import Callable, Iterable
from typing import Any

from smart_toilet.domain import reference_ranges as ref
from smart_toilet.domain.models import (
    CombinedRecord,
    OverallStatus,
    Parameter,
    ParameterVerdict,
    VerdictStatus,
)
from smart_toilet.services.readings import Reading, ReadingKind, normalize_reading

NOT_AVAILABLE = "N/A"


def _verdict(parameter: Parameter, status: VerdictStatus, display: str) -> ParameterVerdict:
    return ParameterVerdict(
        parameter=parameter,
        label=ref.LABELS[parameter],
        status=status,
        display_value=display,
        reference_range=ref.RANGE_DESCRIPTIONS[parameter],
    )


def _within(value: float, low: float, high: float) -> VerdictStatus:
    return VerdictStatus.NORMAL if low <= value <= high else VerdictStatus.ABNORMAL


def _turbidity_status(value: float) -> VerdictStatus:
    if value >= ref.TURBIDITY_ABNORMAL_NTU:
        return VerdictStatus.ABNORMAL
    if value >= ref.TURBIDITY_SLIGHT_NTU:
        return VerdictStatus.SLIGHTLY_ABNORMAL
    return VerdictStatus.NORMAL


def _tds_status(value: float) -> VerdictStatus:
    if value > ref.TDS_SLIGHT_MAX_PPM:
        return VerdictStatus.ABNORMAL
    if value > ref.TDS_NORMAL_MAX_PPM:
        return VerdictStatus.SLIGHTLY_ABNORMAL
    return VerdictStatus.NORMAL


def _temperature_status(value: float) -> VerdictStatus:
    if value > ref.TEMPERATURE_DEHYDRATION_C:
        return VerdictStatus.DEHYDRATION
    return VerdictStatus.NORMAL


# Numeric parameters: (status rule, display formatter)
_NUMERIC_RULES: dict[
    Parameter, tuple[Callable[[float], VerdictStatus], Callable[[float], str]]
] = {
    Parameter.PH: (lambda v: _within(v, ref.PH_MIN, ref.PH_MAX), lambda v: f"{v:.2f}"),
    Parameter.SPECIFIC_GRAVITY: (
        lambda v: _within(v, ref.SPECIFIC_GRAVITY_MIN, ref.SPECIFIC_GRAVITY_MAX),
        lambda v: f"{v:.3f}",
    ),
    Parameter.AMMONIA: (
        lambda v: _within(v, ref.AMMONIA_MIN_PPM, ref.AMMONIA_MAX_PPM),
        lambda v: f"{v:.2f} ppm",
    ),
    Parameter.TURBIDITY: (_turbidity_status, lambda v: f"{v:.1f} NTU"),
    Parameter.TDS: (_tds_status, lambda v: f"{v:g} ppm"),
    Parameter.TEMPERATURE: (_temperature_status, lambda v: f"{v:.1f} °C"),
}


def _classify_numeric(parameter: Parameter, reading: Reading) -> ParameterVerdict:
    if reading.kind != ReadingKind.NUMERIC or reading.value is None:
        # A sentinel on a measured quantity carries no usable number
        return _verdict(parameter, VerdictStatus.UNKNOWN, reading.text or NOT_AVAILABLE)

    status_rule, formatter = _NUMERIC_RULES[parameter]
    return _verdict(parameter, status_rule(reading.value), formatter(reading.value))


def _is_negative(reading: Reading) -> bool:
    return reading.kind in (ReadingKind.NEGATIVE, ReadingKind.NORMAL) or reading.is_zero


def _classify_negative_pad(parameter: Parameter, reading: Reading) -> ParameterVerdict:
    if _is_negative(reading):
        return _verdict(parameter, VerdictStatus.NORMAL, "Negative")
    return _verdict(parameter, VerdictStatus.ABNORMAL, "Positive")


def _classify_protein(reading: Reading) -> ParameterVerdict:
    if _is_negative(reading):
        return _verdict(Parameter.PROTEIN, VerdictStatus.NORMAL, "Negative")
    if reading.kind == ReadingKind.NUMERIC and reading.value is not None:
        if 0 < reading.value <= ref.PROTEIN_TRACE_MAX:
            return _verdict(Parameter.PROTEIN, VerdictStatus.NORMAL, "Trace")
        return _verdict(Parameter.PROTEIN, VerdictStatus.ABNORMAL, f"{reading.value:g}")
    return _verdict(Parameter.PROTEIN, VerdictStatus.ABNORMAL, reading.text or "Positive")


def _classify_urobilinogen(reading: Reading) -> ParameterVerdict:
    if reading.kind == ReadingKind.NORMAL:
        return _verdict(Parameter.UROBILINOGEN, VerdictStatus.NORMAL, "Normal")
    if reading.kind == ReadingKind.NUMERIC and reading.value is not None:
        status = _within(reading.value, ref.UROBILINOGEN_MIN, ref.UROBILINOGEN_MAX)
        return _verdict(Parameter.UROBILINOGEN, status, f"{reading.value:g} mg/dL")
    return _verdict(Parameter.UROBILINOGEN, VerdictStatus.ABNORMAL, reading.text or "Abnormal")


def _classify_flag(parameter: Parameter, reading: Reading) -> ParameterVerdict:
    if _is_negative(reading):
        return _verdict(parameter, VerdictStatus.NORMAL, "Not Detected")
    return _verdict(parameter, VerdictStatus.ABNORMAL, "Detected")


def classify_parameter(parameter: Parameter, raw_value: Any) -> ParameterVerdict:
    """Classify one raw value against the reference table."""
    reading = normalize_reading(raw_value)
    if not reading.is_known:
        return _verdict(parameter, VerdictStatus.UNKNOWN, NOT_AVAILABLE)

    if parameter in _NUMERIC_RULES:
        return _classify_numeric(parameter, reading)
    if parameter in ref.NEGATIVE_PADS:
        return _classify_negative_pad(parameter, reading)
    if parameter in ref.BOOLEAN_FLAGS:
        return _classify_flag(parameter, reading)
    if parameter == Parameter.PROTEIN:
        return _classify_protein(reading)
    if parameter == Parameter.UROBILINOGEN:
        return _classify_urobilinogen(reading)

    raise ValueError(f"Unknown parameter: {parameter}")


def classify_record(record: CombinedRecord) -> list[ParameterVerdict]:
    """Diagnostics table for a record, in display order."""
    readings = record.raw_readings()
    return [
        classify_parameter(parameter, readings[parameter]) for parameter in ref.DIAGNOSTICS_ORDER
    ]


def overall_status(verdicts: Iterable[ParameterVerdict]) -> OverallStatus:
    """Collapse per-parameter verdicts into the headline status."""
    statuses = {verdict.status for verdict in verdicts}

    if VerdictStatus.ABNORMAL in statuses:
        return "Abnormal"
    # Dehydration is its own signal, not an out-of-range reading
    if VerdictStatus.SLIGHTLY_ABNORMAL in statuses or VerdictStatus.DEHYDRATION in statuses:
        return "Needs Attention"
    return "Normal"


def hydration_percentage(specific_gravity: Any) -> int:
    """Estimate hydration (0-100) from specific gravity; lower SG means better hydrated."""
    reading = normalize_reading(specific_gravity)
    if reading.kind != ReadingKind.NUMERIC or not reading.value:
        return 0

    clamped = max(ref.HYDRATION_SG_MIN, min(ref.HYDRATION_SG_MAX, reading.value))
    span = ref.HYDRATION_SG_MAX - ref.HYDRATION_SG_MIN
    percentage = 100 * (ref.HYDRATION_SG_MAX - clamped) / span
    return round(max(0.0, min(100.0, percentage)))
