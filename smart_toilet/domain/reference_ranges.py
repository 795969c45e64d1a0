"""
Reference ranges used to classify urine and device readings.

This is the one place thresholds live. Bounds are inclusive unless the
constant name says otherwise.
"""

from smart_toilet.domain.models import Parameter

PH_MIN = 4.5
PH_MAX = 8.0

SPECIFIC_GRAVITY_MIN = 1.005
SPECIFIC_GRAVITY_MAX = 1.030

AMMONIA_MIN_PPM = 5.0
AMMONIA_MAX_PPM = 500.0

# Turbidity: normal below the first bound, abnormal at or above the second
TURBIDITY_SLIGHT_NTU = 20.0
TURBIDITY_ABNORMAL_NTU = 50.0

# TDS: normal up to the first bound, slightly abnormal up to the second
TDS_NORMAL_MAX_PPM = 300.0
TDS_SLIGHT_MAX_PPM = 500.0

UROBILINOGEN_MIN = 0.2
UROBILINOGEN_MAX = 1.0

PROTEIN_TRACE_MAX = 30.0

# Strictly above this is a dehydration signal
TEMPERATURE_DEHYDRATION_C = 37.0

# Hydration estimate scale for specific gravity
HYDRATION_SG_MIN = 1.002
HYDRATION_SG_MAX = 1.035

NEGATIVE_PADS: frozenset[Parameter] = frozenset(
    {
        Parameter.BILIRUBIN,
        Parameter.KETONES,
        Parameter.ASCORBIC_ACID,
        Parameter.GLUCOSE,
        Parameter.BLOOD,
        Parameter.NITRITE,
        Parameter.LEUKOCYTES,
    }
)

BOOLEAN_FLAGS: frozenset[Parameter] = frozenset(
    {Parameter.BLOOD_DETECTED, Parameter.LEAKAGE_DETECTED}
)

LABELS: dict[Parameter, str] = {
    Parameter.BILIRUBIN: "Bilirubin (BIL)",
    Parameter.UROBILINOGEN: "Urobilinogen (UBG)",
    Parameter.KETONES: "Ketone (KET)",
    Parameter.ASCORBIC_ACID: "Ascorbic Acid (ASC)",
    Parameter.GLUCOSE: "Glucose (GLU)",
    Parameter.PROTEIN: "Protein (PRO)",
    Parameter.BLOOD: "Blood (BLD)",
    Parameter.PH: "pH Level",
    Parameter.NITRITE: "Nitrite (NIT)",
    Parameter.LEUKOCYTES: "Leukocytes (LEU)",
    Parameter.SPECIFIC_GRAVITY: "Specific Gravity (SG)",
    Parameter.TURBIDITY: "Turbidity",
    Parameter.TDS: "Total Dissolved Solids",
    Parameter.AMMONIA: "Ammonia Gas",
    Parameter.TEMPERATURE: "Temperature",
    Parameter.BLOOD_DETECTED: "Blood Detected",
    Parameter.LEAKAGE_DETECTED: "Leakage Detected",
}

RANGE_DESCRIPTIONS: dict[Parameter, str] = {
    Parameter.BILIRUBIN: "Negative",
    Parameter.UROBILINOGEN: f"{UROBILINOGEN_MIN} – {UROBILINOGEN_MAX} mg/dL",
    Parameter.KETONES: "Negative",
    Parameter.ASCORBIC_ACID: "Negative",
    Parameter.GLUCOSE: "Negative",
    Parameter.PROTEIN: "Negative / Trace",
    Parameter.BLOOD: "Negative (0–2 Ery/µL)",
    Parameter.PH: f"{PH_MIN} – {PH_MAX}",
    Parameter.NITRITE: "Negative",
    Parameter.LEUKOCYTES: "Negative (0–10 Leu/µL)",
    Parameter.SPECIFIC_GRAVITY: f"{SPECIFIC_GRAVITY_MIN:.3f} – {SPECIFIC_GRAVITY_MAX:.3f}",
    Parameter.TURBIDITY: f"< {TURBIDITY_SLIGHT_NTU:g} NTU",
    Parameter.TDS: f"≤ {TDS_NORMAL_MAX_PPM:g} ppm",
    Parameter.AMMONIA: f"{AMMONIA_MIN_PPM:g} – {AMMONIA_MAX_PPM:g} ppm",
    Parameter.TEMPERATURE: f"≤ {TEMPERATURE_DEHYDRATION_C:g} °C",
    Parameter.BLOOD_DETECTED: "Not detected",
    Parameter.LEAKAGE_DETECTED: "No leak",
}

# Row order of the urine diagnostics table
DIAGNOSTICS_ORDER: tuple[Parameter, ...] = (
    Parameter.BILIRUBIN,
    Parameter.UROBILINOGEN,
    Parameter.KETONES,
    Parameter.ASCORBIC_ACID,
    Parameter.GLUCOSE,
    Parameter.PROTEIN,
    Parameter.BLOOD,
    Parameter.PH,
    Parameter.NITRITE,
    Parameter.LEUKOCYTES,
    Parameter.SPECIFIC_GRAVITY,
    Parameter.TURBIDITY,
    Parameter.TDS,
    Parameter.AMMONIA,
    Parameter.TEMPERATURE,
    Parameter.BLOOD_DETECTED,
    Parameter.LEAKAGE_DETECTED,
)
