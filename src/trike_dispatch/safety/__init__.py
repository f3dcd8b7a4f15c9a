"""Driver safety badges and the safety record log."""

from .engine import SafetyScoreEngine
from .models import (
    DriverSafetyRecord,
    RecordStatus,
    SafetyAssessment,
    SafetyBadge,
    SafetyInputs,
    SafetyRecordEntry,
    SafetyRecordKind,
    Severity,
)
from .rules import evaluate_safety_badge, meets_minimum

__all__ = [
    "DriverSafetyRecord",
    "RecordStatus",
    "SafetyAssessment",
    "SafetyBadge",
    "SafetyInputs",
    "SafetyRecordEntry",
    "SafetyRecordKind",
    "SafetyScoreEngine",
    "Severity",
    "evaluate_safety_badge",
    "meets_minimum",
]
