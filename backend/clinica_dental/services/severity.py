"""Medical severity triage for the patient header badge.

The classifier works on free text as captured by the intake form, so every
rule is a lowercase substring match. It never raises: missing fields simply
contribute nothing to the score.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from clinica_dental.services.patients import calculate_age

SeverityLevel = Literal["none", "low", "medium", "high", "critical", "pregnancy"]

LIFE_THREATENING_DISEASES: tuple[str, ...] = (
    "cáncer",
    "tumor",
    "corazón",
    "cardíaco",
    "insuficiencia cardíaca",
    "infarto",
    "derrame cerebral",
)

CRITICAL_DISEASES: tuple[str, ...] = (
    "diabetes",
    "hipertensión",
    "corazón",
    "cardíaco",
    "cáncer",
    "tumor",
    "epilepsia",
    "asma",
    "renal",
    "hepático",
)

SEVERE_ALLERGIES: tuple[str, ...] = (
    "anafilaxia",
    "penicilina",
    "maní",
    "mariscos",
    "látex",
    "abeja",
    "avispas",
)

SEVERITY_COLORS: dict[str, str] = {
    "critical": "red",
    "high": "orange",
    "medium": "yellow",
    "low": "blue",
    "none": "gray",
    "pregnancy": "pink",
}

_SCORE_THRESHOLDS: tuple[tuple[int, SeverityLevel], ...] = (
    (6, "critical"),
    (4, "high"),
    (2, "medium"),
    (1, "low"),
)


@dataclass
class SeverityResult:
    level: SeverityLevel
    score: int
    conditions: list[str] = field(default_factory=list)

    @property
    def color(self) -> str:
        return SEVERITY_COLORS[self.level]


def _field(patient: Any, name: str) -> Any:
    if isinstance(patient, dict):
        return patient.get(name)
    return getattr(patient, name, None)


def _text(value: Any) -> str:
    return str(value or "").strip().lower()


def _count_medications(value: Any) -> int:
    # Every comma counts, including trailing and doubled ones.
    text = _text(value)
    return len(text.split(",")) if text else 0


def _is_pregnant(patient: Any) -> bool:
    sex = _field(patient, "sex")
    if hasattr(sex, "value"):
        sex = sex.value
    if _text(sex) != "femenino":
        return False
    pregnant = _field(patient, "pregnant")
    if isinstance(pregnant, str):
        return pregnant.strip().lower() in {"si", "sí", "true", "1"}
    return bool(pregnant)


def classify_severity(patient: Any, today: date | None = None) -> SeverityResult:
    """Classify a patient record (ORM row or plain dict) into a severity tier."""
    score = 0
    conditions: list[str] = []

    age = calculate_age(_field(patient, "birth_date"), today=today)
    if age is not None:
        if age >= 80:
            score += 3
        elif age >= 60:
            score += 2
        elif age < 18:
            score += 1

    diseases = _text(_field(patient, "diseases"))
    if diseases:
        if any(keyword in diseases for keyword in LIFE_THREATENING_DISEASES):
            return SeverityResult(level="critical", score=score, conditions=["life-threatening"])
        if any(keyword in diseases for keyword in CRITICAL_DISEASES):
            score += 3
            conditions.append("critical")

    allergies = _text(_field(patient, "allergies"))
    if allergies and any(keyword in allergies for keyword in SEVERE_ALLERGIES):
        score += 2
        conditions.append("severe-allergy")

    medication_count = _count_medications(_field(patient, "medications"))
    if medication_count >= 3:
        score += 2
        conditions.append("multiple-meds")
    elif medication_count >= 2:
        score += 1
        conditions.append("multiple-meds")

    if _is_pregnant(patient):
        score += 3
        conditions.append("pregnancy")

    if conditions == ["pregnancy"]:
        return SeverityResult(level="pregnancy", score=score, conditions=conditions)

    for threshold, level in _SCORE_THRESHOLDS:
        if score >= threshold:
            return SeverityResult(level=level, score=score, conditions=conditions)
    return SeverityResult(level="none", score=score, conditions=conditions)
