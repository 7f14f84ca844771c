from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import re
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clinica_dental.models.completed_treatment import CompletedTreatment
from clinica_dental.models.patient import Patient

PatientType = Literal["menor", "adulto", "3ra_edad", "4ta_edad"]
RecordCategory = Literal["active", "historical", "archived"]

PREGNANCY_TERM_WEEKS = 40

COUNTRY_CODES: dict[str, str] = {
    "HN": "504",
    "GT": "502",
    "SV": "503",
    "NI": "505",
    "CR": "506",
    "PA": "507",
    "MX": "52",
    "US": "1",
    "ES": "34",
}

_NON_DIGITS = re.compile(r"\D")


def calculate_age(birth_date: date | None, today: date | None = None) -> int | None:
    if birth_date is None:
        return None
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def classify_patient_type(age: int | None) -> PatientType:
    if age is None:
        return "adulto"
    if age < 18:
        return "menor"
    if age >= 80:
        return "4ta_edad"
    if age >= 60:
        return "3ra_edad"
    return "adulto"


def _add_years(base: date, years: int) -> date:
    try:
        return base.replace(year=base.year + years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return base.replace(year=base.year + years, day=28)


def classify_record_category(
    intake_date: date | None,
    last_treatment_date: date | None,
    *,
    launch_date: date,
    historical_enabled: bool = True,
    archive_after_years: int = 5,
    today: date | None = None,
) -> RecordCategory:
    today = today or date.today()
    if historical_enabled and intake_date is not None and intake_date < launch_date:
        return "historical"
    if last_treatment_date is not None and _add_years(last_treatment_date, archive_after_years) < today:
        return "archived"
    return "active"


@dataclass
class PregnancyStatus:
    active: bool
    weeks_at_intake: int
    current_weeks: int
    weeks_remaining: int
    expected_end: date


def pregnancy_status(
    weeks_at_intake: int | None, intake_date: date | None, today: date | None = None
) -> PregnancyStatus | None:
    if weeks_at_intake is None or intake_date is None:
        return None
    if weeks_at_intake < 0 or weeks_at_intake > PREGNANCY_TERM_WEEKS:
        raise ValueError("pregnancy weeks must be between 0 and 40")
    today = today or date.today()
    expected_end = intake_date + timedelta(weeks=PREGNANCY_TERM_WEEKS - weeks_at_intake)
    elapsed_weeks = max((today - intake_date).days, 0) // 7
    current_weeks = min(weeks_at_intake + elapsed_weeks, PREGNANCY_TERM_WEEKS)
    return PregnancyStatus(
        active=today < expected_end,
        weeks_at_intake=weeks_at_intake,
        current_weeks=current_weeks,
        weeks_remaining=max(PREGNANCY_TERM_WEEKS - current_weeks, 0),
        expected_end=expected_end,
    )


def whatsapp_url(phone: str | None, country_code: str | None) -> str | None:
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        return None
    code = _NON_DIGITS.sub("", COUNTRY_CODES.get((country_code or "").upper(), country_code or ""))
    if code and digits.startswith(code) and len(digits) > 8:
        return f"https://wa.me/{digits}"
    return f"https://wa.me/{code}{digits}"


def last_treatment_date(db: Session, patient_id: int) -> date | None:
    return db.scalar(
        select(func.max(CompletedTreatment.appointment_date)).where(
            CompletedTreatment.patient_id == patient_id
        )
    )


def national_id_taken(db: Session, national_id: str, *, exclude_patient_id: int | None = None) -> bool:
    stmt = select(Patient.id).where(Patient.national_id == national_id.strip())
    if exclude_patient_id is not None:
        stmt = stmt.where(Patient.id != exclude_patient_id)
    return db.scalar(stmt.limit(1)) is not None
