from __future__ import annotations

import re
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica_dental.models.treatment import Promotion, Treatment

# Legacy spellings are kept because existing catalog rows use them.
SPECIALTY_PREFIXES: dict[str, str] = {
    "Preventiva": "PR",
    "Diagnostico": "DX",
    "Laboratiorio": "LA",
    "Endodoncia": "EN",
    "Paido": "PA",
    "PERIO": "PE",
    "CIRU": "CI",
    "General": "GX",
    "Odontología General": "OG",
    "Ortodoncia": "OR",
    "Periodoncia": "PE",
    "Cirugía Oral y Maxilofacial": "CI",
    "Odontopediatría": "OP",
    "Rehabilitación Oral": "RO",
    "Implantología": "IM",
    "Operatoria": "OPR",
    "Estetica": "ES",
    "Patología Bucal": "PB",
    "Radiología Dental": "RD",
    "Sal Pública Dental": "SP",
}

PROMOTION_PREFIX = "P"


class UnknownSpecialtyError(ValueError):
    pass


def specialty_prefix(specialty: str) -> str:
    prefix = SPECIALTY_PREFIXES.get((specialty or "").strip())
    if not prefix:
        raise UnknownSpecialtyError(f"Unknown specialty: {specialty}")
    return prefix


def next_code(prefix: str, existing_codes: Iterable[str], width: int = 2) -> str:
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for code in existing_codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"


def generate_treatment_code(db: Session, specialty: str) -> str:
    prefix = specialty_prefix(specialty)
    codes = db.scalars(select(Treatment.code).where(Treatment.code.like(f"{prefix}%")))
    return next_code(prefix, codes)


def generate_promotion_code(db: Session) -> str:
    codes = db.scalars(select(Promotion.code).where(Promotion.code.like(f"{PROMOTION_PREFIX}%")))
    return next_code(PROMOTION_PREFIX, codes, width=3)
