from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import re

from clinica_dental.models.patient import Patient

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


@dataclass(frozen=True)
class ConsentTemplate:
    key: str
    name: str
    consent_type: str
    description: str
    content: str


CONSENT_TEMPLATES: tuple[ConsentTemplate, ...] = (
    ConsentTemplate(
        key="ortodoncia",
        name="Consentimiento Informado para Tratamiento de Ortodoncia",
        consent_type="ortodoncia",
        description="Tratamientos de ortodoncia y ortopedia dentofacial",
        content="""CONSENTIMIENTO INFORMADO PARA TRATAMIENTO DE ORTODONCIA
{{CLINIC_NAME}}

Paciente: {{PATIENT_NAME}}
Identidad: {{PATIENT_ID}}
Domicilio: {{PATIENT_ADDRESS}}
Especialista: {{DOCTOR_NAME}}

I. GENERALIDADES
El tratamiento corrige maloclusiones y anomalías óseas. Su éxito depende de la asistencia a las citas, la higiene y el cuidado de los aparatos. La duración estimada puede extenderse por crecimiento imprevisto o falta de cooperación.

II. RIESGOS
Sensibilidad durante los ajustes, descalcificación y caries por higiene deficiente, resorción radicular y recidiva si no se usan los retenedores indicados.

III. COMPLICACIONES POTENCIALES
Daño pulpar en dientes con traumas previos, molestias en la articulación temporomandibular y lesiones por aparatos sueltos.

IV. AUTORIZACIÓN
Declaro haber leído y entendido este documento, haber podido hacer preguntas y autorizo el plan propuesto, así como la toma de radiografías, fotografías y modelos.

Fecha: {{DATE}}""",
    ),
    ConsentTemplate(
        key="general",
        name="Consentimiento Informado General",
        consent_type="otros",
        description="Tratamientos odontológicos generales",
        content="""CONSENTIMIENTO INFORMADO GENERAL
{{CLINIC_NAME}}

Yo, {{PATIENT_NAME}}, con documento de identidad {{PATIENT_ID}} y domicilio en {{PATIENT_ADDRESS}}, hago constar lo siguiente:

• He sido atendido por {{DOCTOR_NAME}}.

• Se me explicó que el diagnóstico incluye examen clínico, examen radiográfico de ser necesario y un expediente clínico con mi información personal, así como los riesgos de no seguir las recomendaciones del odontólogo.

• Entiendo que los tratamientos tienen un costo que se comunicará antes de realizarlos.

• Autorizo la toma de fotografías con fines demostrativos y educativos.

Fecha: {{DATE}}""",
    ),
)

_TEMPLATES_BY_KEY = {template.key: template for template in CONSENT_TEMPLATES}


def get_consent_template(key: str) -> ConsentTemplate | None:
    return _TEMPLATES_BY_KEY.get(key)


def templates_by_type(consent_type: str) -> list[ConsentTemplate]:
    return [template for template in CONSENT_TEMPLATES if template.consent_type == consent_type]


def _build_field_map(patient: Patient, *, doctor_name: str, clinic_name: str, today: date) -> dict[str, str]:
    return {
        "PATIENT_NAME": patient.full_name or "",
        "PATIENT_ID": patient.national_id or "",
        "PATIENT_ADDRESS": patient.address or "",
        "DOCTOR_NAME": doctor_name,
        "CLINIC_NAME": clinic_name.upper(),
        "DATE": today.strftime("%d/%m/%Y"),
    }


def render_consent_with_warnings(
    content: str,
    patient: Patient,
    *,
    doctor_name: str,
    clinic_name: str,
    today: date | None = None,
) -> tuple[str, list[str]]:
    mapping = _build_field_map(
        patient, doctor_name=doctor_name, clinic_name=clinic_name, today=today or date.today()
    )
    unknown: set[str] = set()

    def replace(match: re.Match[str]) -> str:
        key = match.group(1).strip()
        value = mapping.get(key)
        if value is None:
            unknown.add(key)
            return match.group(0)
        return value

    rendered = PLACEHOLDER_PATTERN.sub(replace, content)
    return rendered, sorted(unknown)
