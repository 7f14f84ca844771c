"""Plain-text rendering of an odontogram for quote and billing notes."""
from __future__ import annotations

from typing import Any, Mapping

STATUS_PRIORITY: dict[str, int] = {
    "caries": 1,
    "obturado": 2,
    "fracturado": 3,
    "endodoncia": 4,
    "extraccion": 5,
    "corona": 6,
    "implante": 7,
    "puente": 8,
    "sellante": 9,
    "sano": 10,
    "ausente": 11,
}
UNKNOWN_STATUS_PRIORITY = 99

FACE_ORDER: tuple[str, ...] = (
    "oclusal",
    "vestibular",
    "lingual_palatino",
    "mesial",
    "distal",
    "cervical",
)

HEALTHY = "sano"
ABSENT = "ausente"


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _tooth_sort_key(tooth_number: str) -> tuple[int, str]:
    try:
        return int(tooth_number), tooth_number
    except (TypeError, ValueError):
        return 10_000, str(tooth_number)


def _capitalize(status: str) -> str:
    return status[:1].upper() + status[1:]


def _ordered_faces(faces: Mapping[str, Any]) -> list[str]:
    known = [name for name in FACE_ORDER if name in faces]
    extra = sorted(name for name in faces if name not in FACE_ORDER)
    return known + extra


def _face_issues(faces: Mapping[str, Any] | None) -> list[str]:
    if not isinstance(faces, Mapping):
        return []
    issues: list[str] = []
    for face_name in _ordered_faces(faces):
        face = faces.get(face_name)
        if not isinstance(face, Mapping):
            continue
        estado = _clean(face.get("estado"))
        if not estado or estado == HEALTHY:
            continue
        text = f"{face_name}: {estado}"
        tratamiento = _clean(face.get("tratamiento"))
        if tratamiento:
            text += f" - {tratamiento}"
        observaciones = _clean(face.get("observaciones"))
        if observaciones:
            text += f" ({observaciones})"
        issues.append(text)
    return issues


def _problem_line(tooth_number: str, tooth: Mapping[str, Any], estado: str) -> str:
    line = f"Diente {tooth_number}: {estado}"
    observaciones = _clean(tooth.get("observaciones"))
    if observaciones:
        line += f" - {observaciones}"
    tratamiento = _clean(tooth.get("tratamiento"))
    if tratamiento:
        line += f" - Tratamiento: {tratamiento}"
    faces = _face_issues(tooth.get("caras"))
    if faces:
        line += " - Caras: " + ", ".join(faces)
    return line


def _section(title: str, lines: list[str]) -> str | None:
    if not lines:
        return None
    return "\n".join([f"=== {title} ===", *lines])


def format_odontogram_notes(data: Mapping[str, Any] | None, notes: str | None = None) -> str:
    """Summarize odontogram ``data`` and the version ``notes`` as a text block.

    ``data`` follows the stored chart layout: ``dientes`` keyed by FDI tooth
    number, ``informacion_general`` and ``tratamientos_planificados``.
    Sections without content are left out entirely.
    """
    data = data if isinstance(data, Mapping) else {}
    teeth = data.get("dientes")
    teeth = teeth if isinstance(teeth, Mapping) else {}

    status_count: dict[str, int] = {}
    problem_lines: list[str] = []
    note_lines: list[str] = []

    for tooth_number in sorted(teeth, key=_tooth_sort_key):
        tooth = teeth[tooth_number]
        if not isinstance(tooth, Mapping):
            continue
        estado = _clean(tooth.get("estado"))
        if estado:
            status_count[estado] = status_count.get(estado, 0) + 1
            if estado not in {HEALTHY, ABSENT}:
                problem_lines.append(_problem_line(str(tooth_number), tooth, estado))
        note = _clean(tooth.get("observaciones")) or _clean(tooth.get("nota"))
        if note:
            note_lines.append(f"Diente {tooth_number}: {note}")

    count_lines = [
        f"{_capitalize(status)}: {count} diente(s)"
        for status, count in sorted(
            status_count.items(),
            key=lambda pair: (STATUS_PRIORITY.get(pair[0], UNKNOWN_STATUS_PRIORITY), pair[0]),
        )
    ]

    general_lines: list[str] = []
    general = data.get("informacion_general")
    if isinstance(general, Mapping):
        motivo = _clean(general.get("motivo_consulta"))
        if motivo:
            general_lines.append(f"Motivo de consulta: {motivo}")
        observaciones = _clean(general.get("observaciones"))
        if observaciones:
            general_lines.append(f"Observaciones generales: {observaciones}")

    planned_lines: list[str] = []
    planned = data.get("tratamientos_planificados")
    if isinstance(planned, list):
        descriptions = [
            _clean(entry.get("descripcion")) for entry in planned if isinstance(entry, Mapping)
        ]
        planned_lines = [
            f"{index}. {description}"
            for index, description in enumerate((d for d in descriptions if d), start=1)
        ]

    comment = _clean(notes)

    sections = [
        _section("CONTEO POR ESTADO", count_lines),
        _section("DIENTES CON PROBLEMAS", problem_lines),
        _section("NOTAS INDIVIDUALES POR DIENTE", note_lines),
        _section("INFORMACIÓN GENERAL", general_lines),
        _section("TRATAMIENTOS PLANIFICADOS", planned_lines),
        _section("COMENTARIOS DEL ODONTOGRAMA", [comment] if comment else []),
    ]
    return "\n\n".join(section for section in sections if section).rstrip()
