from __future__ import annotations

from io import BytesIO
from typing import Any, Iterable

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from clinica_dental.core.settings import settings
from clinica_dental.models.quote import Quote
from clinica_dental.services.quote_totals import (
    calculate_quote_totals,
    format_money,
    resolve_item_currency,
)

STATUS_LABELS = {
    "pending": "Pendiente",
    "accepted": "Aceptado",
    "rejected": "Rechazado",
    "expired": "Vencido",
}

DISCLAIMER_TEXT = "Precios sujetos a cambios según hallazgos clínicos durante el tratamiento."


def _draw_header(pdf: canvas.Canvas, title: str) -> None:
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(20 * mm, 280 * mm, settings.clinic_name)
    pdf.setFont("Helvetica", 10)
    y = 274 * mm
    for line in [settings.clinic_address, settings.clinic_phone]:
        if line:
            pdf.drawString(20 * mm, y, line)
            y -= 4 * mm
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawRightString(190 * mm, 280 * mm, title)
    pdf.setStrokeColor(colors.lightgrey)
    pdf.line(20 * mm, 258 * mm, 190 * mm, 258 * mm)


def _draw_patient_block(pdf: canvas.Canvas, quote: Quote) -> None:
    patient = quote.patient
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, 245 * mm, "Paciente")
    pdf.setFont("Helvetica", 10)
    pdf.drawString(20 * mm, 240 * mm, patient.full_name)
    if patient.national_id:
        pdf.drawString(20 * mm, 235 * mm, f"Identidad: {patient.national_id}")
    if patient.phone:
        pdf.drawString(20 * mm, 230 * mm, f"Teléfono: {patient.phone}")


def _draw_quote_meta(pdf: canvas.Canvas, quote: Quote) -> None:
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(120 * mm, 245 * mm, f"Presupuesto: PRE-{quote.id:06d}")
    pdf.setFont("Helvetica", 10)
    status_label = STATUS_LABELS.get(quote.status.value, quote.status.value)
    pdf.drawString(120 * mm, 240 * mm, f"Estado: {status_label}")
    pdf.drawString(120 * mm, 235 * mm, f"Fecha: {quote.quote_date.strftime('%d/%m/%Y')}")
    pdf.drawString(120 * mm, 230 * mm, f"Válido hasta: {quote.expires_on.strftime('%d/%m/%Y')}")
    pdf.drawString(120 * mm, 225 * mm, f"Doctor: {quote.doctor_name}")


def _draw_items_table(pdf: canvas.Canvas, quote: Quote, catalog: list[Any]) -> float:
    data = [["Descripción", "Cant.", "Precio unitario", "Total"]]
    for item in quote.items:
        currency, _matched = resolve_item_currency(item.description, catalog, settings.home_currency)
        data.append(
            [
                item.description,
                str(item.quantity),
                format_money(item.unit_price_cents, currency),
                format_money(item.total_price_cents, currency),
            ]
        )

    table = Table(data, colWidths=[95 * mm, 15 * mm, 30 * mm, 30 * mm])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ]
        )
    )
    _width, height = table.wrapOn(pdf, 170 * mm, 150 * mm)
    table.drawOn(pdf, 20 * mm, 215 * mm - height)
    return 215 * mm - height


def _draw_totals(pdf: canvas.Canvas, quote: Quote, catalog: list[Any], y: float) -> float:
    totals = calculate_quote_totals(quote.items, catalog, settings.home_currency)
    pdf.setFont("Helvetica-Bold", 11)
    for currency, amount in totals.by_currency.items():
        if amount <= 0 and currency != settings.home_currency:
            continue
        pdf.drawRightString(160 * mm, y, f"Total {currency}")
        pdf.drawRightString(190 * mm, y, format_money(amount, currency))
        y -= 6 * mm
    return y


def _draw_notes(pdf: canvas.Canvas, quote: Quote, y: float) -> float:
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(20 * mm, y, "Notas")
    pdf.setFont("Helvetica", 9)
    lines = (quote.notes or "Sin notas adicionales.").splitlines()[:12]
    for line in lines:
        y -= 10
        pdf.drawString(20 * mm, y, line[:110])
    return y - 15


def build_quote_pdf(quote: Quote, catalog: Iterable[Any]) -> bytes:
    catalog = list(catalog)
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _draw_header(pdf, "Presupuesto")
    _draw_patient_block(pdf, quote)
    _draw_quote_meta(pdf, quote)
    table_bottom = _draw_items_table(pdf, quote, catalog)
    next_y = _draw_totals(pdf, quote, catalog, min(table_bottom - 10 * mm, 110 * mm))
    next_y = _draw_notes(pdf, quote, next_y - 5 * mm)
    pdf.setFont("Helvetica-Oblique", 8)
    pdf.drawString(20 * mm, max(next_y, 20 * mm), DISCLAIMER_TEXT)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
