"""Render stored compliance report snapshots to Excel, PDF, CSV and HTML."""

import csv
import html
import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle

logger = logging.getLogger(__name__)

BRAND_COLOR = "0F766E"

STATUS_LABELS = {
    "implemented": "Implemented",
    "partially_implemented": "Partially implemented",
    "not_implemented": "Not implemented",
    "not_applicable": "Not applicable",
}


def _pct(value) -> str:
    return f"{round(value or 0)}%"


def _framework_label(report_data: dict) -> str:
    framework = report_data.get("framework") or {}
    name = framework.get("display_name") or framework.get("name") or "Unknown framework"
    version = framework.get("version")
    return f"{name} {version}" if version else name


def _write_sheet(ws, headers: list[str], rows: list[list], header_font, header_fill, border, width: int = 22):
    for col, h in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=h)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = border
    for row_idx, row in enumerate(rows, 2):
        for col, value in enumerate(row, 1):
            ws.cell(row=row_idx, column=col, value=value).border = border
    for col in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = width


def export_report_to_excel(title: str, report_data: dict) -> bytes:
    wb = Workbook()

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color=BRAND_COLOR, end_color=BRAND_COLOR, fill_type="solid")
    border = Border(
        left=Side(style="thin"), right=Side(style="thin"),
        top=Side(style="thin"), bottom=Side(style="thin"),
    )
    summary = report_data.get("summary", {})

    ws = wb.active
    ws.title = "Summary"
    _write_sheet(ws, ["Metric", "Value"], [
        ["Report", title],
        ["Framework", _framework_label(report_data)],
        ["Compliance Score", round(summary.get("compliance_score", 0), 1)],
        ["Risk Level", summary.get("risk_level", "")],
        ["Implemented", summary.get("implemented_controls", 0)],
        ["Partially Implemented", summary.get("partially_implemented_controls", 0)],
        ["Not Implemented", summary.get("not_implemented_controls", 0)],
        ["Not Applicable", summary.get("not_applicable_controls", 0)],
        ["Total Controls", summary.get("total_controls", 0)],
    ], header_font, header_fill, border, width=30)

    _write_sheet(wb.create_sheet("Domains"), ["Domain", "Score", "Risk Level", "Implemented", "Partial", "Not Implemented", "N/A", "Total"], [
        [
            d.get("display_name") or d.get("domain_name", ""),
            round(d.get("compliance_score", 0), 1),
            d.get("risk_level", ""),
            d.get("implemented_controls", 0),
            d.get("partially_implemented_controls", 0),
            d.get("not_implemented_controls", 0),
            d.get("not_applicable_controls", 0),
            d.get("total_controls", 0),
        ]
        for d in report_data.get("domain_risk_levels", [])
    ], header_font, header_fill, border)

    _write_sheet(wb.create_sheet("Results"), ["Control", "Name", "Domain", "Status", "Evidence", "Comments"], [
        [
            r.get("control_identifier", ""), r.get("control_name", ""), r.get("domain_name", ""),
            STATUS_LABELS.get(r.get("status"), r.get("status", "")), r.get("evidence") or "", r.get("comments") or "",
        ]
        for r in report_data.get("detailed_results", [])
    ], header_font, header_fill, border)

    _write_sheet(wb.create_sheet("Recommendations"), ["Control", "Name", "Domain", "Priority", "Recommendation"], [
        [
            rec.get("control_identifier", ""), rec.get("control_name", ""), rec.get("domain_name", ""),
            rec.get("priority", ""), rec.get("recommendation", ""),
        ]
        for rec in report_data.get("recommendations", [])
    ], header_font, header_fill, border, width=28)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_report_to_csv(report_data: dict) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)

    writer.writerow(["Section", "Control", "Name", "Domain", "Status", "Priority", "Details"])

    for r in report_data.get("detailed_results", []):
        writer.writerow(["Result", r.get("control_identifier", ""), r.get("control_name", ""), r.get("domain_name", ""), r.get("status", ""), "", r.get("evidence") or ""])

    for rec in report_data.get("recommendations", []):
        writer.writerow(["Recommendation", rec.get("control_identifier", ""), rec.get("control_name", ""), rec.get("domain_name", ""), rec.get("status", ""), rec.get("priority", ""), rec.get("recommendation", "")])

    return buf.getvalue().encode("utf-8")


def export_report_to_pdf(title: str, report_data: dict) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, topMargin=0.5 * inch, bottomMargin=0.5 * inch)
    styles = getSampleStyleSheet()
    elements = []
    brand = colors.HexColor(f"#{BRAND_COLOR}")

    title_style = ParagraphStyle("CustomTitle", parent=styles["Title"], fontSize=18, textColor=brand)
    heading_style = ParagraphStyle("CustomHeading", parent=styles["Heading2"], textColor=brand)
    table_style = TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), brand),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F0FDFA")]),
    ])
    summary = report_data.get("summary", {})

    elements.append(Paragraph(html.escape(title), title_style))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"Framework: {html.escape(_framework_label(report_data))}", styles["Heading3"]))
    elements.append(Paragraph(f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}", styles["Normal"]))
    elements.append(Paragraph(
        f"Compliance Score: {_pct(summary.get('compliance_score'))} - Risk Level: {summary.get('risk_level', '')}",
        styles["Normal"],
    ))
    elements.append(Paragraph(
        f"Implemented {summary.get('implemented_controls', 0)}, partially implemented "
        f"{summary.get('partially_implemented_controls', 0)}, not implemented "
        f"{summary.get('not_implemented_controls', 0)}, not applicable "
        f"{summary.get('not_applicable_controls', 0)} of {summary.get('total_controls', 0)} controls",
        styles["Normal"],
    ))
    elements.append(Spacer(1, 20))

    elements.append(Paragraph("Domain Risk Levels", heading_style))
    elements.append(Spacer(1, 8))
    domain_data = [["Domain", "Score", "Risk", "Controls"]]
    for d in report_data.get("domain_risk_levels", []):
        domain_data.append([
            (d.get("display_name") or d.get("domain_name", ""))[:50],
            _pct(d.get("compliance_score")), d.get("risk_level", ""), str(d.get("total_controls", 0)),
        ])
    if len(domain_data) > 1:
        t = Table(domain_data, colWidths=[250, 70, 70, 60])
        t.setStyle(table_style)
        elements.append(t)
    elements.append(Spacer(1, 20))

    elements.append(Paragraph("Recommendations", heading_style))
    elements.append(Spacer(1, 8))
    rec_data = [["Control", "Recommendation", "Priority", "Domain"]]
    for rec in report_data.get("recommendations", []):
        rec_data.append([
            rec.get("control_identifier", ""), rec.get("recommendation", "")[:60],
            rec.get("priority", ""), rec.get("domain_name", "")[:20],
        ])
    if len(rec_data) > 1:
        t = Table(rec_data, colWidths=[60, 250, 50, 90])
        t.setStyle(table_style)
        elements.append(t)

    doc.build(elements)
    return buf.getvalue()


def export_report_to_html(title: str, report_data: dict) -> bytes:
    esc = html.escape
    summary = report_data.get("summary", {})

    domain_rows = "".join(
        f"<tr><td>{esc(d.get('display_name') or d.get('domain_name', ''))}</td>"
        f"<td>{_pct(d.get('compliance_score'))}</td><td>{esc(d.get('risk_level', ''))}</td>"
        f"<td>{d.get('total_controls', 0)}</td></tr>"
        for d in report_data.get("domain_risk_levels", [])
    )
    rec_rows = "".join(
        f"<tr><td>{esc(rec.get('control_identifier', ''))}</td><td>{esc(rec.get('recommendation', ''))}</td>"
        f"<td>{esc(rec.get('priority', ''))}</td><td>{esc(rec.get('domain_name', ''))}</td></tr>"
        for rec in report_data.get("recommendations", [])
    )

    document = f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>{esc(title)}</title></head>
<body>
<h1>{esc(title)}</h1>
<p>Framework: {esc(_framework_label(report_data))}</p>
<p>Compliance Score: {_pct(summary.get('compliance_score'))} &middot; Risk Level: {esc(summary.get('risk_level', ''))}</p>
<h2>Domain Risk Levels</h2>
<table><thead><tr><th>Domain</th><th>Score</th><th>Risk</th><th>Controls</th></tr></thead><tbody>{domain_rows}</tbody></table>
<h2>Recommendations</h2>
<table><thead><tr><th>Control</th><th>Recommendation</th><th>Priority</th><th>Domain</th></tr></thead><tbody>{rec_rows}</tbody></table>
</body>
</html>
"""
    return document.encode("utf-8")
