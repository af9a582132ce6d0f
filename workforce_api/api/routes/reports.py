from __future__ import annotations

import io
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from workforce_api.core.deps import get_report_service, require_reports_viewer
from workforce_api.services.reports import ReportService

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _csv_response(df: pd.DataFrame, filename_base: str) -> StreamingResponse:
    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    headers = {"Content-Disposition": f'attachment; filename="{filename_base}.csv"'}
    return StreamingResponse(buffer, media_type="text/csv", headers=headers)


def _pdf_bytes(df: pd.DataFrame, title: str) -> io.BytesIO:
    """Render the frame as a single landscape table."""
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import landscape, letter
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
    )
    styles = getSampleStyleSheet()
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    elements: list = [Paragraph(f"{title} ({stamp})", styles["Title"])]

    data = [list(df.columns)] + df.astype(str).values.tolist()
    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )
    elements.append(table)
    doc.build(elements)
    buffer.seek(0)
    return buffer


# PUBLIC_INTERFACE
def export_dataframe(df: pd.DataFrame, filename_base: str, export_format: str) -> StreamingResponse:
    """
    Stream a DataFrame as csv, xlsx (openpyxl) or pdf (reportlab).

    Raises:
        HTTPException: 400 for an unknown format.
    """
    export_format = (export_format or "csv").lower()
    if export_format == "csv":
        return _csv_response(df, filename_base)

    if export_format in ("xlsx", "excel"):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'}
        return StreamingResponse(buffer, media_type=XLSX_MEDIA_TYPE, headers=headers)

    if export_format == "pdf":
        buffer = _pdf_bytes(df, filename_base.replace("_", " ").title())
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.pdf"'}
        return StreamingResponse(buffer, media_type="application/pdf", headers=headers)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Unsupported export format '{export_format}'; use csv, xlsx or pdf",
    )


# PUBLIC_INTERFACE
@router.get(
    "/labor-hours",
    summary="Labor hours report",
    description=(
        "Scheduled hours per employee position for shifts starting between start_date and end_date "
        "(inclusive). Cancelled and unassigned shifts are excluded; breaks are subtracted."
    ),
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_reports_viewer)],
)
async def labor_hours_report(
    start_date: Optional[date] = Query(None, description="First day (UTC) to include"),
    end_date: Optional[date] = Query(None, description="Last day (UTC) to include"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
    service: ReportService = Depends(get_report_service),
):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if end_date else None
    df = await service.labor_hours(start=start, end=end)
    return export_dataframe(df, "labor_hours", format)
