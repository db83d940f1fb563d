"""Fortnight payroll reports: detail rows, totals, and an Excel export of the detail."""
from io import BytesIO
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side

from planilla.coercion import to_date, to_int
from planilla.database import Gateway, get_gateway
from planilla.exceptions import GatewayError, translate_db_error

router = APIRouter(prefix="/report", tags=["reports"])

DETAIL_TYPES = ("DATE", "DATE", "INT", "SMALLINT", "INT", "INT")
TOTAL_TYPES = ("DATE", "DATE", "INT", "SMALLINT")
DEFAULT_START = 0
DEFAULT_LIMIT = 100

StartDateQuery = Annotated[Optional[str], Query(alias="startDate", description="YYYY-MM-DD")]
EndDateQuery = Annotated[Optional[str], Query(alias="endDate", description="YYYY-MM-DD")]
IDCardQuery = Annotated[Optional[str], Query(alias="IDCard")]
DepartmentIDQuery = Annotated[Optional[str], Query(alias="departmentID")]
StartRangeQuery = Annotated[Optional[str], Query(alias="startRange", description="Offset, default 0")]
LimitRangeQuery = Annotated[Optional[str], Query(alias="limitRange", description="Row limit, default 100")]


def _detail_args(start_date, end_date, id_card, department_id, start_range, limit_range) -> list:
    start = to_int(start_range, "startRange")
    limit = to_int(limit_range, "limitRange")
    return [
        to_date(start_date, "startDate"),
        to_date(end_date, "endDate"),
        to_int(id_card, "IDCard"),
        to_int(department_id, "departmentID"),
        start if start is not None else DEFAULT_START,
        limit if limit is not None else DEFAULT_LIMIT,
    ]


async def _fetch_detail(gateway: Gateway, args: list) -> List[Dict[str, Any]]:
    try:
        return await gateway.fetch("getquincenas", args, DETAIL_TYPES)
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting report detail")


@router.get("/detail")
async def get_report_detail(
    start_date: StartDateQuery = None,
    end_date: EndDateQuery = None,
    id_card: IDCardQuery = None,
    department_id: DepartmentIDQuery = None,
    start_range: StartRangeQuery = None,
    limit_range: LimitRangeQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Per-employee fortnight rows, filtered by date range, card ID and department, paginated."""
    args = _detail_args(start_date, end_date, id_card, department_id, start_range, limit_range)
    return await _fetch_detail(gateway, args)


@router.get("/total")
async def get_report_total(
    report_date: Annotated[Optional[str], Query(alias="date", description="YYYY-MM-DD")] = None,
    end_date: EndDateQuery = None,
    id_card: IDCardQuery = None,
    department_id: DepartmentIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    args = [
        to_date(report_date, "date"),
        to_date(end_date, "endDate"),
        to_int(id_card, "IDCard"),
        to_int(department_id, "departmentID"),
    ]
    try:
        return await gateway.fetch("getquincenastotal", args, TOTAL_TYPES)
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting report totals")


def _style_header(ws):
    thin = Side(style="thin")
    for row in ws.iter_rows(min_row=1, max_row=1):
        for cell in row:
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            cell.border = Border(top=thin, left=thin, right=thin, bottom=thin)


def _cell_value(v):
    # openpyxl rejects timezone-aware datetimes
    if isinstance(v, datetime) and v.tzinfo is not None:
        return v.replace(tzinfo=None)
    if isinstance(v, (list, tuple, dict)):
        return str(v)
    return v


def build_report_workbook(rows: List[Dict[str, Any]], title: str = "Detail") -> BytesIO:
    """One sheet, header row from the routine's column names."""
    wb = Workbook()
    ws = wb.active
    ws.title = title
    headers = list(rows[0].keys()) if rows else []
    if headers:
        ws.append(headers)
    for row in rows:
        ws.append([_cell_value(row.get(h)) for h in headers])
    _style_header(ws)
    for col in ws.columns:
        ws.column_dimensions[col[0].column_letter].width = 16
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


@router.get("/detail/export")
async def export_report_detail(
    start_date: StartDateQuery = None,
    end_date: EndDateQuery = None,
    id_card: IDCardQuery = None,
    department_id: DepartmentIDQuery = None,
    start_range: StartRangeQuery = None,
    limit_range: LimitRangeQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Same filters as /report/detail, as an .xlsx download."""
    args = _detail_args(start_date, end_date, id_card, department_id, start_range, limit_range)
    rows = await _fetch_detail(gateway, args)
    buf = build_report_workbook(rows)
    start, end = args[0], args[1]
    period = f"{start.isoformat() if start else 'all'}_{end.isoformat() if end else date.today().isoformat()}"
    filename = f"report_detail_{period}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
