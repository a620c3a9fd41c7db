"""Excel timesheets and the JSON data backup."""

import io
import logging
import re
import uuid
from collections import defaultdict

from fastapi.encoders import jsonable_encoder
from openpyxl import Workbook
from openpyxl.drawing.image import Image
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.accommodations.models import Accommodation, AccommodationAssignment
from crewhours.closings.models import WeeklyClosing
from crewhours.closings.service import closing_records
from crewhours.closings.weeks import week_bounds
from crewhours.core.exceptions import ValidationError
from crewhours.core.timeutils import utcnow
from crewhours.invoicing.models import Invoice
from crewhours.profiles.models import Profile
from crewhours.projects.models import Project
from crewhours.projects.service import get_project
from crewhours.records.models import PerformanceRecord, RecordStatus

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

# Tables included in the backup, in restore order.
BACKUP_TABLES = (
    ("profiles", Profile),
    ("projects", Project),
    ("performance_records", PerformanceRecord),
    ("invoices", Invoice),
    ("accommodations", Accommodation),
    ("accommodation_assignments", AccommodationAssignment),
)

TIMESHEET_HEADERS = [
    "Datum",
    "Den",
    "Projekt",
    "Od",
    "Do",
    "Prestavka 1",
    "Prestavka 2",
    "Hodiny",
    "Poznamka",
]
WEEKDAYS = ["Po", "Ut", "St", "Št", "Pi", "So", "Ne"]

STAMP_LABEL = "AUFTRAGGEBER / ZADÁVATEĽ:"
# Size of the embedded company stamp in pixels.
STAMP_WIDTH = 150
STAMP_HEIGHT = 80

_SHEET_TITLE_INVALID = re.compile(r"[\[\]:*?/\\]")


# ---------------------------------------------------------------------------
# Excel timesheets
# ---------------------------------------------------------------------------


def sheet_title(name: str, taken: set[str]) -> str:
    """Worksheet title from a worker name: no forbidden characters, at most 31 chars, unique."""
    base = _SHEET_TITLE_INVALID.sub("", name).strip()[:31] or "Worker"
    title = base
    counter = 2
    while title.lower() in taken:
        suffix = f" ({counter})"
        title = base[: 31 - len(suffix)] + suffix
        counter += 1
    taken.add(title.lower())
    return title


def _fmt_time(value) -> str:
    return value.strftime("%H:%M") if value else ""


def _fmt_break(start, end) -> str:
    if start and end:
        return f"{_fmt_time(start)}-{_fmt_time(end)}"
    return ""


def _write_stamp(ws: Worksheet, row: int, stamp: bytes | None) -> None:
    """Client signature line with the company stamp placed beneath its label."""
    ws.cell(row=row, column=1, value=STAMP_LABEL).font = Font(bold=True)
    if stamp is None:
        return
    image = Image(io.BytesIO(stamp))
    image.width, image.height = STAMP_WIDTH, STAMP_HEIGHT
    ws.add_image(image, f"A{row + 1}")


def _write_worker_sheet(
    ws: Worksheet,
    full_name: str,
    week_label: str,
    records: list[PerformanceRecord],
    stamp: bytes | None = None,
) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="3B82F6", end_color="3B82F6", fill_type="solid")

    ws.cell(row=1, column=1, value=full_name).font = Font(bold=True, size=12)
    ws.cell(row=2, column=1, value=week_label)

    for col, header in enumerate(TIMESHEET_HEADERS, 1):
        cell = ws.cell(row=4, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    row_idx = 5
    for record in records:
        ws.cell(row=row_idx, column=1, value=record.date.strftime("%d.%m.%Y"))
        ws.cell(row=row_idx, column=2, value=WEEKDAYS[record.date.weekday()])
        ws.cell(row=row_idx, column=3, value=record.project.name if record.project else "")
        ws.cell(row=row_idx, column=4, value=_fmt_time(record.time_from))
        ws.cell(row=row_idx, column=5, value=_fmt_time(record.time_to))
        ws.cell(row=row_idx, column=6, value=_fmt_break(record.break_start, record.break_end))
        ws.cell(row=row_idx, column=7, value=_fmt_break(record.break2_start, record.break2_end))
        ws.cell(row=row_idx, column=8, value=record.total_hours)
        ws.cell(row=row_idx, column=9, value=record.note or "")
        row_idx += 1

    total_label = ws.cell(row=row_idx, column=7, value="Spolu")
    total_label.font = Font(bold=True)
    total = ws.cell(row=row_idx, column=8, value=round(sum(r.total_hours for r in records), 2))
    total.font = Font(bold=True)

    for col in ws.columns:
        max_length = 0
        col_letter = col[0].column_letter
        for cell in col:
            val = str(cell.value) if cell.value else ""
            max_length = max(max_length, len(val))
        ws.column_dimensions[col_letter].width = min(max_length + 2, 40)

    _write_stamp(ws, row_idx + 3, stamp)


def _workbook_bytes(wb: Workbook) -> bytes:
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


async def export_project_timesheet(
    db: AsyncSession,
    project_id: uuid.UUID,
    calendar_week: int,
    year: int,
    stamp: bytes | None = None,
) -> tuple[bytes, str]:
    """Approved hours of every worker on a project for one week, one sheet per worker."""
    project = await get_project(db, project_id)
    monday, sunday = week_bounds(calendar_week, year)

    result = await db.execute(
        select(PerformanceRecord)
        .where(
            PerformanceRecord.project_id == project_id,
            PerformanceRecord.deleted_at.is_(None),
            PerformanceRecord.status == RecordStatus.APPROVED,
            PerformanceRecord.date >= monday,
            PerformanceRecord.date <= sunday,
        )
        .order_by(PerformanceRecord.date, PerformanceRecord.time_from)
    )
    records = list(result.scalars().all())
    if not records:
        raise ValidationError(
            f"No approved hours on {project.name} in KW {calendar_week}/{year}."
        )

    by_worker: dict[uuid.UUID, list[PerformanceRecord]] = defaultdict(list)
    for record in records:
        by_worker[record.user_id].append(record)

    wb = Workbook()
    wb.remove(wb.active)
    taken: set[str] = set()
    week_label = f"{project.name} - KW {calendar_week}/{year}"
    workers = sorted(by_worker.values(), key=lambda recs: recs[0].user.full_name.lower())
    for worker_records in workers:
        full_name = worker_records[0].user.full_name
        ws = wb.create_sheet(sheet_title(full_name, taken))
        _write_worker_sheet(ws, full_name, week_label, worker_records, stamp)

    filename = f"Timesheet KW{calendar_week:02d} {year} {project.name}.xlsx"
    logger.info(
        "Timesheet for %s KW %d/%d exported with %d workers",
        project.name, calendar_week, year, len(by_worker),
    )
    return _workbook_bytes(wb), filename


async def export_closing_timesheet(
    db: AsyncSession, closing: WeeklyClosing, stamp: bytes | None = None
) -> tuple[bytes, str]:
    records = await closing_records(db, closing)
    full_name = closing.user.full_name if closing.user else ""

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title(full_name, set())
    _write_worker_sheet(
        ws, full_name, f"KW {closing.calendar_week}/{closing.year}", records, stamp
    )

    filename = f"Timesheet KW{closing.calendar_week:02d} {closing.year} {full_name}.xlsx"
    return _workbook_bytes(wb), filename


# ---------------------------------------------------------------------------
# JSON backup
# ---------------------------------------------------------------------------


def _row_to_dict(row) -> dict:
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


async def export_backup(db: AsyncSession) -> dict:
    """Snapshot of all live rows of the backed-up tables."""
    data = {}
    for name, model in BACKUP_TABLES:
        result = await db.execute(
            select(model).where(model.deleted_at.is_(None)).order_by(model.created_at)
        )
        data[name] = [_row_to_dict(row) for row in result.scalars().all()]

    logger.info(
        "Backup exported: %s",
        ", ".join(f"{name}={len(rows)}" for name, rows in data.items()),
    )
    return jsonable_encoder({
        "exported_at": utcnow(),
        "version": BACKUP_VERSION,
        "data": data,
    })
