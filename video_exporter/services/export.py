"""Spreadsheet export of the displayed video list."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from io import BytesIO

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer

HEADER = ("Original Title", "AI Title", "Duration", "Video Link", "Download Link")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ExportRow = tuple[str, str, str, str, str]


def format_duration(seconds: float | None) -> str:
    if seconds is None or seconds < 0:
        return ""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def export_rows(videos: Sequence[CanonicalVideo]) -> list[ExportRow]:
    return [
        (
            video.title,
            video.ai_title or "",
            format_duration(video.duration_seconds),
            video.playback_link,
            video.download_link or DOWNLOAD_UNAVAILABLE,
        )
        for video in videos
    ]


def export_filename(provider: str, container: ProviderContainer | None = None, *, now: datetime | None = None) -> str:
    """``vimeo_videos_12345_2024-07-16T12-00-00.xlsx`` or ``vimeo_all_videos_<ts>.xlsx``."""

    timestamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    if container is not None:
        identifier = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in container.identifier)
        return f"{provider}_videos_{identifier}_{timestamp}.xlsx"
    return f"{provider}_all_videos_{timestamp}.xlsx"


def build_workbook(rows: Sequence[ExportRow], *, sheet_title: str = "Videos") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    # Excel caps sheet names at 31 characters
    sheet.title = sheet_title[:31]
    sheet.append(HEADER)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row_index, row in enumerate(rows, start=2):
        for column_index, value in enumerate(row, start=1):
            cell = sheet.cell(row=row_index, column=column_index, value=ILLEGAL_CHARACTERS_RE.sub("", value))
            # stored as text so a leading "=" never becomes a formula
            cell.data_type = "s"

    for index, width in enumerate((50, 50, 12, 60, 60), start=1):
        sheet.column_dimensions[sheet.cell(row=1, column=index).column_letter].width = width

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
