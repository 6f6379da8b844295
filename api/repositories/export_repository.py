"""Export storage: builds XLSX workbooks and keeps them for download."""

import asyncio
import io
import uuid
from collections.abc import Sequence
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from core.cache import get_cached_export, set_cached_export

# Excel rejects longer sheet titles
MAX_SHEET_TITLE_LENGTH = 31


def build_workbook(rows: Sequence[dict[str, Any]], sheet_name: str) -> bytes:
    """One sheet, headers taken from the first row's keys."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:MAX_SHEET_TITLE_LENGTH]

    if rows:
        headers = list(rows[0].keys())
        ws.append(headers)
        header_font = Font(bold=True)
        for col in range(1, len(headers) + 1):
            cell = ws.cell(row=1, column=col)
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center", vertical="center")

        for row in rows:
            ws.append([row.get(header) for header in headers])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class ExportRepository:
    """Generated files live in an in-process TTL cache, keyed by a random id."""

    async def store_export(
        self, rows: Sequence[dict[str, Any]], sheet_name: str
    ) -> str:
        content = await asyncio.to_thread(build_workbook, rows, sheet_name)
        export_id = str(uuid.uuid4())
        set_cached_export(export_id, content)
        return export_id

    def get_export(self, export_id: str) -> bytes | None:
        return get_cached_export(export_id)
