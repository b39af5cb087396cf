"""Spreadsheet rendering of report documents.

Currency cells hold raw numbers with a number format so the sheet can
still be summed; everything else is written as displayed.
"""

import io
from datetime import date, datetime
from decimal import Decimal

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from caisse.export.config import ReportDocument, format_cell

CURRENCY_FORMAT = '#,##0.00 "FC"'
DATE_FORMAT = "DD/MM/YYYY"

_HEADER_FILL = PatternFill("solid", fgColor="1F4E79")
_TOTAL_FILL = PatternFill("solid", fgColor="D9E1F2")
_THIN = Side(style="thin", color="000000")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def _cell_value(value, column_type: str):
    if value is None:
        return None
    if column_type == "currency":
        return float(value) if isinstance(value, Decimal) else value
    if column_type == "date" and isinstance(value, (date, datetime)):
        return value
    if column_type == "number":
        return value
    return format_cell(value, column_type)


class ReportWorkbookWriter:
    """Lays a ReportDocument out on a single worksheet."""

    def __init__(self, doc: ReportDocument) -> None:
        self.doc = doc
        self.wb = openpyxl.Workbook()
        self.ws = self.wb.active
        self.ws.title = doc.title[:31]
        self.row = 1

    def _merged_line(self, text: str, font: Font, align: str = "left") -> None:
        last_col = max(len(self.doc.columns), 1)
        self.ws.merge_cells(
            start_row=self.row, start_column=1, end_row=self.row, end_column=last_col
        )
        cell = self.ws.cell(row=self.row, column=1, value=text)
        cell.font = font
        cell.alignment = Alignment(horizontal=align)
        self.row += 1

    def _write_heading(self) -> None:
        for line in self.doc.header_lines:
            self._merged_line(line, Font(bold=True, size=10))
        self.row += 1
        self._merged_line(self.doc.title, Font(bold=True, size=14), "center")
        if self.doc.subtitle:
            self._merged_line(self.doc.subtitle, Font(italic=True, size=10), "center")
        self._merged_line(
            f"Généré le {self.doc.generated_at:%d/%m/%Y à %H:%M}",
            Font(size=8, color="808080"),
            "right",
        )
        self.row += 1

    def _write_table(self) -> None:
        columns = self.doc.columns
        for col_idx, column in enumerate(columns, 1):
            cell = self.ws.cell(row=self.row, column=col_idx, value=column.header)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = _HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = _BORDER
            self.ws.column_dimensions[get_column_letter(col_idx)].width = column.width
        self.ws.freeze_panes = self.ws.cell(row=self.row + 1, column=1)
        self.row += 1

        for data in self.doc.rows:
            for col_idx, column in enumerate(columns, 1):
                cell = self.ws.cell(
                    row=self.row,
                    column=col_idx,
                    value=_cell_value(data.get(column.key), column.type),
                )
                cell.border = _BORDER
                if column.type == "currency":
                    cell.number_format = CURRENCY_FORMAT
                elif column.type == "date":
                    cell.number_format = DATE_FORMAT
            self.row += 1

        if self.doc.totals:
            for col_idx, column in enumerate(columns, 1):
                value = self.doc.totals.get(column.key)
                if col_idx == 1 and value is None:
                    value = "TOTAL"
                cell = self.ws.cell(
                    row=self.row, column=col_idx, value=_cell_value(value, column.type)
                )
                cell.font = Font(bold=True)
                cell.fill = _TOTAL_FILL
                cell.border = _BORDER
                if column.type == "currency":
                    cell.number_format = CURRENCY_FORMAT
            self.row += 1

    def _write_footer(self) -> None:
        self.row += 1
        for line in self.doc.footer_lines:
            self._merged_line(line, Font(size=8, color="808080"), "center")

    def render(self) -> bytes:
        self._write_heading()
        self._write_table()
        self._write_footer()
        buffer = io.BytesIO()
        self.wb.save(buffer)
        return buffer.getvalue()


def render_xlsx(doc: ReportDocument) -> bytes:
    """Render a report as an .xlsx workbook and return its bytes."""
    return ReportWorkbookWriter(doc).render()
