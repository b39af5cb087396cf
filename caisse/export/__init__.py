from caisse.export.config import ExportColumn, ReportDocument
from caisse.export.excel import render_xlsx
from caisse.export.pdf import render_pdf

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

RENDERERS = {
    "pdf": render_pdf,
    "xlsx": render_xlsx,
}

__all__ = [
    "ExportColumn",
    "MEDIA_TYPES",
    "RENDERERS",
    "ReportDocument",
    "render_pdf",
    "render_xlsx",
]
