import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from caisse.export.config import ReportDocument, format_cell

HEADER_BG = colors.HexColor("#1F4E79")
ALT_ROW_BG = colors.HexColor("#F2F2F2")
TOTAL_BG = colors.HexColor("#D9E1F2")


class _NumberedCanvas(canvas.Canvas):
    """Canvas that knows the page count when drawing each page's footer."""

    def __init__(self, *args, footer_lines=(), watermark=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self._footer_lines = footer_lines
        self._watermark = watermark

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._decorate(page_count)
            super().showPage()
        super().save()

    def _decorate(self, page_count: int) -> None:
        width, height = self._pagesize
        if self._watermark:
            self.saveState()
            self.setFont("Helvetica-Bold", 90)
            self.setFillColor(colors.lightgrey, alpha=0.25)
            self.translate(width / 2, height / 2)
            self.rotate(35)
            self.drawCentredString(0, 0, self._watermark)
            self.restoreState()

        self.saveState()
        self.setFont("Helvetica", 7)
        self.setFillColor(colors.grey)
        y = 8 * mm + 3.2 * mm * (len(self._footer_lines) - 1)
        for line in self._footer_lines:
            self.drawCentredString(width / 2, y, line)
            y -= 3.2 * mm
        self.setFont("Helvetica", 8)
        self.drawRightString(
            width - 12 * mm, 8 * mm, f"Page {self._pageNumber} / {page_count}"
        )
        self.restoreState()


def _styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "header": ParagraphStyle(
            "OfficialHeader", parent=base["Normal"], fontName="Helvetica-Bold",
            fontSize=9, leading=11,
        ),
        "title": ParagraphStyle(
            "ReportTitle", parent=base["Heading1"], fontSize=15, alignment=1,
            spaceBefore=6, spaceAfter=4,
        ),
        "subtitle": ParagraphStyle(
            "ReportSubtitle", parent=base["Normal"], fontSize=9, alignment=1,
        ),
        "meta": ParagraphStyle(
            "ReportMeta", parent=base["Normal"], fontSize=7, alignment=2,
            textColor=colors.grey,
        ),
        "cell": ParagraphStyle(
            "Cell", parent=base["Normal"], fontSize=8, leading=10,
        ),
        "signature_title": ParagraphStyle(
            "SignatureTitle", parent=base["Normal"], fontName="Helvetica-Bold",
            fontSize=9, alignment=1,
        ),
        "signature_name": ParagraphStyle(
            "SignatureName", parent=base["Normal"], fontName="Helvetica-Bold",
            fontSize=9, alignment=1,
        ),
        "signature_grade": ParagraphStyle(
            "SignatureGrade", parent=base["Normal"], fontSize=8, alignment=1,
        ),
    }


def _table(doc: ReportDocument, available_width: float, styles: dict) -> Table:
    columns = doc.columns
    data = [[c.header for c in columns]]
    for row in doc.rows:
        data.append([
            Paragraph(escape(format_cell(row.get(c.key), c.type)), styles["cell"])
            if c.type == "text"
            else format_cell(row.get(c.key), c.type)
            for c in columns
        ])
    if doc.totals:
        total_row = ["" for _ in columns]
        total_row[0] = "TOTAL"
        for i, c in enumerate(columns):
            if c.key in doc.totals:
                total_row[i] = format_cell(doc.totals[c.key], c.type)
        data.append(total_row)

    total_width = sum(c.width for c in columns)
    col_widths = [available_width * c.width / total_width for c in columns]
    table = Table(data, colWidths=col_widths, repeatRows=1)

    style = [
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ]
    for i, c in enumerate(columns):
        if c.type in ("currency", "number"):
            style.append(("ALIGN", (i, 1), (i, -1), "RIGHT"))
    for r in range(2, len(doc.rows) + 1, 2):
        style.append(("BACKGROUND", (0, r), (-1, r), ALT_ROW_BG))
    if doc.totals:
        style.append(("BACKGROUND", (0, -1), (-1, -1), TOTAL_BG))
        style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
    table.setStyle(TableStyle(style))
    return table


def _signatures(doc: ReportDocument, available_width: float, styles: dict) -> Table:
    cells = []
    for block in doc.signatures:
        lines = [Paragraph(escape(block.title), styles["signature_title"]), Spacer(1, 14 * mm)]
        if block.name:
            lines.append(Paragraph(escape(block.name.upper()), styles["signature_name"]))
        if block.grade:
            lines.append(Paragraph(escape(block.grade), styles["signature_grade"]))
        cells.append(lines)
    width = available_width / len(cells)
    table = Table([cells], colWidths=[width] * len(cells))
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return table


def render_pdf(doc: ReportDocument) -> bytes:
    """Render a report as an A4 landscape PDF and return its bytes."""
    buffer = io.BytesIO()
    footer_space = 10 * mm + 3.2 * mm * len(doc.footer_lines)
    template = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=12 * mm,
        bottomMargin=footer_space,
        title=doc.title,
    )
    styles = _styles()

    elements = [Paragraph(escape(line), styles["header"]) for line in doc.header_lines]
    elements.append(Spacer(1, 4 * mm))
    elements.append(Paragraph(escape(doc.title), styles["title"]))
    if doc.subtitle:
        elements.append(Paragraph(escape(doc.subtitle), styles["subtitle"]))
    elements.append(Paragraph(
        f"Généré le {doc.generated_at:%d/%m/%Y à %H:%M}", styles["meta"]
    ))
    elements.append(Spacer(1, 4 * mm))
    elements.append(_table(doc, template.width, styles))
    if doc.signatures:
        elements.append(Spacer(1, 10 * mm))
        elements.append(_signatures(doc, template.width, styles))

    template.build(
        elements,
        canvasmaker=lambda *args, **kwargs: _NumberedCanvas(
            *args, footer_lines=doc.footer_lines, watermark=doc.watermark, **kwargs
        ),
    )
    return buffer.getvalue()
