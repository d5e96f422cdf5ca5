"""
PDF backend

Draws onto a reportlab canvas. The PDF cross-reference table sits at the
end of the file, so the document is written to the sink when it is saved.
"""

from typing import BinaryIO, Optional, Sequence

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from d1_design.models import TableElement

from ..options import RenderOptions
from .base import BODY_FONT, HEADER_FONT, RenderBackend

CELL_PADDING = 2.0


def clip_text(value: str, font: str, size: float, width: float) -> str:
    """Cut ``value`` so it fits in ``width`` points"""
    if stringWidth(value, font, size) <= width:
        return value
    while value and stringWidth(value + "…", font, size) > width:
        value = value[:-1]
    return value + "…" if value else ""


class PDFBackend(RenderBackend):
    format_name = "pdf"
    media_type = "application/pdf"
    file_extension = ".pdf"

    def __init__(self, sink: BinaryIO, options: RenderOptions):
        super().__init__(sink, options)
        self.page_width, self.page_height = options.page_dimensions()
        self._canvas: Optional[canvas.Canvas] = None

    def _baseline(self, top: float) -> float:
        # Offsets grow downwards from the top margin; PDF y grows upwards
        return self.page_height - self.options.margin_top - top - self.options.font_size

    def begin_document(self, title: str) -> None:
        self._canvas = canvas.Canvas(self.sink, pagesize=(self.page_width, self.page_height))
        self._canvas.setTitle(title)
        self._canvas.setCreator("ReportRunner")

    def begin_page(self, page_number: int) -> None:
        self._canvas.setFont(BODY_FONT, self.options.font_size)

    def draw_text(self, line: str, top: float) -> None:
        self._canvas.setFont(BODY_FONT, self.options.font_size)
        self._canvas.drawString(self.options.margin_left, self._baseline(top), line)

    def draw_table_row(self, table: TableElement, cells: Sequence[str], top: float, header: bool = False) -> None:
        font = HEADER_FONT if header else BODY_FONT
        width = self.column_width(table)
        baseline = self._baseline(top)
        self._canvas.setFont(font, self.options.font_size)

        x = self.options.margin_left
        for cell in cells:
            self._canvas.drawString(
                x + CELL_PADDING,
                baseline,
                clip_text(cell, font, self.options.font_size, width - 2 * CELL_PADDING),
            )
            x += width

        if header:
            rule = baseline - (self.options.line_height - self.options.font_size) / 2
            self._canvas.setLineWidth(0.5)
            self._canvas.line(self.options.margin_left, rule, self.options.margin_left + width * len(cells), rule)

    def end_page(self, page_number: int) -> None:
        self._canvas.setFont(BODY_FONT, max(self.options.font_size - 1, 6))
        self._canvas.drawRightString(
            self.page_width - self.options.margin_right,
            self.options.margin_bottom / 2,
            f"Page {page_number}",
        )
        self._canvas.showPage()

    def end_document(self) -> None:
        self._canvas.save()
        self._canvas = None
