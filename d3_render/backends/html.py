"""
HTML backend

Each page becomes a ``<section>``; finished pages are written to the sink
immediately so large reports never sit in memory.
"""

from typing import BinaryIO, List, Optional, Sequence

from jinja2 import DictLoader, Environment

from d1_design.models import TableElement

from ..options import RenderOptions
from .base import RenderBackend, parse_width

TEMPLATES = {
    "document_start.html": """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font-family: Helvetica, Arial, sans-serif; font-size: {{ font_size }}pt; }
  section.page { width: {{ width }}pt; min-height: {{ height }}pt; padding: {{ margin_top }}pt {{ margin_right }}pt {{ margin_bottom }}pt {{ margin_left }}pt; page-break-after: always; }
  p.line { margin: 0; line-height: {{ line_height }}pt; white-space: pre-wrap; }
  table { border-collapse: collapse; table-layout: fixed; }
  td, th { line-height: {{ line_height }}pt; padding: 0 2pt; overflow: hidden; white-space: nowrap; text-align: left; }
  th { border-bottom: 0.5pt solid #000; }
  footer { text-align: right; font-size: smaller; }
</style>
</head>
<body>
""",
    "page_start.html": '<section class="page" id="page-{{ page_number }}">\n',
    "text.html": '<p class="line">{{ line }}</p>\n',
    "table_start.html": '<table class="report-table" data-name="{{ name }}" style="width: {{ width }}pt">\n',
    "row.html": "<tr>{% for cell in cells %}<{{ tag }}>{{ cell }}</{{ tag }}>{% endfor %}</tr>\n",
    "page_end.html": "<footer>Page {{ page_number }}</footer>\n</section>\n",
    "document_end.html": "</body>\n</html>\n",
}

_environment = Environment(loader=DictLoader(TEMPLATES), autoescape=True, keep_trailing_newline=True)


class HTMLBackend(RenderBackend):
    format_name = "html"
    media_type = "text/html; charset=utf-8"
    file_extension = ".html"

    def __init__(self, sink: BinaryIO, options: RenderOptions):
        super().__init__(sink, options)
        self._page: List[str] = []
        self._open_table: Optional[str] = None

    def _render(self, template: str, **context) -> str:
        return _environment.get_template(template).render(**context)

    def _write(self, fragment: str) -> None:
        self.sink.write(fragment.encode("utf-8"))

    def _close_table(self) -> None:
        if self._open_table is not None:
            self._page.append("</table>\n")
            self._open_table = None

    def begin_document(self, title: str) -> None:
        width, height = self.options.page_dimensions()
        self._write(
            self._render(
                "document_start.html",
                title=title,
                width=width - self.options.margin_left - self.options.margin_right,
                height=height - self.options.margin_top - self.options.margin_bottom,
                margin_top=self.options.margin_top,
                margin_bottom=self.options.margin_bottom,
                margin_left=self.options.margin_left,
                margin_right=self.options.margin_right,
                font_size=self.options.font_size,
                line_height=self.options.line_height,
            )
        )

    def begin_page(self, page_number: int) -> None:
        self._page = [self._render("page_start.html", page_number=page_number)]

    def draw_text(self, line: str, top: float) -> None:
        self._close_table()
        self._page.append(self._render("text.html", line=line))

    def draw_table_row(self, table: TableElement, cells: Sequence[str], top: float, header: bool = False) -> None:
        if self._open_table != table.name:
            self._close_table()
            self._page.append(
                self._render(
                    "table_start.html",
                    name=table.name,
                    width=parse_width(table.width, self.options.printable_width),
                )
            )
            self._open_table = table.name
        self._page.append(self._render("row.html", cells=list(cells), tag="th" if header else "td"))

    def end_page(self, page_number: int) -> None:
        self._close_table()
        self._page.append(self._render("page_end.html", page_number=page_number))
        self._write("".join(self._page))
        self._page = []

    def end_document(self) -> None:
        self._write(self._render("document_end.html"))
        flush = getattr(self.sink, "flush", None)
        if callable(flush):
            flush()
