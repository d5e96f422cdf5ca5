"""
Render backend interface

A backend turns layout events from the engine into bytes on a binary sink.
The engine decides where every block goes; backends only draw.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, List, Sequence

from reportlab.lib.utils import simpleSplit

from core.exceptions import RenderError
from d1_design.models import TableElement

from ..options import RenderOptions

BODY_FONT = "Helvetica"
HEADER_FONT = "Helvetica-Bold"


def parse_width(width: str, available: float) -> float:
    """Resolve a table width ("100%", "60%", "420") against the printable width"""
    value = (width or "100%").strip()
    try:
        if value.endswith("%"):
            resolved = available * float(value[:-1]) / 100.0
        else:
            resolved = float(value.removesuffix("pt"))
    except ValueError as e:
        raise RenderError(f"Invalid table width: {width}") from e
    return max(1.0, min(resolved, available))


class RenderBackend(ABC):
    """Base class for output format backends"""

    format_name: str = ""
    media_type: str = "application/octet-stream"
    file_extension: str = ""

    def __init__(self, sink: BinaryIO, options: RenderOptions):
        self.sink = sink
        self.options = options

    def wrap_text(self, text: str) -> List[str]:
        """Split text into lines fitting the printable width"""
        lines = []
        for paragraph in text.splitlines() or [""]:
            lines.extend(
                simpleSplit(paragraph, BODY_FONT, self.options.font_size, self.options.printable_width) or [""]
            )
        return lines

    def column_width(self, table: TableElement) -> float:
        return parse_width(table.width, self.options.printable_width) / table.column_count

    @abstractmethod
    def begin_document(self, title: str) -> None:
        pass

    @abstractmethod
    def begin_page(self, page_number: int) -> None:
        pass

    @abstractmethod
    def draw_text(self, line: str, top: float) -> None:
        pass

    @abstractmethod
    def draw_table_row(self, table: TableElement, cells: Sequence[str], top: float, header: bool = False) -> None:
        pass

    @abstractmethod
    def end_page(self, page_number: int) -> None:
        pass

    @abstractmethod
    def end_document(self) -> None:
        """Finish the document and flush everything to the sink"""
        pass
