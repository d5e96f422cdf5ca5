"""
D3 Render options

Output format selection and page setup for one render pass.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple

from reportlab.lib.pagesizes import A4, landscape as to_landscape, legal, letter

from core.config import settings
from core.exceptions import RenderError

PAGE_SIZES = {
    "A4": A4,
    "LETTER": letter,
    "LEGAL": legal,
}

OUTPUT_FORMATS = ("pdf", "html")

_TEXT_FIELDS = ("output_format", "page_size")
_FLAG_FIELDS = ("landscape", "repeat_table_header")
_LENGTH_FIELDS = ("margin_top", "margin_bottom", "margin_left", "margin_right", "font_size", "line_height")


@dataclass
class RenderOptions:
    """Configuration options for rendering; lengths are in points"""

    output_format: str = "pdf"
    page_size: str = "A4"
    landscape: bool = False
    margin_top: float = 36.0
    margin_bottom: float = 36.0
    margin_left: float = 36.0
    margin_right: float = 36.0
    font_size: float = 9.0
    line_height: float = 14.0
    title: Optional[str] = None
    repeat_table_header: bool = True

    @classmethod
    def defaults(cls, **overrides) -> "RenderOptions":
        """Options seeded from settings"""
        values = {"output_format": settings.default_output_format, "page_size": settings.default_page_size}
        values.update(overrides)
        return cls.from_dict(values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenderOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise RenderError(f"Unknown render options: {', '.join(unknown)}", options=unknown)
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def page_dimensions(self) -> Tuple[float, float]:
        size = PAGE_SIZES[self.page_size.upper()]
        return to_landscape(size) if self.landscape else size

    @property
    def printable_width(self) -> float:
        return self.page_dimensions()[0] - self.margin_left - self.margin_right

    @property
    def printable_height(self) -> float:
        return self.page_dimensions()[1] - self.margin_top - self.margin_bottom

    def _check_types(self) -> None:
        for name in _TEXT_FIELDS:
            if not isinstance(getattr(self, name), str):
                raise RenderError(f"Render option {name} must be a string", option=name)
        if self.title is not None and not isinstance(self.title, str):
            raise RenderError("Render option title must be a string", option="title")
        for name in _FLAG_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise RenderError(f"Render option {name} must be true or false", option=name)
        for name in _LENGTH_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RenderError(f"Render option {name} must be a number", option=name)

    def validate(self) -> None:
        """Raise RenderError for settings no backend can honour"""
        self._check_types()
        if self.output_format.lower() not in OUTPUT_FORMATS:
            raise RenderError(
                f"Unsupported output format: {self.output_format}",
                output_format=self.output_format,
                supported=list(OUTPUT_FORMATS),
            )
        if self.page_size.upper() not in PAGE_SIZES:
            raise RenderError(
                f"Unsupported page size: {self.page_size}",
                page_size=self.page_size,
                supported=sorted(PAGE_SIZES),
            )
        if min(self.margin_top, self.margin_bottom, self.margin_left, self.margin_right) < 0:
            raise RenderError("Margins must not be negative")
        if self.font_size <= 0 or self.line_height < self.font_size:
            raise RenderError("line_height must be at least font_size and font_size positive")
        # a repeated table header and the row that follows it share one page
        lines_needed = 2 if self.repeat_table_header else 1
        if self.printable_width <= 0 or self.printable_height < lines_needed * self.line_height:
            raise RenderError(
                "Margins leave no room for content on the page",
                page_size=self.page_size,
                printable_height=self.printable_height,
                lines_needed=lines_needed,
            )
