"""
Output format backends
"""

from typing import BinaryIO, Dict, Type

from core.exceptions import RenderError

from ..options import OUTPUT_FORMATS, RenderOptions
from .base import RenderBackend
from .html import HTMLBackend
from .pdf import PDFBackend

BACKENDS: Dict[str, Type[RenderBackend]] = {
    PDFBackend.format_name: PDFBackend,
    HTMLBackend.format_name: HTMLBackend,
}


def backend_class(output_format: str) -> Type[RenderBackend]:
    try:
        return BACKENDS[output_format.lower()]
    except KeyError:
        raise RenderError(
            f"Unsupported output format: {output_format}",
            output_format=output_format,
            supported=list(OUTPUT_FORMATS),
        ) from None


def create_backend(options: RenderOptions, sink: BinaryIO) -> RenderBackend:
    """Instantiate the backend for ``options.output_format`` writing to ``sink``"""
    return backend_class(options.output_format)(sink, options)


__all__ = ["BACKENDS", "RenderBackend", "PDFBackend", "HTMLBackend", "backend_class", "create_backend"]
