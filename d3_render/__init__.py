"""
D3 Render Module

Lays out a design page by page and writes it through a PDF or HTML backend.
"""

from .backends import BACKENDS, HTMLBackend, PDFBackend, RenderBackend, create_backend
from .engine import RenderEngine, RenderStats, cells_for_row, format_cell, header_cells, query_parameters
from .options import OUTPUT_FORMATS, PAGE_SIZES, RenderOptions
from .paginator import Paginator

__all__ = [
    "RenderEngine",
    "RenderStats",
    "RenderOptions",
    "Paginator",
    "RenderBackend",
    "PDFBackend",
    "HTMLBackend",
    "BACKENDS",
    "create_backend",
    "cells_for_row",
    "header_cells",
    "format_cell",
    "query_parameters",
    "OUTPUT_FORMATS",
    "PAGE_SIZES",
]
