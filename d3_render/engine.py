"""
D3 Layout/Render Engine

Walks the design body in order and turns it into positioned blocks:
labels become wrapped lines of text, tables become one header row plus one
row per result row. The paginator decides page breaks; the backend draws.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Sequence

from core.exceptions import InvalidDesignError, JobCancelledError, RenderError, ReportEngineError
from core.logging import get_logger
from d1_design.models import DataSet, Design, LabelElement, TableElement
from d2_query import ColumnInfo, QueryExecutor, ResultRow

from .backends import RenderBackend, create_backend
from .options import RenderOptions
from .paginator import Paginator

logger = get_logger(__name__, domain="d3_render")

_PLACEHOLDER = re.compile(r"(?<!:):([A-Za-z_][A-Za-z0-9_]*)")


def format_cell(value: Any) -> str:
    """Text shown for one cell value"""
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def cells_for_row(values: Sequence[Any], column_count: int) -> List[str]:
    """Exactly ``column_count`` cells: missing columns are empty, extra columns dropped"""
    cells = [format_cell(value) for value in list(values)[:column_count]]
    cells.extend([""] * (column_count - len(cells)))
    return cells


def header_cells(columns: Sequence[ColumnInfo], column_count: int) -> List[str]:
    return cells_for_row([column.name for column in columns], column_count)


def query_parameters(data_set: DataSet, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Bind values for a dataset query

    Runtime values win over dataset defaults, but only for names the dataset
    declares or the query text references.
    """
    values = dict(data_set.parameters)
    if overrides:
        referenced = set(_PLACEHOLDER.findall(data_set.query_text))
        for key, value in overrides.items():
            if key in values or key in referenced:
                values[key] = value
    return values


@dataclass
class RenderStats:
    pages: int = 0
    tables: Dict[str, int] = field(default_factory=dict)
    labels: int = 0

    @property
    def total_rows(self) -> int:
        return sum(self.tables.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": self.pages,
            "labels": self.labels,
            "tables": dict(self.tables),
            "total_rows": self.total_rows,
        }


class _RenderPass:
    """State of one render: paginator, backend and counters"""

    def __init__(
        self,
        engine: "RenderEngine",
        design: Design,
        options: RenderOptions,
        backend: RenderBackend,
        parameters: Optional[Dict[str, Any]],
        cancel_check: Optional[Callable[[], bool]],
        on_page: Optional[Callable[[int], None]],
    ):
        self.engine = engine
        self.design = design
        self.options = options
        self.backend = backend
        self.parameters = parameters
        self.cancel_check = cancel_check
        self.on_page = on_page
        self.paginator = Paginator(options.printable_height)
        self.stats = RenderStats()
        self.logger = logger.with_context(design=design.name)

    def check_cancelled(self) -> None:
        if self.cancel_check is not None and self.cancel_check():
            raise JobCancelledError(self.design.name)

    def new_page(self) -> None:
        self.check_cancelled()
        page_number = self.paginator.start_page()
        self.backend.begin_page(page_number)

    def finish_page(self) -> None:
        page_number = self.paginator.page_number
        self.backend.end_page(page_number)
        self.stats.pages = page_number
        self.logger.debug(f"Emitted page {page_number}")
        if self.on_page is not None:
            self.on_page(page_number)

    def break_page(self) -> None:
        self.finish_page()
        self.new_page()

    def place(self, height: float) -> float:
        if self.paginator.needs_break(height):
            self.break_page()
        return self.paginator.place(height)

    def run(self) -> RenderStats:
        self.backend.begin_document(self.options.title or self.design.name)
        self.new_page()
        for element in self.design.body:
            if isinstance(element, LabelElement):
                self.render_label(element)
            elif isinstance(element, TableElement):
                self.render_table(element)
            self.paginator.skip(self.options.line_height / 2)
        self.finish_page()
        self.backend.end_document()
        return self.stats

    def render_label(self, label: LabelElement) -> None:
        for line in self.backend.wrap_text(label.text):
            top = self.place(self.options.line_height)
            self.backend.draw_text(line, top)
        self.stats.labels += 1

    def render_table(self, table: TableElement) -> None:
        data_set = self.design.get_data_set(table.data_set)
        if data_set is None:
            raise InvalidDesignError(
                f"Table {table.name} references unknown data set {table.data_set}",
                problems=[{"entity": table.name, "reference": table.data_set, "problem": "unknown_data_set"}],
                entity=table.name,
            )
        data_source = self.design.get_data_source(data_set.data_source)
        if data_source is None:
            raise InvalidDesignError(
                f"Data set {data_set.name} references unknown data source {data_set.data_source}",
                problems=[
                    {"entity": data_set.name, "reference": data_set.data_source, "problem": "unknown_data_source"}
                ],
                entity=data_set.name,
            )

        cursor = self.engine.executor.execute(
            data_source,
            data_set.query_text,
            row_limit=data_set.row_limit,
            parameters=query_parameters(data_set, self.parameters),
            data_set=data_set.name,
        )

        rows = 0
        with cursor:
            header = header_cells(cursor.columns, table.column_count) if table.show_header else None
            if header is not None:
                self.draw_row(table, header, header=True)

            for row in cursor:
                self.draw_data_row(table, row, header)
                rows += 1

        self.stats.tables[table.name] = rows
        self.logger.info(f"Table {table.name} rendered {rows} rows", extra={"data_set": data_set.name})

    def draw_data_row(self, table: TableElement, row: ResultRow, header: Optional[List[str]]) -> None:
        height = self.options.line_height
        if self.paginator.needs_break(height):
            self.break_page()
            if header is not None and self.options.repeat_table_header:
                self.draw_row(table, header, header=True)
        top = self.paginator.place(height)
        self.backend.draw_table_row(table, cells_for_row(row.values, table.column_count), top)

    def draw_row(self, table: TableElement, cells: List[str], header: bool = False) -> None:
        top = self.place(self.options.line_height)
        self.backend.draw_table_row(table, cells, top, header=header)


class RenderEngine:
    """Renders designs through a query executor"""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def render(
        self,
        design: Design,
        options: RenderOptions,
        sink: BinaryIO,
        parameters: Optional[Dict[str, Any]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        on_page: Optional[Callable[[int], None]] = None,
        backend: Optional[RenderBackend] = None,
    ) -> RenderStats:
        """
        Render ``design`` into ``sink``

        Args:
            design: Design to render; it is read, never modified
            options: Output format and page setup
            sink: Writable binary file object receiving the document
            parameters: Runtime bind values for dataset queries
            cancel_check: Polled before every new page; True aborts the render
            on_page: Called with the page number after each page is emitted
            backend: Explicit backend instead of the one for ``options.output_format``

        Returns:
            RenderStats

        Raises:
            RenderError: unsupported options or a backend failure
            JobCancelledError: ``cancel_check`` returned True
            DataSourceError subclasses: the data source failed
        """
        options.validate()
        if backend is None:
            backend = create_backend(options, sink)

        logger.info(f"Rendering design {design.name} as {options.output_format}")
        render_pass = _RenderPass(self, design, options, backend, parameters, cancel_check, on_page)
        try:
            stats = render_pass.run()
        except ReportEngineError:
            raise
        except Exception as e:
            logger.error(f"Backend failure while rendering {design.name}: {e}", exc_info=True)
            raise RenderError(
                f"Rendering design {design.name} failed: {e}",
                entity=design.name,
                page=render_pass.paginator.page_number,
            ) from e

        logger.info(f"Rendered design {design.name}: {stats.pages} pages, {stats.total_rows} rows")
        return stats
