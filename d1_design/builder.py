"""
D1 Design Builder

Programmatic, append-only construction of report designs. Every operation
validates names and references at the moment of the call so a design built
through this module is always internally consistent.
"""

import logging
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import DuplicateNameError, UnknownDataSetError, UnknownDataSourceError, ValidationError

from .models import (
    ConnectionProperties,
    DataSet,
    DataSource,
    Design,
    LabelElement,
    ParameterValue,
    TableElement,
)

logger = logging.getLogger(__name__)


def _model_error(exc: PydanticValidationError, entity: Optional[str]) -> ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return ValidationError(first.get("msg", str(exc)), field=field or None, entity=entity)


class DesignBuilder:
    """Builds up one design"""

    def __init__(self, design: Optional[Design] = None, name: str = "report"):
        self.design = design if design is not None else Design(name=name)

    def add_data_source(
        self,
        name: str,
        driver: str,
        url: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        driver_class: Optional[str] = None,
    ) -> DataSource:
        """Register a data source; names are unique within the design"""
        self.design.ensure_mutable()
        if self.design.get_data_source(name) is not None:
            raise DuplicateNameError("DataSource", name)

        try:
            data_source = DataSource(
                name=name,
                driver=driver,
                properties=ConnectionProperties(url=url, user=user, password=password, driver_class=driver_class),
            )
        except PydanticValidationError as e:
            raise _model_error(e, name) from e

        self.design.data_sources.append(data_source)
        logger.debug(f"Added data source {name} (driver={driver}) to design {self.design.name}")
        return data_source

    def add_data_set(
        self,
        name: str,
        data_source_name: str,
        query_text: str,
        row_limit: Optional[int] = None,
        parameters: Optional[Dict[str, ParameterValue]] = None,
    ) -> DataSet:
        """Register a dataset bound to an already registered data source"""
        self.design.ensure_mutable()
        if self.design.get_data_source(data_source_name) is None:
            raise UnknownDataSourceError(data_source_name, data_set=name)
        if self.design.get_data_set(name) is not None:
            raise DuplicateNameError("DataSet", name)

        try:
            data_set = DataSet(
                name=name,
                data_source=data_source_name,
                query_text=query_text,
                row_limit=row_limit,
                parameters=parameters or {},
            )
        except PydanticValidationError as e:
            raise _model_error(e, name) from e

        self.design.data_sets.append(data_set)
        logger.debug(f"Added data set {name} on {data_source_name} to design {self.design.name}")
        return data_set

    def add_label(self, text: str, name: Optional[str] = None) -> LabelElement:
        """Append a static label to the body"""
        self.design.ensure_mutable()
        label = LabelElement(text=text, name=name)
        self.design.body.append(label)
        return label

    def add_table(
        self,
        name: str,
        data_set_name: str,
        column_count: int,
        width: str = "100%",
        show_header: bool = True,
    ) -> TableElement:
        """Append a table bound to an already registered dataset"""
        self.design.ensure_mutable()
        if self.design.get_data_set(data_set_name) is None:
            raise UnknownDataSetError(data_set_name, table=name)
        if any(table.name == name for table in self.design.tables()):
            raise DuplicateNameError("Table", name)

        try:
            table = TableElement(
                name=name,
                data_set=data_set_name,
                column_count=column_count,
                width=width,
                show_header=show_header,
            )
        except PydanticValidationError as e:
            raise _model_error(e, name) from e

        self.design.body.append(table)
        logger.debug(f"Added table {name} ({column_count} columns) bound to {data_set_name}")
        return table

    def build(self) -> Design:
        return self.design


# Module-level operations working on a passed design


def new_design(name: str = "report") -> Design:
    """Create an empty design"""
    return Design(name=name)


def add_data_source(
    design: Design,
    name: str,
    driver: str,
    url: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    driver_class: Optional[str] = None,
) -> DataSource:
    return DesignBuilder(design).add_data_source(name, driver, url, user, password, driver_class)


def add_data_set(
    design: Design,
    name: str,
    data_source_name: str,
    query_text: str,
    row_limit: Optional[int] = None,
    parameters: Optional[Dict[str, ParameterValue]] = None,
) -> DataSet:
    return DesignBuilder(design).add_data_set(name, data_source_name, query_text, row_limit, parameters)


def add_label(design: Design, text: str, name: Optional[str] = None) -> LabelElement:
    return DesignBuilder(design).add_label(text, name)


def add_table(design: Design, name: str, data_set_name: str, column_count: int) -> TableElement:
    return DesignBuilder(design).add_table(name, data_set_name, column_count)


def build_sample_design(
    url: str,
    driver: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    driver_class: Optional[str] = None,
    query_text: str = "SELECT * FROM MOV_RECEPCAO WHERE PENDENTE > 0 ORDER BY DATA_ENTRADA DESC",
    row_limit: Optional[int] = 10,
    column_count: int = 8,
    title: str = "Pending receptions",
) -> Design:
    """
    Build the reception listing sample design

    Connection details and query text are supplied by the caller; only the
    element names and layout shape are fixed.

    Args:
        url: SQLAlchemy URL of the production database
        driver: Dialect name
        user: Login name
        password: Password
        driver_class: Optional DBAPI module
        query_text: Query feeding the table
        row_limit: Maximum rows to render
        column_count: Table width in columns
        title: Label rendered above the table

    Returns:
        The populated design
    """
    builder = DesignBuilder(name="recepcao-report")
    builder.add_data_source("FirebirdDS", driver, url, user, password, driver_class)
    builder.add_data_set("RecepcaoDataSet", "FirebirdDS", query_text, row_limit=row_limit)
    builder.add_label(title, name="title")
    builder.add_table("RecepcaoTable", "RecepcaoDataSet", column_count)
    return builder.build()
