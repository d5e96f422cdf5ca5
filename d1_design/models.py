"""
D1 Design Models

In-memory representation of a report design: data sources, datasets and the
layout body. Models are pydantic so the same classes validate builder input,
serialize to the design file and load it back.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from core.exceptions import DesignSealedError, ValidationError

ParameterValue = Union[bool, int, float, str, None]


class ConnectionProperties(BaseModel):
    """Recognized connection options for a data source"""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1, description="SQLAlchemy database URL")
    user: Optional[str] = Field(default=None, description="Login name, overrides the URL username")
    password: Optional[str] = Field(default=None, description="Password, overrides the URL password")
    driver_class: Optional[str] = Field(default=None, description="DBAPI module, e.g. 'fdb' or 'psycopg2'")


class DataSource(BaseModel):
    """Named connection descriptor"""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    driver: str = Field(..., min_length=1, description="SQLAlchemy dialect name, e.g. 'sqlite' or 'firebird'")
    properties: ConnectionProperties

    def connection_url(self) -> URL:
        """
        Build the effective connection URL

        The dialect comes from ``driver`` (plus ``driver_class`` when set);
        ``user``/``password`` replace whatever the URL carries.
        """
        try:
            url = make_url(self.properties.url)
        except ArgumentError as e:
            raise ValidationError(
                f"Invalid connection URL for data source {self.name}: {e}",
                field="properties.url",
                entity=self.name,
            ) from e

        drivername = self.driver
        if self.properties.driver_class:
            drivername = f"{self.driver}+{self.properties.driver_class}"
        url = url.set(drivername=drivername)

        if self.properties.user is not None:
            url = url.set(username=self.properties.user)
        if self.properties.password is not None:
            url = url.set(password=self.properties.password)
        return url


class DataSet(BaseModel):
    """Named query bound to exactly one data source"""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    data_source: str = Field(..., min_length=1, description="Name of the owning data source")
    query_text: str = Field(..., min_length=1)
    row_limit: Optional[int] = Field(default=None, ge=0)
    parameters: Dict[str, ParameterValue] = Field(default_factory=dict, description="Default bind values")


class LabelElement(BaseModel):
    """Static text"""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["label"] = "label"
    text: str
    name: Optional[str] = None


class TableElement(BaseModel):
    """Table rendering one row per result row of its dataset"""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["table"] = "table"
    name: str = Field(..., min_length=1)
    data_set: str = Field(..., min_length=1)
    column_count: int = Field(..., ge=1)
    width: str = "100%"
    show_header: bool = True


LayoutElement = Annotated[Union[LabelElement, TableElement], Field(discriminator="kind")]


class Design(BaseModel):
    """
    Root aggregate of a report design

    Sequences are append-only through the builder. A render task seals the
    design; after that every builder operation is refused.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="report", min_length=1)
    data_sources: List[DataSource] = Field(default_factory=list)
    data_sets: List[DataSet] = Field(default_factory=list)
    body: List[LayoutElement] = Field(default_factory=list)

    _sealed: bool = PrivateAttr(default=False)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> "Design":
        self._sealed = True
        return self

    def ensure_mutable(self) -> None:
        if self._sealed:
            raise DesignSealedError(self.name)

    def get_data_source(self, name: str) -> Optional[DataSource]:
        for data_source in self.data_sources:
            if data_source.name == name:
                return data_source
        return None

    def get_data_set(self, name: str) -> Optional[DataSet]:
        for data_set in self.data_sets:
            if data_set.name == name:
                return data_set
        return None

    def tables(self) -> List[TableElement]:
        return [element for element in self.body if isinstance(element, TableElement)]

    def validate_references(self) -> List[Dict[str, Any]]:
        """Return one problem entry per dangling reference (empty when the design is consistent)"""
        problems = []
        for data_set in self.data_sets:
            if self.get_data_source(data_set.data_source) is None:
                problems.append(
                    {
                        "entity": data_set.name,
                        "reference": data_set.data_source,
                        "problem": "unknown_data_source",
                    }
                )
        for table in self.tables():
            if self.get_data_set(table.data_set) is None:
                problems.append(
                    {
                        "entity": table.name,
                        "reference": table.data_set,
                        "problem": "unknown_data_set",
                    }
                )
        return problems

    def __eq__(self, other: Any) -> bool:
        # Sealing is runtime state, not part of the design
        if not isinstance(other, Design):
            return NotImplemented
        return self.model_dump() == other.model_dump()
