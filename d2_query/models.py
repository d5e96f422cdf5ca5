"""
D2 Query result types
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ColumnInfo:
    """Name and driver-reported type of one result column"""

    name: str
    type_code: Optional[str] = None


@dataclass(frozen=True)
class ResultRow:
    """One row of a dataset query"""

    columns: Tuple[ColumnInfo, ...]
    values: Tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> Any:
        return self.values[index]

    def get(self, name: str, default: Any = None) -> Any:
        for column, value in zip(self.columns, self.values):
            if column.name == name:
                return value
        return default

    def as_dict(self) -> Dict[str, Any]:
        return {column.name: value for column, value in zip(self.columns, self.values)}
