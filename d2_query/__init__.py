"""
D2 Query Module

Data source access for report datasets: pooled engines owned by an explicit
context and a timeout-bounded, lazily fetched row cursor.
"""

from .context import EngineContext
from .executor import QueryCursor, QueryExecutor, classify_connect_error
from .models import ColumnInfo, ResultRow

__all__ = [
    "EngineContext",
    "QueryExecutor",
    "QueryCursor",
    "classify_connect_error",
    "ColumnInfo",
    "ResultRow",
]
