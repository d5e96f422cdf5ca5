"""
D2 Query Executor

Runs a dataset query against its data source and hands back a lazy row cursor.

Every DBAPI call for one cursor (connect, execute, fetch, close) runs on a
dedicated single-thread worker. The caller waits on each call with the
configured timeout; when it expires the driver connection is interrupted,
invalidated and released on the worker, and ``QueryTimeoutError`` is raised.
The cursor releases its connection on exhaustion, on error and on early close.
"""

import re
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.exceptions import (
    AuthError,
    DataSourceConnectionError,
    DataSourceError,
    QueryError,
    QueryTimeoutError,
)
from core.logging import get_logger
from core.metrics import metrics
from d1_design.models import DataSource

from .context import EngineContext
from .models import ColumnInfo, ResultRow

logger = get_logger(__name__, domain="d2_query")

_AUTH_FAILURE = re.compile(
    r"password|authenticat|access denied|login failed|not authori[sz]ed|invalid user|user name and password",
    re.IGNORECASE,
)


def classify_connect_error(exc: Exception, data_source: str, data_set: Optional[str] = None) -> DataSourceError:
    """Map a driver error raised while connecting to a connection or auth failure"""
    detail = str(getattr(exc, "orig", None) or exc)
    if _AUTH_FAILURE.search(detail):
        return AuthError(
            f"Data source {data_source} rejected the credentials: {detail}",
            data_source=data_source,
            data_set=data_set,
        )
    return DataSourceConnectionError(
        f"Cannot connect to data source {data_source}: {detail}",
        data_source=data_source,
        data_set=data_set,
    )


class QueryCursor:
    """
    Lazy, finite, non-restartable sequence of ``ResultRow``

    Use as a context manager (or call ``close``) to release the connection
    when stopping before the end; exhaustion releases it automatically.
    """

    def __init__(
        self,
        engine,
        data_source: str,
        data_set: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        fetch_size: int = 500,
        row_limit: Optional[int] = None,
    ):
        self._engine = engine
        self.data_source = data_source
        self.data_set = data_set
        self.timeout_seconds = timeout_seconds
        self.fetch_size = fetch_size
        self.row_limit = row_limit

        self.columns: Tuple[ColumnInfo, ...] = ()
        self.rows_read = 0

        self._connection = None
        self._result = None
        self._buffer: Deque[Tuple[Any, ...]] = deque()
        self._closed = False
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"query-{data_source}")

    @property
    def closed(self) -> bool:
        return self._closed

    # Worker-side operations

    def _connect(self) -> None:
        self._connection = self._engine.connect()

    def _execute(self, statement, parameters: Dict[str, Any]) -> None:
        self._result = self._connection.execute(statement, parameters)

    def _fetch(self, size: int):
        return self._result.fetchmany(size)

    def _release(self, invalidate: bool = False) -> None:
        try:
            if self._result is not None:
                self._result.close()
            if self._connection is not None:
                if invalidate:
                    self._connection.invalidate()
                self._connection.close()
        except SQLAlchemyError as e:
            logger.warning(f"Error releasing connection for data source {self.data_source}: {e}")
        finally:
            self._result = None
            self._connection = None

    # Caller-side plumbing

    def _call(self, operation: str, fn: Callable, *args):
        future = self._worker.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            self._abort()
            logger.error(
                f"{operation} on data source {self.data_source} timed out after {self.timeout_seconds}s "
                f"(data set {self.data_set})"
            )
            raise QueryTimeoutError(
                self.timeout_seconds,
                f"{operation} on data source {self.data_source}",
                data_source=self.data_source,
                data_set=self.data_set,
            ) from None

    def _interrupt(self) -> None:
        connection = self._connection
        if connection is None:
            return
        try:
            dbapi_connection = getattr(connection.connection, "dbapi_connection", None)
        except SQLAlchemyError as e:
            logger.warning(f"Cannot reach driver connection to interrupt: {e}")
            return

        for method in ("interrupt", "cancel"):
            handler = getattr(dbapi_connection, method, None)
            if callable(handler):
                try:
                    handler()
                except Exception as e:  # driver-specific error types
                    logger.warning(f"Driver {method}() failed for data source {self.data_source}: {e}")
                return

    def _abort(self) -> None:
        self._closed = True
        self._buffer.clear()
        self._interrupt()
        # Runs once the stuck call returns; the worker thread exits afterwards
        self._worker.submit(self._release, True)
        self._worker.shutdown(wait=False)

    def open(self, query_text: str, parameters: Optional[Dict[str, Any]] = None) -> "QueryCursor":
        """Connect and execute; on any failure the cursor is already closed when the error propagates"""
        try:
            self._call("connect", self._connect)
        except SQLAlchemyError as e:
            self.close()
            raise classify_connect_error(e, self.data_source, self.data_set) from e
        except QueryTimeoutError:
            raise
        except Exception:
            self.close()
            raise

        try:
            self._call("execute", self._execute, text(query_text), dict(parameters or {}))
        except SQLAlchemyError as e:
            self.close()
            detail = str(getattr(e, "orig", None) or e)
            raise QueryError(
                f"Query for data set {self.data_set or '?'} rejected: {detail}",
                data_source=self.data_source,
                data_set=self.data_set,
            ) from e
        except QueryTimeoutError:
            raise
        except Exception:
            self.close()
            raise

        if not self._result.returns_rows:
            self.close()
            raise QueryError(
                f"Query for data set {self.data_set or '?'} does not return rows",
                data_source=self.data_source,
                data_set=self.data_set,
            )

        self.columns = self._describe()
        return self

    def _describe(self) -> Tuple[ColumnInfo, ...]:
        names = list(self._result.keys())
        description = getattr(getattr(self._result, "cursor", None), "description", None) or ()
        columns = []
        for index, name in enumerate(names):
            type_code = None
            if index < len(description) and description[index][1] is not None:
                type_code = getattr(description[index][1], "__name__", None) or str(description[index][1])
            columns.append(ColumnInfo(name=str(name), type_code=type_code))
        return tuple(columns)

    def __iter__(self) -> "QueryCursor":
        return self

    def __next__(self) -> ResultRow:
        if self._closed:
            raise StopIteration

        if not self._buffer:
            batch_size = self.fetch_size
            if self.row_limit is not None:
                batch_size = min(batch_size, self.row_limit - self.rows_read)
            if batch_size <= 0:
                self.close()
                raise StopIteration

            try:
                batch = self._call("fetch", self._fetch, batch_size)
            except SQLAlchemyError as e:
                self.close()
                raise QueryError(
                    f"Fetching rows for data set {self.data_set or '?'} failed: {e}",
                    data_source=self.data_source,
                    data_set=self.data_set,
                ) from e
            except QueryTimeoutError:
                raise
            except Exception:
                self.close()
                raise

            if not batch:
                self.close()
                raise StopIteration
            self._buffer.extend(tuple(row) for row in batch)

        self.rows_read += 1
        return ResultRow(columns=self.columns, values=self._buffer.popleft())

    def close(self) -> None:
        """Release the connection; safe to call repeatedly"""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        try:
            self._worker.submit(self._release).result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            logger.warning(f"Releasing connection for data source {self.data_source} timed out")
        finally:
            self._worker.shutdown(wait=False)

    def __enter__(self) -> "QueryCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None


class QueryExecutor:
    """Opens query cursors for datasets"""

    def __init__(
        self,
        context: EngineContext,
        timeout_seconds: Optional[float] = None,
        fetch_size: Optional[int] = None,
    ):
        self.context = context
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.query_timeout_seconds
        self.fetch_size = fetch_size or settings.fetch_size

    def execute(
        self,
        data_source: DataSource,
        query_text: str,
        row_limit: Optional[int] = None,
        parameters: Optional[Dict[str, Any]] = None,
        data_set: Optional[str] = None,
    ) -> QueryCursor:
        """
        Execute a query and return its open cursor

        Args:
            data_source: Data source to connect to
            query_text: Query with optional ``:name`` placeholders
            row_limit: Maximum number of rows the cursor yields
            parameters: Bind values for the placeholders
            data_set: Dataset name, attached to errors and logs

        Returns:
            Open QueryCursor

        Raises:
            DataSourceConnectionError, AuthError, QueryError, QueryTimeoutError
        """
        try:
            engine = self.context.engine_for(data_source)
        except DataSourceError:
            metrics.track_query(data_source.driver, status="connection_error")
            raise

        cursor = QueryCursor(
            engine,
            data_source=data_source.name,
            data_set=data_set,
            timeout_seconds=self.timeout_seconds,
            fetch_size=self.fetch_size,
            row_limit=row_limit,
        )

        logger.debug(f"Executing query for data set {data_set} on {data_source.name}")
        try:
            cursor.open(query_text, parameters)
        except DataSourceError as e:
            metrics.track_query(data_source.driver, status=e.error_code.lower())
            raise

        metrics.track_query(data_source.driver)
        return cursor
