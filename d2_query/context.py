"""
D2 Engine context

Owns the SQLAlchemy engines (and therefore the connection pools) used to reach
data sources. One context is created explicitly by whoever runs render jobs and
closed when they are done; nothing here is process-global.
"""

import threading
from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from core.exceptions import ConfigurationError, DataSourceConnectionError
from core.logging import get_logger
from d1_design.models import DataSource

logger = get_logger(__name__, domain="d2_query")


class EngineContext:
    """Pooled engine registry keyed by effective connection URL"""

    def __init__(self, pool_size: int = 5, max_overflow: int = 5, echo: bool = False):
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def engine_for(self, data_source: DataSource) -> Engine:
        """Get (or lazily create) the engine for a data source"""
        url = data_source.connection_url()
        key = url.render_as_string(hide_password=False)

        with self._lock:
            if self._closed:
                raise ConfigurationError("Engine context is closed")

            engine = self._engines.get(key)
            if engine is None:
                engine = self._create_engine(data_source, url)
                self._engines[key] = engine
            return engine

    def _create_engine(self, data_source: DataSource, url) -> Engine:
        kwargs = {"echo": self.echo}
        if url.get_backend_name() == "sqlite":
            # Connections hop between per-cursor worker threads
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs.update(pool_size=self.pool_size, max_overflow=self.max_overflow, pool_pre_ping=True)

        try:
            engine = create_engine(url, **kwargs)
        except (ArgumentError, ImportError) as e:
            raise DataSourceConnectionError(
                f"Cannot load driver '{url.drivername}' for data source {data_source.name}: {e}",
                data_source=data_source.name,
                driver=url.drivername,
            ) from e

        logger.info(f"Created engine for data source {data_source.name} ({url.drivername})")
        return engine

    def engine_count(self) -> int:
        with self._lock:
            return len(self._engines)

    def close(self) -> None:
        """Dispose every pooled engine"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            engines, self._engines = list(self._engines.values()), {}

        for engine in engines:
            engine.dispose()
        logger.info(f"Engine context closed ({len(engines)} engines disposed)")

    def __enter__(self) -> "EngineContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None
