"""
D4 Render Task

Runs one render job: validate and seal the design, render it into a
temporary file next to the destination and publish it with an atomic rename.
A job that fails or is cancelled leaves nothing at the destination.
"""

import os
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Tuple

from core.exceptions import InvalidDesignError, JobCancelledError, RenderError, ReportEngineError
from core.logging import get_logger
from core.metrics import metrics
from d1_design.models import Design
from d2_query import EngineContext, QueryExecutor
from d3_render import RenderEngine, RenderOptions, RenderStats

logger = get_logger(__name__, domain="d4_jobs")


class JobState(str, Enum):
    CREATED = "created"
    DESIGN_LOADED = "design_loaded"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED: Set[Tuple[JobState, JobState]] = {
    (JobState.CREATED, JobState.DESIGN_LOADED),
    (JobState.DESIGN_LOADED, JobState.RENDERING),
    (JobState.RENDERING, JobState.COMPLETED),
    # failure from any active state
    (JobState.CREATED, JobState.FAILED),
    (JobState.DESIGN_LOADED, JobState.FAILED),
    (JobState.RENDERING, JobState.FAILED),
}

_TERMINAL: Set[JobState] = {JobState.COMPLETED, JobState.FAILED}


def is_terminal(state: JobState) -> bool:
    return state in _TERMINAL


def can_transition(src: JobState, dst: JobState) -> bool:
    if src in _TERMINAL:
        return False
    return (src, dst) in _ALLOWED


@dataclass
class RenderJob:
    """Everything one render needs; the design is treated as read-only"""

    design: Design
    destination: Path
    options: RenderOptions = field(default_factory=RenderOptions)
    parameters: Dict[str, Any] = field(default_factory=dict)
    timeout_seconds: Optional[float] = None
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.destination = Path(self.destination)


class RenderTask:
    """
    State machine for one render job

    CREATED -> DESIGN_LOADED -> RENDERING -> COMPLETED, with FAILED
    reachable from every non-terminal state. No retries.
    """

    def __init__(
        self,
        job: RenderJob,
        context: EngineContext,
        on_page: Optional[Callable[[int], None]] = None,
    ):
        self.job = job
        self.context = context
        self.on_page = on_page
        self.stats: Optional[RenderStats] = None
        self.error: Optional[ReportEngineError] = None
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None

        self._state = JobState.CREATED
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self.logger = logger.with_context(job_id=job.job_id, design=job.design.name)

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _transition(self, target: JobState) -> None:
        with self._state_lock:
            if not can_transition(self._state, target):
                raise RenderError(
                    f"Illegal job transition: {self._state.value} -> {target.value}",
                    entity=self.job.job_id,
                    state=self._state.value,
                )
            self.logger.debug(f"Job state {self._state.value} -> {target.value}")
            self._state = target

    def _fail(self, error: ReportEngineError) -> ReportEngineError:
        self.error = error
        self.finished_at = time.time()
        self._transition(JobState.FAILED)
        self.logger.error(f"Render job failed: {error.error_code}: {error.message}")
        metrics.track_render_job(
            self.job.options.output_format,
            "cancelled" if isinstance(error, JobCancelledError) else "failed",
            self.duration,
        )
        return error

    @property
    def duration(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self.finished_at or time.time()) - self.started_at

    def cancel(self) -> None:
        """Request cancellation; honoured before rendering starts and between pages"""
        self.logger.info("Cancellation requested")
        self._cancel.set()

    def load(self) -> Design:
        """Validate the design's references and seal it"""
        if self.started_at is None:
            self.started_at = time.time()

        design = self.job.design
        problems = design.validate_references()
        if problems:
            first = problems[0]
            raise self._fail(
                InvalidDesignError(
                    f"Design {design.name} has {len(problems)} dangling reference(s); "
                    f"{first['entity']} -> {first['reference']} ({first['problem']})",
                    problems=problems,
                    entity=first["entity"],
                )
            )

        design.seal()
        self._transition(JobState.DESIGN_LOADED)
        self.logger.info(f"Loaded design {design.name}")
        return design

    def run(self) -> RenderStats:
        """Render into a temporary file and publish it at the destination"""
        if self._state is not JobState.DESIGN_LOADED:
            error = RenderError(
                f"Render job {self.job.job_id} cannot run from state {self._state.value}",
                entity=self.job.job_id,
                state=self._state.value,
            )
            if is_terminal(self._state):
                raise error
            raise self._fail(error)

        if self.cancelled:
            raise self._fail(JobCancelledError(self.job.job_id))

        try:
            self.job.options.validate()
        except RenderError as e:
            raise self._fail(e) from e

        self._transition(JobState.RENDERING)

        destination = self.job.destination
        executor = QueryExecutor(self.context, timeout_seconds=self.job.timeout_seconds)
        engine = RenderEngine(executor)
        temp_path = None

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{destination.name}.", suffix=".part", dir=str(destination.parent)
            )
            with os.fdopen(fd, "wb") as sink:
                stats = engine.render(
                    self.job.design,
                    self.job.options,
                    sink,
                    parameters=self.job.parameters,
                    cancel_check=self._cancel.is_set,
                    on_page=self.on_page,
                )
                sink.flush()
                os.fsync(sink.fileno())
            os.replace(temp_path, destination)
            temp_path = None
        except JobCancelledError:
            raise self._fail(JobCancelledError(self.job.job_id)) from None
        except ReportEngineError as e:
            raise self._fail(e) from e
        except Exception as e:
            raise self._fail(
                RenderError(f"Render job {self.job.job_id} failed: {e}", entity=self.job.job_id)
            ) from e
        finally:
            if temp_path is not None:
                self._discard(temp_path)

        self.stats = stats
        self.finished_at = time.time()
        self._transition(JobState.COMPLETED)
        metrics.track_render_job(
            self.job.options.output_format,
            "completed",
            self.duration,
            pages=stats.pages,
            rows=stats.total_rows,
        )
        self.logger.info(f"Published {destination} ({stats.pages} pages, {stats.total_rows} rows)")
        return stats

    def _discard(self, path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file {path}: {e}")

    def execute(self) -> RenderStats:
        """load() followed by run()"""
        self.load()
        return self.run()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job.job_id,
            "design": self.job.design.name,
            "state": self._state.value,
            "destination": str(self.job.destination),
            "output_format": self.job.options.output_format,
            "duration_seconds": round(self.duration, 3),
            "stats": self.stats.to_dict() if self.stats else None,
            "error": self.error.to_dict() if self.error else None,
        }
