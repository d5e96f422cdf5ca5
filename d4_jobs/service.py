"""
D4 Report service

The render invocation boundary used by the HTTP API and the CLI: create
designs from plain mappings, list them and render them to bytes.
"""

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from core.config import settings
from core.exceptions import ValidationError
from core.logging import get_logger
from d1_design import DesignBuilder, DesignStore
from d1_design.models import Design, LabelElement, TableElement
from d1_design.persistence import design_from_dict
from d2_query import EngineContext
from d3_render import RenderOptions
from d3_render.backends import backend_class

from .task import RenderJob, RenderTask

logger = get_logger(__name__, domain="d4_jobs")


def design_from_mapping(data: Mapping[str, Any]) -> Design:
    """
    Build a design from a plain mapping

    The mapping is validated as a whole first, then replayed through the
    builder so duplicates and dangling references fail exactly as they would
    when built programmatically.
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Design must be an object", field="design")

    parsed = design_from_dict(dict(data))
    builder = DesignBuilder(name=parsed.name)
    for data_source in parsed.data_sources:
        builder.add_data_source(
            data_source.name,
            data_source.driver,
            data_source.properties.url,
            data_source.properties.user,
            data_source.properties.password,
            data_source.properties.driver_class,
        )
    for data_set in parsed.data_sets:
        builder.add_data_set(
            data_set.name,
            data_set.data_source,
            data_set.query_text,
            row_limit=data_set.row_limit,
            parameters=data_set.parameters,
        )
    for element in parsed.body:
        if isinstance(element, LabelElement):
            builder.add_label(element.text, element.name)
        elif isinstance(element, TableElement):
            builder.add_table(
                element.name,
                element.data_set,
                element.column_count,
                width=element.width,
                show_header=element.show_header,
            )
    return builder.build()


class ReportService:
    """Creates, lists and renders stored designs"""

    def __init__(
        self,
        store: DesignStore,
        context: EngineContext,
        output_dir: Union[str, Path, None] = None,
        max_workers: Optional[int] = None,
    ):
        self.store = store
        self.context = context
        self.output_dir = Path(output_dir or settings.output_dir)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_concurrent_jobs,
            thread_name_prefix="render-job",
        )

    def create_design(self, data: Mapping[str, Any]) -> str:
        """Validate a design mapping and store it; returns its design reference"""
        design = design_from_mapping(data)
        return self.store.save(design)

    def list_designs(self) -> List[Dict[str, Any]]:
        return self.store.list()

    def render(
        self,
        design_ref: str,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        parameters: Optional[Dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> RenderTask:
        """Render a stored design to a file in the output directory"""
        design = self.store.get(design_ref)
        if options is None:
            render_options = RenderOptions.defaults()
        elif isinstance(options, RenderOptions):
            render_options = options
        else:
            render_options = RenderOptions.defaults(**dict(options))
        render_options.validate()

        job_id = uuid.uuid4().hex
        extension = backend_class(render_options.output_format).file_extension
        job = RenderJob(
            design=design,
            destination=self.output_dir / f"{design_ref}-{job_id[:12]}{extension}",
            options=render_options,
            parameters=dict(parameters or {}),
            timeout_seconds=timeout_seconds,
            job_id=job_id,
        )

        task = RenderTask(job, self.context)
        logger.info(f"Starting render job {job.job_id} for design {design_ref}")
        task.execute()
        return task

    def generate_document(
        self,
        design_ref: str,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[RenderTask, bytes]:
        """Render a stored design; returns the finished task and the document bytes"""
        task = self.render(design_ref, options, parameters)
        return task, task.job.destination.read_bytes()

    def generate(
        self,
        design_ref: str,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Render a stored design and return the document bytes"""
        return self.generate_document(design_ref, options, parameters)[1]

    async def generate_async(
        self,
        design_ref: str,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[RenderTask, bytes]:
        """generate_document on the bounded job pool, including the artifact read"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.generate_document, design_ref, options, parameters)

    def health(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "designs_dir": str(self.store.directory),
            "engines": self.context.engine_count(),
        }

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.context.close()
