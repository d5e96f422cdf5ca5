"""
Reports API routes
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from core.logging import get_logger
from d3_render.backends import backend_class
from d4_jobs import ReportService

from .dependencies import get_report_service
from .schemas import DesignCreateRequest, DesignCreateResponse, DesignSummary, GenerateRequest, HealthResponse

logger = get_logger(__name__, domain="api")
router = APIRouter(tags=["reports"])


@router.post("/designs", response_model=DesignCreateResponse, status_code=status.HTTP_201_CREATED)
def create_design(request: DesignCreateRequest, service: ReportService = Depends(get_report_service)):
    """
    Store a design

    Duplicate names and dangling references are rejected with a
    VALIDATION_ERROR body.
    """
    design_ref = service.create_design(request.model_dump())
    return DesignCreateResponse(design_ref=design_ref, name=request.name)


@router.get("/designs", response_model=List[DesignSummary])
def list_designs(service: ReportService = Depends(get_report_service)):
    return service.list_designs()


@router.post("/generate")
async def generate_report(request: GenerateRequest, service: ReportService = Depends(get_report_service)):
    """
    Render a stored design and return the document

    Runs on the bounded render pool; the artifact also stays in the output
    directory.
    """
    options = request.options.model_dump(exclude_none=True)
    task, content = await service.generate_async(request.design_ref, options, request.parameters)

    media_type = backend_class(task.job.options.output_format).media_type
    logger.info(f"Served render job {task.job.job_id} ({len(content)} bytes)")
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "X-Job-Id": task.job.job_id,
            "X-Page-Count": str(task.stats.pages),
            "Content-Disposition": f'inline; filename="{task.job.destination.name}"',
        },
    )


@router.get("/health", response_model=HealthResponse)
def health(service: ReportService = Depends(get_report_service)):
    return service.health()
