"""
Main FastAPI application entry point
"""
import time

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from api.dependencies import close_report_service
from api.reports import router as reports_router
from core.config import settings
from core.exceptions import ReportEngineError
from core.logging import get_logger
from core.metrics import get_metrics_response, metrics

logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Request tracking middleware
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Track all HTTP requests for metrics"""
    start_time = time.time()

    # Skip metrics endpoint to avoid recursion
    if request.url.path == "/metrics":
        return await call_next(request)

    response = await call_next(request)

    duration = time.time() - start_time
    metrics.track_request(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
        duration=duration,
    )

    return response


# Exception handlers
@app.exception_handler(ReportEngineError)
async def report_engine_error_handler(request: Request, exc: ReportEngineError):
    """Handle structured ReportRunner errors"""
    logger.error(
        f"ReportRunner error - error_code: {exc.error_code}, entity: {exc.entity}, "
        f"details: {exc.details}, path: {request.url.path}"
    )
    metrics.track_error(exc.error_code, exc.domain)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error - path: {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
    )


# Custom metrics endpoint
@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics():
    """Expose metrics for Prometheus scraping"""
    if not settings.prometheus_enabled:
        return JSONResponse(status_code=404, content={"error": "Metrics not enabled"})

    metrics_data, content_type = get_metrics_response()
    return Response(content=metrics_data, media_type=content_type)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting ReportRunner version={settings.app_version} environment={settings.environment}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down ReportRunner")
    close_report_service()


app.include_router(reports_router, prefix="/api/v1/reports")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
