"""
API dependencies
"""

from typing import Optional

from core.config import get_settings
from d1_design import DesignStore
from d2_query import EngineContext
from d4_jobs import ReportService

settings = get_settings()

# Report service singleton, created on first use and closed at shutdown
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """Get the report service (singleton pattern)"""
    global _report_service

    if _report_service is None:
        _report_service = ReportService(
            store=DesignStore(settings.designs_dir),
            context=EngineContext(pool_size=settings.data_source_pool_size),
            output_dir=settings.output_dir,
            max_workers=settings.max_concurrent_jobs,
        )

    return _report_service


def close_report_service():
    """Close the report service (for app shutdown)"""
    global _report_service

    if _report_service:
        _report_service.close()
        _report_service = None
