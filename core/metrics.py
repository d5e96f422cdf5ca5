"""
Core metrics collection for ReportRunner using Prometheus
"""
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, Info, generate_latest

from core.config import settings
from core.logging import get_logger

# Create a global registry for the application
REGISTRY = CollectorRegistry()

# Application info
app_info = Info("reportrunner_app", "ReportRunner application information", registry=REGISTRY)

# Request metrics
request_count = Counter(
    "reportrunner_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

request_duration = Histogram(
    "reportrunner_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# Render job metrics
render_jobs = Counter(
    "reportrunner_render_jobs_total",
    "Total render jobs by output format and final state",
    ["output_format", "status"],
    registry=REGISTRY,
)

render_duration = Histogram(
    "reportrunner_render_duration_seconds",
    "Render job duration in seconds",
    ["output_format"],
    buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
    registry=REGISTRY,
)

pages_rendered = Counter(
    "reportrunner_pages_rendered_total",
    "Total pages emitted",
    ["output_format"],
    registry=REGISTRY,
)

rows_rendered = Counter(
    "reportrunner_rows_rendered_total",
    "Total data rows rendered into tables",
    ["output_format"],
    registry=REGISTRY,
)

# Data source metrics
queries_executed = Counter(
    "reportrunner_queries_total",
    "Total dataset queries by outcome",
    ["driver", "status"],
    registry=REGISTRY,
)

# Error metrics
errors_total = Counter(
    "reportrunner_errors_total",
    "Total errors by type and domain",
    ["error_type", "domain"],
    registry=REGISTRY,
)


class MetricsCollector:
    """Helper class for collecting metrics"""

    def __init__(self):
        self.logger = get_logger("metrics")

        app_info.info({"version": settings.app_version, "environment": settings.environment})

    def track_request(self, method: str, endpoint: str, status: int, duration: float):
        """Track HTTP request metrics"""
        request_count.labels(method=method, endpoint=endpoint, status=str(status)).inc()
        request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_render_job(self, output_format: str, status: str, duration: float, pages: int = 0, rows: int = 0):
        """Track a finished render job"""
        render_jobs.labels(output_format=output_format, status=status).inc()
        render_duration.labels(output_format=output_format).observe(duration)
        if pages:
            pages_rendered.labels(output_format=output_format).inc(pages)
        if rows:
            rows_rendered.labels(output_format=output_format).inc(rows)

    def track_query(self, driver: str, status: str = "success"):
        """Track a dataset query outcome"""
        queries_executed.labels(driver=driver, status=status).inc()

    def track_error(self, error_type: str, domain: str):
        """Track application errors"""
        errors_total.labels(error_type=error_type, domain=domain).inc()

    def get_metrics(self) -> bytes:
        """Get current metrics in Prometheus format"""
        return generate_latest(REGISTRY)


# Global metrics collector instance
metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance"""
    return metrics


def get_metrics_response() -> tuple[bytes, str]:
    """Get metrics response for Prometheus endpoint"""
    return metrics.get_metrics(), CONTENT_TYPE_LATEST
