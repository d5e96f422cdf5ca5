"""
Custom exceptions for ReportRunner
Provides structured error handling across the design, query, render and job domains
"""
from typing import Any, Dict, Optional


class ReportEngineError(Exception):
    """Base exception for all ReportRunner errors"""

    # package the error belongs to; the domain label of the error metrics
    domain = "core"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        entity: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.status_code = status_code
        self.entity = entity

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.error_code,
            "message": self.message,
            "entity": self.entity,
            "details": self.details,
        }


class ValidationError(ReportEngineError):
    """Raised when a design or request is malformed"""

    domain = "d1_design"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        entity: Optional[str] = None,
        status_code: int = 400,
        **details,
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **details} if field else details,
            status_code=status_code,
            entity=entity,
        )


class DuplicateNameError(ValidationError):
    """Raised when a named design element already exists"""

    def __init__(self, kind: str, name: str):
        super().__init__(
            message=f"{kind} already exists: {name}",
            entity=name,
            status_code=409,
            kind=kind,
            reason="duplicate_name",
        )


class UnknownDataSourceError(ValidationError):
    """Raised when a dataset references a data source that is not registered"""

    def __init__(self, data_source: str, data_set: Optional[str] = None):
        super().__init__(
            message=f"Unknown data source: {data_source}",
            entity=data_source,
            status_code=422,
            data_set=data_set,
            reason="unknown_data_source",
        )


class UnknownDataSetError(ValidationError):
    """Raised when a table references a dataset that is not registered"""

    def __init__(self, data_set: str, table: Optional[str] = None):
        super().__init__(
            message=f"Unknown data set: {data_set}",
            entity=data_set,
            status_code=422,
            table=table,
            reason="unknown_data_set",
        )


class InvalidDesignError(ValidationError):
    """Raised when a design fails validation before rendering"""

    def __init__(self, message: str, problems: Optional[list] = None, entity: Optional[str] = None):
        super().__init__(
            message=message,
            entity=entity,
            status_code=422,
            problems=problems or [],
            reason="invalid_design",
        )


class DesignSealedError(ValidationError):
    """Raised when a sealed design is mutated"""

    def __init__(self, design: str):
        super().__init__(
            message=f"Design is sealed and can no longer be modified: {design}",
            entity=design,
            status_code=409,
            reason="design_sealed",
        )


class NotFoundError(ReportEngineError):
    """Raised when a resource is not found"""

    domain = "d1_design"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
            status_code=404,
            entity=str(identifier),
        )


class DataSourceError(ReportEngineError):
    """Base class for failures talking to an external data source"""

    domain = "d2_query"
    error_kind = "DATA_SOURCE_ERROR"
    default_status = 502

    def __init__(
        self,
        message: str,
        data_source: Optional[str] = None,
        data_set: Optional[str] = None,
        **details,
    ):
        super().__init__(
            message=message,
            error_code=self.error_kind,
            details={"data_source": data_source, **details},
            status_code=self.default_status,
            entity=data_set or data_source,
        )
        self.data_source = data_source
        self.data_set = data_set


class DataSourceConnectionError(DataSourceError):
    """Raised when a data source cannot be reached"""

    error_kind = "CONNECTION_ERROR"


class AuthError(DataSourceError):
    """Raised when a data source rejects the configured credentials"""

    error_kind = "AUTH_ERROR"


class QueryError(DataSourceError):
    """Raised when the backend rejects the query text"""

    error_kind = "QUERY_ERROR"


class QueryTimeoutError(DataSourceError):
    """Raised when a blocking data source call exceeds its timeout"""

    error_kind = "TIMEOUT"
    default_status = 504

    def __init__(self, timeout_seconds: float, operation: str, **kwargs):
        super().__init__(
            message=f"{operation} exceeded {timeout_seconds} second timeout",
            timeout_seconds=timeout_seconds,
            operation=operation,
            **kwargs,
        )


class RenderError(ReportEngineError):
    """Raised on unrecoverable layout or output failures"""

    domain = "d3_render"

    def __init__(self, message: str, entity: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="RENDER_ERROR",
            details=details,
            status_code=500,
            entity=entity,
        )


class JobCancelledError(ReportEngineError):
    """Raised when a render job is cancelled before completion"""

    domain = "d4_jobs"

    def __init__(self, job_id: str):
        super().__init__(
            message=f"Render job cancelled: {job_id}",
            error_code="CANCELLED",
            status_code=409,
            entity=job_id,
        )


class ConfigurationError(ReportEngineError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting} if setting else {},
            status_code=500,
        )
