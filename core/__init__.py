"""Core utilities and configuration for ReportRunner"""
from core.config import settings
from core.exceptions import ReportEngineError, ValidationError
from core.logging import get_logger

__all__ = [
    "settings",
    "get_logger",
    "ReportEngineError",
    "ValidationError",
]
