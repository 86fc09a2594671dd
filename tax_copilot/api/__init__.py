"""
API module for Tax Copilot.

This module provides the FastAPI application with REST endpoints,
request/response models, dependencies, and middleware.
"""

from tax_copilot.api.app import app, create_app
from tax_copilot.api.models import (
    AskRequest,
    AuditLogResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    InitResponse,
)
from tax_copilot.api.routes import router

__all__ = [
    # Application
    "app",
    "create_app",
    "router",
    # Request models
    "AskRequest",
    # Response models
    "AuditLogResponse",
    "DocumentResponse",
    "ErrorResponse",
    "HealthResponse",
    "IngestResponse",
    "InitResponse",
]
