"""
FastAPI routes for the Tax Copilot API.

This module defines all REST API endpoints. Domain errors raised by the
services propagate to the application's exception handlers, which map them
to HTTP status codes.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, File, Form, Query, Response, UploadFile, status

from tax_copilot.api.dependencies import (
    AuditRepositoryDep,
    ContainerDep,
    DocumentServiceDep,
    IngestionPipelineDep,
    QueryPipelineDep,
)
from tax_copilot.api.models import (
    AskRequest,
    AuditLogResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    InitResponse,
)
from tax_copilot.domain.models import AskResponse
from tax_copilot.utils.exceptions import DocumentNotFoundError
from tax_copilot.utils.logging import LoggerMixin, get_correlation_id

API_VERSION = "1.0.0"

router = APIRouter()


class RouteHandlers(LoggerMixin):
    """Handler class for API routes with logging support."""

    pass


handler = RouteHandlers()


@router.post(
    "/documents/upload",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload document",
    description="Store a PDF or DOCX tax document. Ingestion is triggered separately.",
    responses={
        400: {"model": ErrorResponse, "description": "Empty or oversized file"},
        415: {"model": ErrorResponse, "description": "Unsupported file format"},
    },
)
async def upload_document(
    service: DocumentServiceDep,
    file: UploadFile = File(..., description="Document file"),
    title: str = Form(..., min_length=1),
    jurisdiction: str = Form(..., min_length=1),
    tax_type: str = Form(..., alias="taxType", min_length=1),
    version: str = Form(..., min_length=1),
    uploaded_by: str = Form("anonymous", alias="uploadedBy"),
    effective_date: Optional[datetime] = Form(None, alias="effectiveDate"),
) -> DocumentResponse:
    handler.logger.info(
        "upload_request_received",
        filename=file.filename,
        content_type=file.content_type,
        correlation_id=get_correlation_id(),
    )

    data = await file.read()
    document = await service.upload(
        data=data,
        file_name=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
        title=title,
        jurisdiction=jurisdiction,
        tax_type=tax_type,
        version=version,
        uploaded_by=uploaded_by,
        effective_date=effective_date,
    )
    return DocumentResponse.from_document(document)


@router.get(
    "/documents",
    response_model=list[DocumentResponse],
    summary="List documents",
    description="List all documents, newest first.",
)
async def list_documents(service: DocumentServiceDep) -> list[DocumentResponse]:
    documents = await service.list_documents()
    return [DocumentResponse.from_document(document) for document in documents]


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    summary="Get document",
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
async def get_document(document_id: str, service: DocumentServiceDep) -> DocumentResponse:
    document = await service.get_document(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return DocumentResponse.from_document(document)


@router.post(
    "/documents/{document_id}/ingest",
    response_model=IngestResponse,
    summary="Ingest document",
    description="Extract, chunk, embed and index a stored document, replacing its previous chunks.",
    responses={
        404: {"model": ErrorResponse, "description": "Document not found"},
        409: {"model": ErrorResponse, "description": "Document is already being processed"},
        415: {"model": ErrorResponse, "description": "Unsupported file format"},
    },
)
async def ingest_document(document_id: str, pipeline: IngestionPipelineDep) -> IngestResponse:
    handler.logger.info(
        "ingest_request_received",
        document_id=document_id,
        correlation_id=get_correlation_id(),
    )
    result = await pipeline.ingest(document_id)
    return IngestResponse.from_result(result)


@router.post(
    "/chat/ask",
    response_model=AskResponse,
    summary="Ask a question",
    description=(
        "Answer a question from the indexed documents with citations. "
        "The X-Correlation-ID header, when given, is recorded in the audit log."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Blank question"},
        502: {"model": ErrorResponse, "description": "Model call failed"},
    },
)
async def ask(request: AskRequest, pipeline: QueryPipelineDep) -> AskResponse:
    correlation_id = get_correlation_id()

    handler.logger.info(
        "ask_request_received",
        question_length=len(request.question),
        correlation_id=correlation_id,
    )

    return await pipeline.ask(
        question=request.question,
        filters=request.to_filters(),
        correlation_id=correlation_id,
    )


@router.get(
    "/audit",
    response_model=list[AuditLogResponse],
    summary="Recent audit entries",
    description=(
        "Most recent query audit entries, newest first. With `correlationId`, "
        "the entries written for that request instead, oldest first."
    ),
)
async def list_audit_logs(
    repository: AuditRepositoryDep,
    take: int = Query(50, ge=1, le=500, description="Number of entries to return"),
    correlation_id: Optional[str] = Query(
        None,
        alias="correlationId",
        min_length=1,
        description="Only entries for this request",
    ),
) -> list[AuditLogResponse]:
    if correlation_id is not None:
        entries = (await repository.get_by_correlation_id(correlation_id))[:take]
    else:
        entries = await repository.get_recent(take)
    return [AuditLogResponse.from_entry(entry) for entry in entries]


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description=(
        "Check the database, blob storage, search index, embedding model and "
        "chat model. Each model check sends a one-word request to the provider."
    ),
    responses={
        200: {"description": "All components healthy"},
        503: {"description": "At least one component unhealthy"},
    },
)
async def health_check(container: ContainerDep, response: Response) -> HealthResponse:
    handler.logger.debug("health_check_requested", correlation_id=get_correlation_id())

    checks = {
        "database": (
            container.database.test_connection()
            and container.database.table_exists("documents")
        ),
        "blob_storage": await container.blob_storage.container_exists(),
        "search_index": await container.search_index.health_check(),
    }
    components = {name: "healthy" if ok else "unhealthy" for name, ok in checks.items()}

    if container.settings.llm.openai_api_key.get_secret_value():
        for name, service in (
            ("embedding_model", container.embedding_service),
            ("chat_model", container.answer_generator),
        ):
            checks[name] = await service.is_available()
            components[name] = "healthy" if checks[name] else "unhealthy"
    else:
        for name in ("embedding_model", "chat_model"):
            checks[name] = False
            components[name] = "not_configured"

    all_healthy = all(checks.values())
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        components=components,
        version=API_VERSION,
    )


@router.post(
    "/admin/init",
    response_model=InitResponse,
    summary="Initialize storage",
    description=(
        "Create the database schema, blob container and search collection if "
        "missing. Each component reports `created` or `exists`."
    ),
)
async def initialize_storage(container: ContainerDep) -> InitResponse:
    schema_created = not container.database.table_exists("documents")
    container.database.initialize_schema()
    blob_created = await container.blob_storage.ensure_container()
    index_created = await container.search_index.ensure_index()

    handler.logger.info(
        "storage_initialized",
        blob_container_created=blob_created,
        search_index_created=index_created,
        correlation_id=get_correlation_id(),
    )

    return InitResponse(
        message="Storage initialized",
        components={
            "database": "created" if schema_created else "exists",
            "blob_storage": "created" if blob_created else "exists",
            "search_index": "created" if index_created else "exists",
        },
    )
