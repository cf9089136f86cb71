"""FastAPI routes for session folders, ingestion and retrieval.

Endpoint map (all under ``/api/v1``)::

    GET    /health                              health + provider names
    POST   /sessions/{sid}/folder               create uploads/ + processed/
    GET    /sessions/{sid}/folder               list both areas
    DELETE /sessions/{sid}/folder               remove folder (?purge_vectors=)
    POST   /sessions/{sid}/uploads              multipart upload
    POST   /sessions/{sid}/process              process_all | process_single
    GET    /sessions/{sid}/processed            ?action=list|status
    GET    /sessions/{sid}/processed/{name}     one manifest
    POST   /sessions/{sid}/context              score-gated context strings
    POST   /sessions/{sid}/search               raw similarity search

Services are resolved from ``app.state`` (populated in ``main._lifespan``)
through ``Annotated[..., Depends(...)]`` aliases so tests can build a bare
``FastAPI()`` app and set state by hand.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile

from livekb.api.schemas import (
    ContextRequest,
    ContextResponse,
    HealthResponse,
    ProcessAction,
    ProcessedDocumentSummary,
    ProcessedListResponse,
    ProcessingStatusResponse,
    ProcessRequest,
    ProcessResponse,
    SearchRequest,
    SearchResponse,
    SessionCleanupResponse,
    SessionFolderResponse,
    UploadResponse,
)
from livekb.models.documents import ProcessedDocument
from livekb.models.ingestion import IngestionReport
from livekb.services.ingestion.ingestion_service import IngestionService
from livekb.services.retrieval_service import RetrievalService
from livekb.services.session_workspace import PROCESSED, UPLOADS, SessionWorkspace, validate_session_id
from livekb.services.vector_index_client import VectorIndexClient
from livekb.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_APP_VERSION = "0.1.0"


class ProcessedView(str, Enum):
    LIST = "list"
    STATUS = "status"


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_workspace(request: Request) -> SessionWorkspace:
    return request.app.state.workspace


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def _get_index_client(request: Request) -> VectorIndexClient:
    return request.app.state.index_client


def _get_session_id(session_id: str) -> str:
    return validate_session_id(session_id)


WorkspaceDep = Annotated[SessionWorkspace, Depends(_get_workspace)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
RetrievalDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
IndexClientDep = Annotated[VectorIndexClient, Depends(_get_index_client)]
SessionIdDep = Annotated[str, Depends(_get_session_id)]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and configured provider names."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    status = "healthy" if providers.get("embedding") and providers.get("vector_index") else "degraded"
    return HealthResponse(status=status, version=_APP_VERSION, providers=providers)


# ---------------------------------------------------------------------------
# Session folder
# ---------------------------------------------------------------------------


def _folder_response(workspace: SessionWorkspace, session_id: str) -> SessionFolderResponse:
    return SessionFolderResponse(
        session_id=session_id,
        exists=workspace.exists(session_id),
        uploads=workspace.list_files(session_id, UPLOADS),
        processed=workspace.list_files(session_id, PROCESSED),
    )


@router.post("/sessions/{session_id}/folder", response_model=SessionFolderResponse)
async def create_session_folder(session_id: SessionIdDep, workspace: WorkspaceDep) -> SessionFolderResponse:
    workspace.create(session_id)
    return _folder_response(workspace, session_id)


@router.get("/sessions/{session_id}/folder", response_model=SessionFolderResponse)
async def get_session_folder(session_id: SessionIdDep, workspace: WorkspaceDep) -> SessionFolderResponse:
    return _folder_response(workspace, session_id)


@router.delete("/sessions/{session_id}/folder", response_model=SessionCleanupResponse)
async def delete_session_folder(
    session_id: SessionIdDep,
    workspace: WorkspaceDep,
    index_client: IndexClientDep,
    purge_vectors: bool = Query(default=False),
) -> SessionCleanupResponse:
    """Remove the session folder; optionally drop the session's namespace too."""
    vectors_deleted = 0
    if purge_vectors:
        vectors_deleted = await index_client.delete_namespace(session_id)
    removed = workspace.cleanup(session_id)
    return SessionCleanupResponse(
        session_id=session_id, removed=removed, vectors_deleted=vectors_deleted
    )


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/uploads", response_model=UploadResponse, status_code=201)
async def upload_file(session_id: SessionIdDep, file: UploadFile, workspace: WorkspaceDep) -> UploadResponse:
    data = await file.read()
    path = workspace.save_upload(session_id, file.filename or "", data)
    return UploadResponse(session_id=session_id, file_name=path.name, size=len(data))


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


@router.post(
    "/sessions/{session_id}/process",
    response_model=ProcessResponse,
    summary="Parse, chunk and optionally index uploaded files",
)
async def process_documents(
    session_id: SessionIdDep,
    body: ProcessRequest,
    workspace: WorkspaceDep,
    ingestion: IngestionDep,
) -> ProcessResponse:
    """Run ingestion for one file or the whole uploads area.

    ``process_single`` errors (missing file, empty content, unsupported
    type) surface as HTTP errors; ``process_all`` skips failing files and
    reports them in ``failures``.
    """
    uploads_dir = workspace.uploads_dir(session_id)
    processed_dir = workspace.processed_dir(session_id)

    if body.action is ProcessAction.PROCESS_SINGLE:
        if not body.file_name:
            raise HTTPException(status_code=422, detail="fileName is required for process_single")
        report = await ingestion.ingest_file(
            session_id, body.file_name, uploads_dir, processed_dir, embed=body.embed
        )
        message = f"Processed {body.file_name} into {report.processed_chunks} chunks"
    else:
        report = await ingestion.ingest_session(
            session_id, uploads_dir, processed_dir, embed=body.embed
        )
        message = f"Processed {report.processed_files} files into {report.processed_chunks} chunks"
        if report.failures:
            message += f"; {len(report.failures)} failed"

    _logger.info(
        "process_request_complete",
        session_id=session_id,
        action=body.action.value,
        files=report.processed_files,
        chunks=report.processed_chunks,
    )
    return _process_response(report, message)


def _process_response(report: IngestionReport, message: str) -> ProcessResponse:
    return ProcessResponse(
        success=report.success,
        message=message,
        processed_files=report.processed_files,
        processed_chunks=report.processed_chunks,
        indexed_vectors=report.indexed_vectors,
        documents=report.documents,
        failures=report.failures,
    )


def _summary(document: ProcessedDocument) -> ProcessedDocumentSummary:
    return ProcessedDocumentSummary(
        file_name=document.file_name,
        file_type=document.file_type,
        total_chunks=document.total_chunks,
        original_size=document.original_size,
        processed_at=document.processed_at,
    )


@router.get("/sessions/{session_id}/processed", response_model=None)
async def list_processed(
    session_id: SessionIdDep,
    workspace: WorkspaceDep,
    ingestion: IngestionDep,
    action: ProcessedView = Query(default=ProcessedView.LIST),
) -> ProcessedListResponse | ProcessingStatusResponse:
    documents = ingestion.list_processed_documents(workspace.processed_dir(session_id))

    if action is ProcessedView.STATUS:
        uploaded = workspace.list_files(session_id, UPLOADS)
        processed = sorted(d.file_name for d in documents)
        done = set(processed)
        return ProcessingStatusResponse(
            session_id=session_id,
            uploaded_files=uploaded,
            processed_files=processed,
            pending_files=[name for name in uploaded if name not in done],
            total_chunks=sum(d.total_chunks for d in documents),
        )

    return ProcessedListResponse(
        session_id=session_id,
        documents=[_summary(d) for d in documents],
        total=len(documents),
    )


@router.get("/sessions/{session_id}/processed/{file_name}", response_model=ProcessedDocument)
async def get_processed(
    session_id: SessionIdDep,
    file_name: str,
    workspace: WorkspaceDep,
    ingestion: IngestionDep,
) -> ProcessedDocument:
    document = ingestion.get_processed_document(
        session_id, file_name, workspace.processed_dir(session_id)
    )
    if document is None:
        raise HTTPException(status_code=404, detail=f"No processed document: {file_name}")
    return document


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/context", response_model=ContextResponse)
async def get_context(
    session_id: SessionIdDep,
    body: ContextRequest,
    retrieval: RetrievalDep,
) -> ContextResponse:
    """Return labelled context; an empty list means the caller should fall back."""
    contexts = await retrieval.get_relevant_context(
        body.topic, session_id, body.max_contexts, fail_open=True
    )
    return ContextResponse(contexts=contexts, total=len(contexts), fallback=not contexts)


@router.post("/sessions/{session_id}/search", response_model=SearchResponse)
async def search(
    session_id: SessionIdDep,
    body: SearchRequest,
    retrieval: RetrievalDep,
) -> SearchResponse:
    result = await retrieval.search_knowledge_base(body.query, session_id=session_id, top_k=body.top_k)
    return SearchResponse(matches=result.matches, total_results=result.total_results)
