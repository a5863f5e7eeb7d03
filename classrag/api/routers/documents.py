"""
Document API endpoints.

Routes:
- POST /collections/{id}/documents - Upload one or more files for processing
- GET /collections/{id}/documents - List collection documents
- GET /documents/{id} - Get one document with its status
- POST /documents/{id}/retry - Reprocess a failed document
- DELETE /documents/{id} - Delete document, chunks, and stored content

Dependencies: classrag.application.services, classrag.models
System role: Document HTTP API
"""

import logging
import mimetypes
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from classrag.api.deps import get_document_service
from classrag.application.services.document_service import DocumentService
from classrag.core.exceptions import DocumentNotFoundError, InvalidStateError
from classrag.models.document import (
    BatchUploadResponse,
    DocumentFile,
    DocumentListResponse,
    DocumentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


def _declared_mime_type(upload: UploadFile) -> str:
    """Client content type, falling back to a guess from the filename."""
    if upload.content_type and upload.content_type != "application/octet-stream":
        return upload.content_type
    guessed, _ = mimetypes.guess_type(upload.filename or "")
    return guessed or upload.content_type or "application/octet-stream"


@router.post(
    "/collections/{collection_id}/documents",
    response_model=BatchUploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_documents(
    collection_id: UUID,
    files: list[UploadFile] = File(...),
    document_service: DocumentService = Depends(get_document_service),
) -> BatchUploadResponse:
    """
    Upload files to a collection.

    Accepted files are stored, created as PENDING, and processed one after
    another in the background. Poll GET /documents/{id} for the outcome.

    Args:
        collection_id: Collection UUID
        files: Multipart files (PDF, DOCX, or plain text)
        document_service: Injected DocumentService

    Returns:
        BatchUploadResponse: Accepted documents and rejected files with reasons
    """
    document_files = [
        DocumentFile(
            name=upload.filename or "untitled",
            mime_type=_declared_mime_type(upload),
            data=await upload.read(),
        )
        for upload in files
    ]
    result = await document_service.submit_batch(collection_id, document_files)

    logger.info(
        f"{__name__}:upload_documents - Batch submitted",
        extra={
            "collection_id": str(collection_id),
            "uploaded_count": len(result.uploaded),
            "failed_count": len(result.failed),
        },
    )
    return result


@router.get("/collections/{collection_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    collection_id: UUID,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    """List a collection's documents, newest first, with chunk counts."""
    documents = await document_service.list_documents(collection_id)
    return DocumentListResponse(documents=documents, total=len(documents))


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    """
    Raises:
        HTTPException(404): Document not found
    """
    try:
        return await document_service.get_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/documents/{document_id}/retry",
    response_model=DocumentResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def retry_document(
    document_id: UUID,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    """
    Reprocess a FAILED document.

    Raises:
        HTTPException(404): Document not found
        HTTPException(409): Document is not FAILED
    """
    try:
        return await document_service.retry_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    document_service: DocumentService = Depends(get_document_service),
) -> Response:
    """
    Delete a document with its chunks and stored file.

    Raises:
        HTTPException(404): Document not found
    """
    try:
        await document_service.delete_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
