import uuid

from fastapi import APIRouter, Depends, HTTPException

from server.dependencies.auth import verify_api_key
from server.dependencies.services import get_bot, get_services
from server.models.requests import DocumentIngestRequest
from server.models.responses import DocumentDeleteResponse
from services.ServiceContainer import ServiceContainer
from shared.models.bot import Bot, DocumentRecord
from shared.models.retrieval import CollectionStatus

router = APIRouter(prefix="/bots", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.post("/{bot_id}/documents")
async def ingest_document(
    body: DocumentIngestRequest,
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> DocumentRecord:
    """Chunk, embed and store already extracted document text.

    Runs inline so the caller gets the final record (completed, or an error
    response with the document marked failed).
    """
    document = DocumentRecord(
        id=body.document_id or str(uuid.uuid4()),
        bot_id=bot.id,
        name=body.name,
        mime_type=body.mime_type,
        content_type=body.content_type,
        size_bytes=len(body.text.encode("utf-8")),
    )
    await services.document_store.save_document(document)

    options = None
    if body.max_chunk_size is not None or body.overlap is not None:
        options = services.chunker.default_options(body.content_type)
        if body.max_chunk_size is not None:
            options.max_chunk_size = body.max_chunk_size
        if body.overlap is not None:
            options.overlap = body.overlap

    return await services.ingestion_service.ingest_document(bot, document, body.text, options=options)


@router.get("/{bot_id}/documents")
async def list_documents(
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> list[DocumentRecord]:
    return await services.document_store.list_documents(bot.id)


@router.get("/{bot_id}/documents/{document_id}")
async def get_document(
    document_id: str,
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> DocumentRecord:
    document = await services.document_store.get_document(bot.id, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not found")
    return document


@router.delete("/{bot_id}/documents/{document_id}")
async def delete_document(
    document_id: str,
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> DocumentDeleteResponse:
    deleted = await services.ingestion_service.delete_document(bot.id, document_id)
    return DocumentDeleteResponse(document_id=document_id, deleted_vectors=deleted)


@router.get("/{bot_id}/collection")
async def collection_status(
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> CollectionStatus:
    return await services.vector_store.collection_status(bot.id)
