from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.helper.errors import (
    CredentialError,
    EmbeddingBatchError,
    IngestionError,
    KnowledgeBaseError,
    NoCredentialError,
    NotFoundError,
    ProviderError,
    StoreConflictError,
    ValidationError,
)


def status_for_error(error: KnowledgeBaseError) -> int:
    """HTTP status for an error reaching the API boundary."""
    if isinstance(error, IngestionError) and isinstance(error.cause, KnowledgeBaseError):
        return status_for_error(error.cause)
    if isinstance(error, EmbeddingBatchError) and isinstance(error.last_error, KnowledgeBaseError):
        return status_for_error(error.last_error)
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, NoCredentialError):
        # caller must configure a key before retrying
        return 424
    if isinstance(error, CredentialError):
        return 401
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, StoreConflictError):
        return 409
    if isinstance(error, ProviderError):
        return 502
    return 500


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(KnowledgeBaseError)
    async def handle_knowledge_base_error(request: Request, exc: KnowledgeBaseError) -> JSONResponse:
        status = status_for_error(exc)
        log = request.app.state.helper_config.get_logger()
        if status >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            log.warning("%s %s rejected (%d): %s", request.method, request.url.path, status, exc)
        return JSONResponse(status_code=status, content={"error_code": exc.error_code, "detail": str(exc)})
