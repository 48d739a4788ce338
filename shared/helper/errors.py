"""Exception hierarchy shared by all pipeline components.

Every error carries a stable ``error_code`` so the HTTP layer and the
conversation transcript can report distinct failure kinds instead of one
generic error.
"""


class KnowledgeBaseError(Exception):
    """Base class for all pipeline errors."""

    error_code = "KNOWLEDGE_BASE_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


##########################################
############### VALIDATION ###############
##########################################

class ValidationError(KnowledgeBaseError):
    """Bad or empty input. Local and user-correctable."""

    error_code = "VALIDATION_ERROR"


class EmptyInputError(ValidationError):
    error_code = "EMPTY_INPUT"


class DimensionMismatchError(ValidationError):
    """Two vectors, or a vector and a collection, disagree on dimensionality."""

    error_code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, message: str | None = None):
        super().__init__(message or f"Dimension mismatch: expected {expected}, got {actual}.")
        self.expected = expected
        self.actual = actual


##########################################
############### CREDENTIALS ##############
##########################################

class CredentialError(KnowledgeBaseError):
    """Missing, invalid or expired provider credential."""

    error_code = "CREDENTIAL_ERROR"


class MissingCredentialError(CredentialError):
    error_code = "MISSING_CREDENTIAL"


class NoCredentialError(CredentialError):
    """Neither the bot owner nor the global configuration provides a credential."""

    error_code = "NO_CREDENTIAL"


class InvalidCredentialError(CredentialError):
    error_code = "INVALID_KEY"


class InsufficientPermissionsError(CredentialError):
    error_code = "INSUFFICIENT_PERMISSIONS"


##########################################
################ PROVIDER ################
##########################################

class ProviderError(KnowledgeBaseError):
    """Failure reported by an external network service."""

    error_code = "PROVIDER_ERROR"

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message, error_code=error_code)
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """Rate limits, timeouts and 5xx. Retried with backoff."""

    error_code = "PROVIDER_TRANSIENT"


class RateLimitError(ProviderTransientError):
    error_code = "RATE_LIMIT"


class ProviderUnavailableError(ProviderTransientError):
    error_code = "SERVICE_UNAVAILABLE"


class ProviderTimeoutError(ProviderTransientError):
    error_code = "TIMEOUT"


class NetworkError(ProviderTransientError):
    error_code = "NETWORK_ERROR"


class ProviderPermanentError(ProviderError):
    """Model not found, malformed request. Never retried."""

    error_code = "PROVIDER_PERMANENT"


class ModelNotFoundError(ProviderPermanentError):
    error_code = "MODEL_NOT_FOUND"


class MalformedRequestError(ProviderPermanentError):
    error_code = "MALFORMED_REQUEST"


##########################################
################# STORE ##################
##########################################

class StoreConflictError(KnowledgeBaseError):
    """The vector store rejected a write because a point id already exists."""

    error_code = "STORE_CONFLICT"


class NotFoundError(KnowledgeBaseError):
    error_code = "NOT_FOUND"


##########################################
################ PIPELINE ################
##########################################

class EmbeddingBatchError(KnowledgeBaseError):
    """A batch exhausted its retries. Carries the batch index and the last error."""

    error_code = "EMBEDDING_BATCH_FAILED"

    def __init__(self, batch_index: int, attempts: int, last_error: Exception | None):
        super().__init__(
            f"Failed to generate embeddings for batch {batch_index} after {attempts} attempts: {last_error}"
        )
        self.batch_index = batch_index
        self.attempts = attempts
        self.last_error = last_error


class IngestionError(KnowledgeBaseError):
    """Processing of one document was aborted."""

    error_code = "INGESTION_FAILED"

    def __init__(self, document_id: str, message: str, cause: Exception | None = None):
        super().__init__(f"Ingestion of document '{document_id}' failed: {message}")
        self.document_id = document_id
        self.cause = cause


def error_from_status(status_code: int, message: str) -> KnowledgeBaseError:
    """Map an HTTP status code from a provider or store to an error kind.

    Args:
        status_code (int): The non-2xx HTTP status.
        message (str): Human-readable context included in the error.

    Returns:
        KnowledgeBaseError: The matching error instance (not raised).
    """
    if status_code == 401:
        return InvalidCredentialError(message)
    if status_code == 403:
        return InsufficientPermissionsError(message)
    if status_code == 404:
        return NotFoundError(message)
    if status_code == 409:
        return StoreConflictError(message)
    if status_code == 429:
        return RateLimitError(message, status_code=status_code)
    if status_code in (408, 504):
        return ProviderTimeoutError(message, status_code=status_code)
    if status_code >= 500:
        return ProviderUnavailableError(message, status_code=status_code)
    if status_code in (400, 413, 422):
        return MalformedRequestError(message, status_code=status_code)
    return ProviderPermanentError(message, status_code=status_code)
