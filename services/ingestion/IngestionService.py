"""Ingestion pipeline.

validate -> chunk -> resolve credential -> embed -> upsert, per document.
A failure aborts that document only: it is marked failed with the error
message and vectors written before the failure are purged.
"""

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import (
    CredentialError,
    EmptyInputError,
    IngestionError,
    ValidationError,
)
from services.chunking.ChunkerService import ChunkerService, total_tokens
from services.conversation.CredentialCache import CredentialCache
from services.embedding.EmbeddingService import EmbeddingService
from services.vector_store.VectorStoreService import VectorStoreService
from shared.models.bot import Bot, DocumentRecord, DocumentStatus
from shared.models.passage import ChunkOptions, utc_now
from shared.models.retrieval import VectorRecord
from shared.stores.BotStore import BotStoreInterface
from shared.stores.DocumentExtractor import DocumentExtractorInterface, PlainTextExtractor
from shared.stores.DocumentStore import DocumentStoreInterface

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 1_000_000
MIN_WORD_COUNT = 3


def validate_text(text: str) -> None:
    """
    Raises:
        EmptyInputError: If the text is empty after trimming.
        ValidationError: If the text is too short, too long or has too few words.
    """
    if not isinstance(text, str) or not text.strip():
        raise EmptyInputError("Document text is empty.")
    stripped = text.strip()
    if len(stripped) < MIN_TEXT_LENGTH:
        raise ValidationError(f"Document text is too short ({len(stripped)} characters, minimum {MIN_TEXT_LENGTH}).")
    if len(stripped) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Document text is too long ({len(stripped)} characters, maximum {MAX_TEXT_LENGTH}).")
    if len(stripped.split()) < MIN_WORD_COUNT:
        raise ValidationError(f"Document text must contain at least {MIN_WORD_COUNT} words.")


class IngestionService:
    def __init__(
        self,
        helper_config: HelperConfig,
        chunker: ChunkerService,
        embedding_service: EmbeddingService,
        vector_store: VectorStoreService,
        credential_cache: CredentialCache,
        document_store: DocumentStoreInterface,
        bot_store: BotStoreInterface,
        extractor: DocumentExtractorInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._chunker = chunker
        self._embedding = embedding_service
        self._vector_store = vector_store
        self._credentials = credential_cache
        self._documents = document_store
        self._bots = bot_store
        self._extractor = extractor or PlainTextExtractor()

    ##########################################
    ################# CORE ###################
    ##########################################

    async def ingest_file(self, bot: Bot, document: DocumentRecord, file_bytes: bytes, mime_type: str) -> DocumentRecord:
        """Extract text from raw file bytes, then ingest it."""
        try:
            text = await self._extractor.extract(file_bytes, mime_type)
        except Exception as e:
            await self._mark_failed(document, f"Text extraction failed: {e}")
            raise IngestionError(document.id, f"text extraction failed: {e}", cause=e) from e
        document.size_bytes = document.size_bytes or len(file_bytes)
        return await self.ingest_document(bot, document, text)

    async def ingest_document(self, bot: Bot, document: DocumentRecord, text: str, options: ChunkOptions | None = None) -> DocumentRecord:
        """Chunk, embed and store one document's text.

        Args:
            bot (Bot): Owner of the target collection.
            document (DocumentRecord): The document being processed; updated in place and saved.
            text (str): Extracted plain text.
            options (ChunkOptions | None): Chunking options, settings defaults for the document's content type if None.

        Returns:
            DocumentRecord: The completed record with chunk, token and cost figures.

        Raises:
            CredentialError: If no usable credential exists for the bot. The document is marked failed.
            IngestionError: For any other failure. The document is marked failed.
        """
        document.status = DocumentStatus.PROCESSING
        document.processing_error = None
        await self._documents.save_document(document)
        self.logging.info("Ingesting document '%s' (%s) into bot '%s'.", document.name, document.id, bot.id, color="cyan")

        writing = False
        try:
            validate_text(text)
            passages = self._chunker.chunk(
                text,
                metadata={"document_id": document.id, "bot_id": bot.id, "document_name": document.name},
                options=options or self._chunker.default_options(document.content_type),
            )
            credential = await self._credentials.get(bot.id, bot.owner_id)
            vectors = await self._embedding.embed([p.text for p in passages], credential.api_key)
            writing = True
            result = await self._vector_store.upsert(
                bot.id,
                [VectorRecord(embedding=vector, passage=passage) for passage, vector in zip(passages, vectors)],
            )
        except Exception as e:
            if writing:
                await self._purge_partial(bot.id, document.id)
            await self._mark_failed(document, str(e))
            if isinstance(e, CredentialError):
                raise
            raise IngestionError(document.id, str(e), cause=e) from e

        tokens = total_tokens(passages)
        usage = self._embedding.estimate_token_usage(tokens, len(passages))
        document.status = DocumentStatus.COMPLETED
        document.total_chunks = len(passages)
        document.total_tokens = tokens
        document.estimated_cost = usage.estimated_cost
        document.vector_ids = result.ids
        document.size_bytes = document.size_bytes or len(text.encode("utf-8"))
        document.processed_at = utc_now()
        await self._documents.save_document(document)

        await self._update_usage(bot.id, stored=result.stored_count, tokens=tokens, size_bytes=document.size_bytes)

        self.logging.info(
            "Ingested document '%s': %d passages, %d tokens, estimated cost $%.6f.",
            document.id, len(passages), tokens, usage.estimated_cost,
            color="green",
        )
        return document

    async def delete_document(self, bot_id: str, document_id: str) -> int:
        """Purge a document's vectors and its record. Returns the number of vectors removed."""
        deleted = await self._vector_store.delete_by_filter(bot_id, {"document_id": document_id})
        await self._documents.delete_document(bot_id, document_id)
        self.logging.info("Deleted document '%s' of bot '%s' (%d vectors).", document_id, bot_id, deleted)
        return deleted

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _mark_failed(self, document: DocumentRecord, error: str) -> None:
        document.status = DocumentStatus.FAILED
        document.processing_error = error
        document.processed_at = utc_now()
        self.logging.error("Ingestion of document '%s' failed: %s", document.id, error)
        try:
            await self._documents.save_document(document)
        except Exception as e:
            self.logging.error("Could not record failure of document '%s': %s", document.id, e)

    async def _purge_partial(self, bot_id: str, document_id: str) -> None:
        try:
            removed = await self._vector_store.delete_by_filter(bot_id, {"document_id": document_id})
            if removed:
                self.logging.warning("Removed %d vectors of partially ingested document '%s'.", removed, document_id)
        except Exception as e:
            self.logging.error("Could not purge partial vectors of document '%s': %s", document_id, e)

    async def _update_usage(self, bot_id: str, stored: int, tokens: int, size_bytes: int) -> None:
        try:
            await self._bots.increment_usage(
                bot_id,
                total_embeddings=stored,
                total_tokens_used=tokens,
                file_count=1,
                storage_used=size_bytes,
            )
        except Exception as e:
            self.logging.warning("Could not update usage counters for bot '%s': %s", bot_id, e)
