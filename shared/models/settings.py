"""Tunables for chunking, embedding, retrieval and conversation, read from the environment."""

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig


class PipelineSettings(BaseModel):
    """All pipeline tunables in one place.

    Attributes:
        chunk_max_size:              Maximum characters per passage.
        chunk_overlap:               Characters shared between consecutive passages.
        embed_model:                 Embedding model name; also selects the tokenizer.
        embed_batch_size:            Texts per embedding request.
        embed_max_retries:           Attempts per batch, including the first one.
        embed_retry_delay:           Base backoff delay in seconds.
        embed_inter_batch_delay:     Pause in seconds between successive batch starts.
        embed_concurrency:           Batches in flight at the same time.
        upsert_batch_size:           Points per vector store write.
        retrieval_top_k:             Passages fetched per query.
        retrieval_score_threshold:   Minimum similarity a passage needs to be kept.
        retrieval_timeout:           Upper bound in seconds for one retrieval.
        intent_confidence_threshold: Classifier confidence needed to leave the retrieval path.
        classifier_model:            Model used for intent classification.
        chat_model:                  Model used for grounded generation.
        simple_chat_model:           Model used for general chat.
        credential_cache_ttl:        Seconds a resolved credential may be served.
        global_provider_api_key:     Fallback credential when a bot owner has none.
        max_message_length:          Longest accepted user message.
        history_limit:               Default number of messages returned by history queries.
    """

    chunk_max_size: int = 700
    chunk_overlap: int = 100

    embed_model: str = "text-embedding-3-small"
    embed_batch_size: int = 100
    embed_max_retries: int = 3
    embed_retry_delay: float = 1.0
    embed_inter_batch_delay: float = 0.1
    embed_concurrency: int = 1

    upsert_batch_size: int = 100

    retrieval_top_k: int = 4
    retrieval_score_threshold: float = 0.5
    retrieval_timeout: float = 30.0

    intent_confidence_threshold: float = 0.7
    classifier_model: str = "gpt-3.5-turbo"
    chat_model: str = "gpt-4"
    simple_chat_model: str = "gpt-4.1-mini"

    credential_cache_ttl: float = 600.0
    global_provider_api_key: str | None = None

    max_message_length: int = 4000
    history_limit: int = 50

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "PipelineSettings":
        """Build settings from environment variables, falling back to the defaults above.

        Every field maps to the upper-cased field name, e.g. CHUNK_MAX_SIZE.
        """
        values: dict = {}
        for name, field in cls.model_fields.items():
            if name == "global_provider_api_key":
                values[name] = helper_config.get_optional_string_val("GLOBAL_PROVIDER_API_KEY")
            elif field.annotation is str:
                values[name] = helper_config.get_string_val(name, default=field.default)
            else:
                values[name] = helper_config.get_number_val(name, default=field.default)
        return cls(**values)
