"""Embedding generator.

Converts passages into vectors through the configured embedding client,
in bounded batches, each with its own retry budget. Output order always
matches input order.
"""

import asyncio
import math

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RetryPolicy import RetryPolicy, run_with_retry
from shared.helper.errors import (
    CredentialError,
    DimensionMismatchError,
    EmbeddingBatchError,
    MissingCredentialError,
    ProviderTransientError,
    ValidationError,
)
from shared.models.embedding import EmbeddingValidation, TokenUsageEstimate
from shared.models.settings import PipelineSettings

# USD per 1K tokens
EMBEDDING_PRICING: dict[str, float] = {
    "text-embedding-3-small": 0.00002,
    "text-embedding-3-large": 0.00013,
    "text-embedding-ada-002": 0.0001,
}
DEFAULT_PRICE_PER_1K = EMBEDDING_PRICING["text-embedding-3-small"]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors. 0.0 if either has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(expected=len(a), actual=len(b))
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def validate_embedding(vector: list[float], expected_dimensions: int) -> EmbeddingValidation:
    errors: list[str] = []
    all_finite = all(isinstance(v, (int, float)) and math.isfinite(v) for v in vector)
    if len(vector) != expected_dimensions:
        errors.append(f"Expected {expected_dimensions} dimensions, got {len(vector)}")
    if not all_finite:
        errors.append("Vector contains non-finite values")
    magnitude = math.sqrt(sum(v * v for v in vector)) if all_finite else float("nan")
    return EmbeddingValidation(
        valid=not errors,
        dimensions=len(vector),
        expected_dimensions=expected_dimensions,
        all_finite=all_finite,
        magnitude=magnitude,
        is_normalized=all_finite and abs(magnitude - 1.0) < 0.01,
        errors=errors,
    )


def estimate_cost(total_tokens: int, model: str) -> float:
    return (total_tokens / 1000) * EMBEDDING_PRICING.get(model, DEFAULT_PRICE_PER_1K)


class EmbeddingService:
    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        settings: PipelineSettings | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=self._settings.embed_max_retries,
            initial_delay=self._settings.embed_retry_delay,
            backoff_multiplier=2.0,
        )
        self._sleep = sleep

    @property
    def default_model(self) -> str:
        return self._settings.embed_model

    ##########################################
    ################# CORE ###################
    ##########################################

    async def embed(self, texts: list[str], credential: str | None, model: str | None = None) -> list[list[float]]:
        """Embed texts in batches, preserving input order.

        Args:
            texts (list[str]): Texts to embed.
            credential (str | None): Provider API key for this call.
            model (str | None): Embedding model, EMBED_MODEL if None.

        Returns:
            list[list[float]]: One vector per input text, same order.

        Raises:
            MissingCredentialError: If no credential is given.
            ValidationError: If texts is empty or contains blank entries.
            CredentialError: If the provider rejects the credential.
            EmbeddingBatchError: If a batch fails permanently or exhausts its retries.
        """
        if not credential:
            raise MissingCredentialError("An API key is required to generate embeddings.")
        if not texts:
            raise ValidationError("Cannot embed an empty list of texts.")
        if any(not isinstance(t, str) or not t.strip() for t in texts):
            raise ValidationError("All texts must be non-empty strings.")

        model = model or self.default_model
        batch_size = max(1, int(self._settings.embed_batch_size))
        batches = [texts[i: i + batch_size] for i in range(0, len(texts), batch_size)]

        self.logging.info(
            "Generating embeddings for %d texts in %d batch(es) with model '%s'.",
            len(texts), len(batches), model,
        )

        sem = asyncio.Semaphore(max(1, int(self._settings.embed_concurrency)))
        start_lock = asyncio.Lock()
        started = 0

        async def run_batch(index: int, batch: list[str]) -> list[list[float]]:
            nonlocal started
            async with sem:
                # spaces out batch starts to stay under provider rate limits
                async with start_lock:
                    if started > 0 and self._settings.embed_inter_batch_delay > 0:
                        await self._sleep(self._settings.embed_inter_batch_delay)
                    started += 1
                return await self._embed_batch(index, batch, credential, model)

        tasks = [asyncio.create_task(run_batch(i, batch)) for i, batch in enumerate(batches)]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        vectors = [vector for batch_vectors in results for vector in batch_vectors]
        self.logging.info("Generated %d embeddings.", len(vectors))
        return vectors

    async def embed_query(self, text: str, credential: str | None, model: str | None = None) -> list[float]:
        vectors = await self.embed([text], credential, model)
        return vectors[0]

    async def _embed_batch(self, index: int, batch: list[str], credential: str, model: str) -> list[list[float]]:
        result = await run_with_retry(
            lambda: self._embed_client.do_embed(batch, api_key=credential, model=model),
            self._retry_policy,
            retry_on=(ProviderTransientError,),
            operation_name=f"Embedding batch {index}",
            logger=self.logging,
            sleep=self._sleep,
        )
        if result.success:
            return result.result
        if isinstance(result.error, CredentialError):
            raise result.error
        raise EmbeddingBatchError(batch_index=index, attempts=result.attempts, last_error=result.error)

    ##########################################
    ################ HELPERS #################
    ##########################################

    def estimate_token_usage(self, total_tokens: int, text_count: int, model: str | None = None) -> TokenUsageEstimate:
        model = model or self.default_model
        return TokenUsageEstimate(
            model=model,
            total_tokens=total_tokens,
            estimated_cost=estimate_cost(total_tokens, model),
            text_count=text_count,
        )
