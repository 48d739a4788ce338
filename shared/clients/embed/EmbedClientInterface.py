from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import KnowledgeBaseError, ModelNotFoundError, ProviderPermanentError


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default="text-embedding-3-small")

    def error_for_status(self, status_code: int, message: str) -> KnowledgeBaseError:
        # embedding backends answer 404 for an unknown model
        if status_code == 404:
            return ModelNotFoundError(message, status_code=status_code)
        return super().error_for_status(status_code, message)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str], model: str) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.
            model (str): The embedding model to use.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ProviderPermanentError: If the response does not match the backend schema.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str, api_key: str | None = None, model: str | None = None) -> list[list[float]]:
        """Send one embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.
            api_key (str | None): Credential for this call. Falls back to the configured key.
            model (str | None): Model override. Falls back to EMBED_MODEL.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            KnowledgeBaseError: Mapped from the provider status (credential, rate limit, 5xx, ...).
            ProviderPermanentError: If the number of vectors does not match the number of texts.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts, model or self.embed_model)
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=body,
            raise_on_error=True,
            api_key=api_key,
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ProviderPermanentError(
                f"Embedding backend '{self.get_engine_name()}' returned {len(vectors)} vectors for {len(texts)} texts."
            )
        return vectors
