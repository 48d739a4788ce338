import pydantic

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.models.EmbedResponse import OllamaEmbeddingResponse
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderPermanentError
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self, api_key: str | None = None) -> dict:
        # a local ollama usually runs without auth, a reverse proxy in front of it may not
        key = api_key or self._api_key
        if key:
            return {"Authorization": f"Bearer {key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str], model: str) -> dict:
        return {"model": model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an Ollama /api/embed response.

        Raises:
            ProviderPermanentError: If the response does not contain valid embeddings.
        """
        try:
            parsed = OllamaEmbeddingResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise ProviderPermanentError(
                f"Ollama response does not contain valid embeddings. Response keys: {list(response_data.keys())}. {e}"
            )
        if not parsed.embeddings or not parsed.embeddings[0]:
            raise ProviderPermanentError("Ollama response contains an empty embedding list.")
        return parsed.embeddings
