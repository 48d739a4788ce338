import pydantic

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.models.EmbedResponse import OpenAIEmbeddingResponse
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderPermanentError
from shared.models.config import EnvConfig


class EmbedClientOpenai(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._dimensions = self.get_config_val("DIMENSIONS", default=0, val_type="number")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="DIMENSIONS", val_type="number", default=0),
        ]

    ################ AUTH ##################
    def _get_auth_header(self, api_key: str | None = None) -> dict:
        key = api_key or self._api_key
        if key:
            return {"Authorization": f"Bearer {key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str], model: str) -> dict:
        """Build the OpenAI embedding request body.

        ``dimensions`` is only sent when EMBED_OPENAI_DIMENSIONS is set, since
        older models reject the field.
        """
        body = {"model": model, "input": texts, "encoding_format": "float"}
        if self._dimensions:
            body["dimensions"] = int(self._dimensions)
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        try:
            parsed = OpenAIEmbeddingResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise ProviderPermanentError(
                f"OpenAI response does not contain valid embeddings. Response keys: {list(response_data.keys())}. {e}"
            )
        return [item.embedding for item in sorted(parsed.data, key=lambda item: item.index)]
