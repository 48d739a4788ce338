import pydantic

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ChatResponse import ChatCompletion, OllamaChatResponse
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderPermanentError
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
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
        key = api_key or self._api_key
        if key:
            return {"Authorization": f"Bearer {key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(
        self,
        messages: list[dict],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> dict:
        """Build the Ollama chat request body.

        Sampling settings go into ``options``; ``num_predict`` is Ollama's name for max_tokens.
        """
        options: dict = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        body: dict = {"model": model, "messages": messages, "stream": False}
        if options:
            body["options"] = options
        if json_mode:
            body["format"] = "json"
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> ChatCompletion:
        try:
            parsed = OllamaChatResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise ProviderPermanentError(
                f"Ollama chat response does not contain a valid message. Response keys: {list(response_data.keys())}. {e}"
            )
        if parsed.message.content is None:
            raise ProviderPermanentError("Ollama chat response message has no content.")
        return ChatCompletion(
            content=parsed.message.content,
            model=parsed.model,
            prompt_tokens=parsed.prompt_eval_count,
            completion_tokens=parsed.eval_count,
        )
