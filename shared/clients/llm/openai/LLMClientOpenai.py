import pydantic

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ChatResponse import ChatCompletion, OpenAIChatResponse
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderPermanentError
from shared.models.config import EnvConfig


class LLMClientOpenai(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

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

    def _get_endpoint_chat(self) -> str:
        return "/v1/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(
        self,
        messages: list[dict],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> dict:
        body: dict = {"model": model, "messages": messages}
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> ChatCompletion:
        try:
            parsed = OpenAIChatResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise ProviderPermanentError(f"OpenAI chat response has an unexpected shape: {e}")
        if not parsed.choices or parsed.choices[0].message.content is None:
            raise ProviderPermanentError(
                f"OpenAI chat response does not contain a valid message. Response keys: {list(response_data.keys())}"
            )
        usage = parsed.usage
        return ChatCompletion(
            content=parsed.choices[0].message.content,
            model=parsed.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
        )
