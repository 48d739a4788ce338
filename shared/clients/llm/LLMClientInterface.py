from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.llm.models.ChatResponse import ChatCompletion
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import KnowledgeBaseError, ModelNotFoundError


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="gpt-4.1-mini")

    def error_for_status(self, status_code: int, message: str) -> KnowledgeBaseError:
        # chat backends answer 404 for an unknown model
        if status_code == 404:
            return ModelNotFoundError(message, status_code=status_code)
        return super().error_for_status(status_code, message)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(
        self,
        messages: list[dict],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).
            model (str): The chat model to use.
            temperature (float | None): Sampling temperature, backend default if None.
            max_tokens (int | None): Completion token limit, backend default if None.
            json_mode (bool): Ask the backend to answer with a JSON object.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> ChatCompletion:
        """Extract the assistant reply and token usage from a raw chat API response.

        Raises:
            ProviderPermanentError: If the response does not contain a valid message.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(
        self,
        messages: list[dict],
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> ChatCompletion:
        """Send a chat/completion request and return the normalised reply.

        Args:
            messages (list[dict]): OpenAI-format messages.
            api_key (str | None): Credential for this call. Falls back to the configured key.
            model (str | None): Model override. Falls back to LLM_CHAT_MODEL.
            temperature (float | None): Sampling temperature.
            max_tokens (int | None): Completion token limit.
            json_mode (bool): Request a JSON object answer.

        Returns:
            ChatCompletion: Reply text plus token usage.

        Raises:
            KnowledgeBaseError: Mapped from the provider status.
            ProviderPermanentError: If the response does not contain a valid reply.
        """
        body = self.get_chat_payload(
            messages,
            model=model or self.chat_model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
            api_key=api_key,
        )
        return self.extract_chat_response(response.json())
