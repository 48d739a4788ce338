from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles
from typing import Any
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import KnowledgeBaseError, NetworkError, ProviderTimeoutError, error_from_status


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        # client and config
        self._client: httpx.AsyncClient | None = None
        self._transport: httpx.AsyncBaseTransport | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def raise_for_provider_status(self, response: httpx.Response) -> None:
        """
        Raises the error kind matching a non-2xx response.

        Raises:
            KnowledgeBaseError: Subclass chosen by status code (credential, rate limit, conflict, ...).
        """
        if response.is_success:
            return
        url = str(response.request.url) if response.request else "unknown url"
        self.logging.error(
            "Request to %s failed with status %d: %s",
            url,
            response.status_code,
            response.text[:200],
        )
        raise self.error_for_status(
            response.status_code,
            f"{self.get_client_type().upper()} client '{self.get_engine_name()}' request to {url} failed with status {response.status_code}: {response.text[:200]}",
        )

    def error_for_status(self, status_code: int, message: str) -> KnowledgeBaseError:
        """Map a non-2xx status to an error kind. Clients override single statuses."""
        return error_from_status(status_code, message)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "RAG_QDRANT_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            if default == "":
                return self._helper_config.get_optional_string_val(key) or ""
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self, api_key: str | None = None) -> dict:
        """
        Returns the authentication header for the client backend server.

        Args:
            api_key (str | None): Per-call credential (e.g. the bot owner's key). Falls back to the configured key.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server from env variables

        Returns:
            str: The base URL of the client backend server (e.g. "http://localhost:6333")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests.

        Returns:
            str: The endpoint path for healthcheck requests (e.g. "/healthz")
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the client backend is healthy by sending a test request.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def use_transport(self, transport: httpx.AsyncBaseTransport) -> None:
        """Route all requests through the given transport (e.g. httpx.MockTransport). Call before boot()."""
        self._transport = transport

    async def boot(self) -> None:
        """Initialise the HTTP client and any other resources needed for making requests."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        api_key: str | None = None,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            content: Raw bytes / stream body.
            data: Form-encoded body (dict or list of tuples).
            files: Multipart file upload.
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Map non-2xx responses to the matching error kind.
            api_key: Per-call credential passed on to _get_auth_header().

        Returns:
            The raw httpx.Response.

        Raises:
            RuntimeError: If the client is not initialised.
            ProviderTimeoutError: If the request exceeds the client timeout.
            NetworkError: If the backend cannot be reached.
            KnowledgeBaseError: On non-2xx status when raise_on_error is True.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        # httpx sets Content-Type for json/data/files; raw content needs it via additional_headers
        headers: dict = {}
        headers.update(self._get_auth_header(api_key))
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "timeout": self.timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif data is not None:
            kwargs["data"] = data
        elif files is not None:
            kwargs["files"] = files
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Request to {kwargs['url']} timed out after {self.timeout}s: {e}")
        except httpx.TransportError as e:
            raise NetworkError(f"Request to {kwargs['url']} could not be sent: {e}")

        if raise_on_error:
            self.raise_for_provider_status(response)

        return response
