from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """
    Base manager that instantiates one client per client type, chosen by the
    ``<TYPE>_ENGINE`` environment variable.

    Engine "openai" for type "embed" resolves to the class
    ``shared.clients.embed.openai.EmbedClientOpenai.EmbedClientOpenai``.
    """

    client_type: str = ""
    class_prefix: str = ""
    default_engine: str | None = None

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine name from ENV configuration.

        Returns:
            str: The engine name, capitalised (e.g. "Qdrant").

        Raises:
            ValueError: If no engine is specified and there is no default.
        """
        engine = self.helper_config.get_string_val(f"{self.client_type.upper()}_ENGINE", default=self.default_engine)
        if not engine:
            raise ValueError(f"No {self.client_type.upper()} engine specified in configuration.")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Imports and instantiates the client class for the configured engine.

        Raises:
            ValueError: If the engine has no matching client module or class.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type.upper()} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type.upper(), engine)
        return client

    def get_client(self) -> ClientInterface:
        return self.client
