from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """Selects the embedding backend from EMBED_ENGINE (default "openai")."""

    client_type = "embed"
    class_prefix = "EmbedClient"
    default_engine = "openai"

    def get_client(self) -> EmbedClientInterface:
        return self.client
