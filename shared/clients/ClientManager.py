from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

# client type -> class name prefix, e.g. "rag" + "Qdrant" -> RAGClientQdrant
_CLASS_PREFIXES: dict[str, str] = {
    "store": "StoreClient",
    "embed": "EmbedClient",
    "llm": "LLMClient",
    "rag": "RAGClient",
}


class ClientManager:
    """
    Instantiates the configured client for each client type.

    The engine for a type is read from "{TYPE}_ENGINE" (e.g. RAG_ENGINE=qdrant) and
    resolved to the class shared.clients.{type}.{engine}.{Prefix}{Engine}.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._clients: dict[str, ClientInterface] = {}

    def _get_engine_from_env(self, client_type: str) -> str:
        """
        Reads the engine for a client type from ENV configuration.

        Args:
            client_type (str): The client type, e.g. "embed".

        Returns:
            str: Capitalised engine name (e.g. "Ollama").

        Raises:
            ValueError: If no engine is configured for the client type.
        """
        env_key = f"{client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key)
        if not engine:
            raise ValueError(f"No {client_type} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self, client_type: str) -> ClientInterface:
        """
        Imports and instantiates the client class for the configured engine.

        Args:
            client_type (str): The client type, e.g. "rag".

        Returns:
            ClientInterface: The instantiated client.

        Raises:
            ValueError: If the client type or engine is unsupported.
        """
        if client_type not in _CLASS_PREFIXES:
            raise ValueError(f"Unknown client type '{client_type}'.")
        engine = self._get_engine_from_env(client_type)
        class_name = f"{_CLASS_PREFIXES[client_type]}{engine}"
        try:
            module = __import__(
                f"shared.clients.{client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {client_type} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", client_type, engine)
        return client

    def get_client(self, client_type: str) -> ClientInterface:
        """
        Returns the client for a type, instantiating it on first access.

        Args:
            client_type (str): One of "store", "embed", "llm", "rag".

        Returns:
            ClientInterface: The client instance.
        """
        client_type = client_type.lower()
        if client_type not in self._clients:
            self._clients[client_type] = self._initialize_client(client_type)
        return self._clients[client_type]

    def get_clients(self) -> list[ClientInterface]:
        """Returns every client instantiated so far, in creation order."""
        return list(self._clients.values())
