from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Common base of the store, embed, llm and rag clients.

    A client is identified by its type ("rag") and engine ("Qdrant"). Engine
    settings are declared by _get_settings_schema() and resolved once on
    construction from "{TYPE}_{ENGINE}_{KEY}" variables, so a misconfigured
    engine fails at startup instead of on its first request.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.settings: dict[str, Any] = self._resolve_settings()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Client type, e.g. "rag"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Engine name as used in class names, e.g. "Qdrant"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_settings_schema(self) -> list[EnvConfig]:
        """Declares every engine-scoped setting the client reads.

        Returns:
            list[EnvConfig]: One entry per setting; entries without default are mandatory.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """Full environment key of an engine setting, e.g. "API_KEY" -> "RAG_QDRANT_API_KEY"."""
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read one engine setting through HelperConfig.

        Raises:
            ValueError: If the setting is mandatory and unset, malformed, or val_type is unknown.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for {self._get_config_key_name(raw_key)}.")
        return readers[val_type](self._get_config_key_name(raw_key), default=default)

    def _resolve_settings(self) -> dict[str, Any]:
        return {
            entry.env_key: self.get_config_val(entry.env_key, default=entry.default, val_type=entry.val_type)
            for entry in self._get_settings_schema()
        }

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open the connection resources of the client."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the connection resources of the client. Safe to call twice."""
        pass

    @abstractmethod
    async def do_healthcheck(self) -> bool:
        """Returns True if the backend answered."""
        pass
