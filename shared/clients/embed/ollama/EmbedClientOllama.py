from typing import Tuple

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_settings_schema(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL"),
            EnvConfig(env_key="API_KEY", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # plain ollama has no auth, a reverse proxy in front of it may
        api_key = self.settings["API_KEY"]
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_endpoint_model_details(self) -> str:
        return "/api/show"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ################ RESPONSE PARSER ##################
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings") or []
        if not embeddings or not all(embeddings):
            raise ValueError(f"Ollama returned no embeddings for model {self.embed_model}. Keys: {list(response_data)}")
        return embeddings

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Read "<family>.embedding_length" from the model details, no probe embedding needed.

        Raises:
            ValueError: If the model details carry no embedding length.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_model_details(),
            json={"model": self.embed_model},
            raise_on_error=True,
        )
        model_info: dict = response.json().get("model_info") or {}
        lengths = [value for key, value in model_info.items() if key.endswith(".embedding_length")]
        if not lengths:
            raise ValueError(f"Ollama model details for {self.embed_model} carry no embedding length.")
        return int(lengths[0]), self.embed_distance
