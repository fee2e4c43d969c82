from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

OPENAI_BASE_URL = "https://api.openai.com/v1"


class EmbedClientOpenai(EmbedClientInterface):
    """OpenAI /embeddings, also usable for compatible gateways via EMBED_OPENAI_BASE_URL."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_settings_schema(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", default=OPENAI_BASE_URL),
            EnvConfig(env_key="API_KEY"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self.settings['API_KEY']}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ################ RESPONSE PARSER ##################
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors from the "data" list, reordered by each entry's "index"."""
        data = response_data.get("data")
        if not data:
            raise ValueError(f"OpenAI returned no embeddings. Keys: {list(response_data)}")
        return [item["embedding"] for item in sorted(data, key=lambda item: item.get("index", 0))]
