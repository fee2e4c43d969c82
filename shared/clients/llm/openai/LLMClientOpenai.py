from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

OPENAI_BASE_URL = "https://api.openai.com/v1"


class LLMClientOpenai(LLMClientInterface):
    """OpenAI /chat/completions, also usable for compatible gateways via LLM_OPENAI_BASE_URL."""

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

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    ################ RESPONSE PARSER ##################
    def extract_chat_response(self, response_data: dict) -> str:
        """Content of the first choice.

        Raises:
            ValueError: If there is no choice or it has no content.
        """
        choices = response_data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if content is None:
            raise ValueError(f"OpenAI chat response carries no content. Keys: {list(response_data)}")
        return content
