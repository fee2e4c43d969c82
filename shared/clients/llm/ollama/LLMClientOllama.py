from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
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
        api_key = self.settings["API_KEY"]
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict]) -> dict:
        # ollama names the token cap num_predict and expects sampling under options
        return {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"num_predict": self.max_tokens, "temperature": self.temperature},
        }

    ################ RESPONSE PARSER ##################
    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if content is None:
            raise ValueError(f"Ollama chat response carries no message. Keys: {list(response_data)}")
        return content
