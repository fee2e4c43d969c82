from abc import abstractmethod

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(HttpClientInterface):
    """Generation provider: answers a user query under a system context.

    LLM_CHAT_MODEL selects the model, LLM_MAX_TOKENS caps the answer length
    and LLM_TEMPERATURE controls sampling. Timeouts and retries come from
    HttpClientInterface.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        prefix = self.get_client_type().upper()
        self.chat_model = helper_config.get_string_val(f"{prefix}_CHAT_MODEL")
        self.max_tokens = int(helper_config.get_number_val(f"{prefix}_MAX_TOKENS", default=300))
        self.temperature = float(helper_config.get_number_val(f"{prefix}_TEMPERATURE", default=0.1))

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Path of the chat endpoint."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Request body for a non-streaming chat call.

        Args:
            messages (list[dict]): Chat messages as {"role": ..., "content": ...}.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Assistant reply text of a decoded chat response.

        Raises:
            ValueError: If the response carries no reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict]) -> str:
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages),
            raise_on_error=True,
        )
        return self.extract_chat_response(response.json())

    async def do_generate(self, system_context: str, user_query: str) -> str:
        """Answer a single question.

        Args:
            system_context (str): Instructions together with the retrieved context.
            user_query (str): The question as the user asked it.

        Returns:
            str: The generated answer.
        """
        return await self.do_chat([
            {"role": "system", "content": system_context},
            {"role": "user", "content": user_query},
        ])
