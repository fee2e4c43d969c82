from abc import abstractmethod
from typing import Tuple

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(HttpClientInterface):
    """Embedding provider: maps texts to fixed-length vectors.

    The model is shared across engines and read from EMBED_MODEL; the
    distance metric the vectors are meant for from EMBED_DISTANCE.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        prefix = self.get_client_type().upper()
        self.embed_model = helper_config.get_string_val(f"{prefix}_MODEL")
        self.embed_distance = helper_config.get_string_val(f"{prefix}_DISTANCE", default="Cosine")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """Path of the embedding endpoint."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Request body asking for one embedding per text."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Pull the vectors out of a decoded embedding response.

        Implementations must return the vectors in input order, whatever order
        the backend used.

        Raises:
            ValueError: If the response carries no usable vectors.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts.

        Args:
            texts (list[str] | str): A single text or a batch.

        Returns:
            list[list[float]]: One vector per input text, in input order.

        Raises:
            Exception: If the backend answered with an error status.
            ValueError: If the number of vectors does not match the number of texts.
        """
        batch = [texts] if isinstance(texts, str) else list(texts)
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(batch),
            raise_on_error=True,
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(batch):
            raise ValueError(f"Embedding backend returned {len(vectors)} vectors for {len(batch)} inputs.")
        return vectors

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Dimensionality and distance metric of the configured model.

        Embeds a probe text and measures it. Engines that can look the size up
        directly override this.
        """
        vectors = await self.do_embed("dimension probe")
        return len(vectors[0]), self.embed_distance
