"""Embedding pipeline.

Turns a car record into its canonical text, splits the text into
deterministic overlapping chunks and embeds all chunks with a single batch
request to the embed client.
"""

from pydantic import BaseModel

from services.vector_sync.TextBuilder import build_record_text
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import DerivedDataError
from shared.models.record import CarRecord

CHUNK_SIZE = 1000       # characters per text chunk
CHUNK_OVERLAP = 100     # character overlap between consecutive chunks


class EmbeddedChunk(BaseModel):
    index: int
    text: str
    vector: list[float]


class EmbeddingPipeline:
    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._chunk_size = int(helper_config.get_number_val("SYNC_CHUNK_SIZE", default=CHUNK_SIZE))
        self._chunk_overlap = int(helper_config.get_number_val("SYNC_CHUNK_OVERLAP", default=CHUNK_OVERLAP))
        if self._chunk_size <= 0 or not 0 <= self._chunk_overlap < self._chunk_size:
            raise ValueError(
                "Invalid chunking configuration: size=%d overlap=%d." % (self._chunk_size, self._chunk_overlap)
            )

    ##########################################
    ################ CHUNKING ################
    ##########################################

    def split_text(self, text: str) -> list[str]:
        """Split a text into overlapping chunks.

        Args:
            text (str): The full record text.

        Returns:
            list[str]: Ordered list of text chunks, empty for empty text.
        """
        if not text:
            return []
        chunks: list[str] = []
        start = 0
        while start < len(text):
            end = min(start + self._chunk_size, len(text))
            chunks.append(text[start:end])
            if end >= len(text):
                break
            start = end - self._chunk_overlap
        return chunks

    def build_chunks(self, record: CarRecord) -> list[str]:
        return self.split_text(build_record_text(record))

    ##########################################
    ############### EMBEDDING ################
    ##########################################

    async def embed(self, text: str) -> list[float]:
        """Embed a single text, e.g. a search query."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts with one provider request.

        Raises:
            DerivedDataError: If the provider fails or returns an unusable response.
        """
        if not texts:
            return []
        try:
            return await self._embed_client.do_embed(texts=texts)
        except DerivedDataError:
            raise
        except Exception as exc:
            self.logging.error(
                "Embedding %d text(s) with '%s' failed: %s", len(texts), self._embed_client.get_engine_name(), exc
            )
            raise DerivedDataError(f"Embedding failed: {exc}") from exc

    async def embed_record(self, record: CarRecord) -> list[EmbeddedChunk]:
        """Chunk and embed a record.

        Returns:
            list[EmbeddedChunk]: One entry per chunk, in chunk order.

        Raises:
            DerivedDataError: If embedding fails. Nothing has been written at that point.
        """
        chunks = self.build_chunks(record)
        vectors = await self.embed_batch(chunks)
        self.logging.debug("Embedded record id=%s into %d chunk(s).", record.id, len(chunks))
        return [EmbeddedChunk(index=i, text=text, vector=vector) for i, (text, vector) in enumerate(zip(chunks, vectors))]
