import time

from server.core.RetrievalCache import RetrievalCache
from server.models.responses import AskResponse, SourceItem
from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from services.vector_sync.VectorIndexStore import VectorIndexStore
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.models.VectorPoint import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import DerivedDataError, RecordValidationError

TOP_K = 3
MAX_CONTEXT_CHARS = 4000
CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT = (
    "You are a helpful car catalog assistant and automotive expert. "
    "Use ONLY the provided context to answer questions. "
    "Always include exact prices when available. "
    "If the information is not in the context, clearly say that you don't have it. "
    "Be concise and specific.\n\n"
    "Context:\n{context}"
)


def format_price(price: float) -> str:
    """Render a price with thousands separators, e.g. 20000 -> "$20,000"."""
    if float(price).is_integer():
        return f"${price:,.0f}"
    return f"${price:,.2f}"


class AnswerComposer:
    """Answers questions about the catalog: cache -> similarity search -> generation -> cache."""

    def __init__(
        self,
        helper_config: HelperConfig,
        pipeline: EmbeddingPipeline,
        index_store: VectorIndexStore,
        llm_client: LLMClientInterface,
        cache: RetrievalCache,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._pipeline = pipeline
        self._index_store = index_store
        self._llm_client = llm_client
        self._cache = cache
        self._top_k = int(helper_config.get_number_val("ANSWER_TOP_K", default=TOP_K))
        self._max_context_chars = int(helper_config.get_number_val("ANSWER_MAX_CONTEXT_CHARS", default=MAX_CONTEXT_CHARS))

    ##########################################
    ############### CORE #####################
    ##########################################

    async def answer(self, query: str) -> AskResponse:
        """Answer a question from the indexed catalog.

        Args:
            query (str): The question as asked by the user.

        Returns:
            AskResponse: The answer with its sources; cached answers have cached=True.

        Raises:
            RecordValidationError: If the query is empty.
            DerivedDataError: If embedding, search or generation fails. Nothing is cached then.
        """
        if not query or not query.strip():
            raise RecordValidationError("Please provide a question.")

        cache_key = self._cache.normalize_key(query)
        cached = self._cache.get(cache_key)
        if cached is not None:
            self.logging.info("Cache hit for query: '%s'", query)
            return cached.model_copy(update={"query": query, "cached": True})

        start = time.monotonic()
        try:
            query_vector = await self._pipeline.embed(query)
            hits = await self._index_store.similarity_search(query_vector, self._top_k)
        except DerivedDataError:
            raise
        except Exception as exc:
            self.logging.error("Similarity search failed for query '%s': %s", query, exc)
            raise DerivedDataError(f"Similarity search failed: {exc}") from exc
        search_ms = (time.monotonic() - start) * 1000
        self.logging.debug("Vector search returned %d hit(s) in %.0fms.", len(hits), search_ms)

        context = self.build_context(hits)
        try:
            answer = await self._llm_client.do_generate(SYSTEM_PROMPT.format(context=context), query)
        except Exception as exc:
            self.logging.error("Answer generation failed for query '%s': %s", query, exc)
            raise DerivedDataError(f"Answer generation failed: {exc}") from exc

        total_ms = (time.monotonic() - start) * 1000
        self.logging.info("Answered query in %.0fms (vector search: %.0fms).", total_ms, search_ms)

        response = AskResponse(
            query=query,
            answer=answer,
            responseTime=f"{total_ms:.0f}ms",
            cached=False,
            sources=[self.build_source(hit) for hit in hits],
        )
        self._cache.set(cache_key, response)
        return response

    ##########################################
    ############### CONTEXT ##################
    ##########################################

    def build_context(self, hits: list[SearchHit]) -> str:
        """Assemble the numbered context blocks handed to the generator.

        The result is cut at the configured maximum context length.
        """
        blocks: list[str] = []
        for position, hit in enumerate(hits, start=1):
            block = hit.text
            if hit.metadata.price is not None:
                block += f"\nCURRENT PRICE: {format_price(hit.metadata.price)}"
            if hit.metadata.available is not None:
                block += f"\nAVAILABILITY: {'In stock' if hit.metadata.available else 'Out of stock'}"
            blocks.append(f"[Car {position}]\n{block}")
        context = CONTEXT_SEPARATOR.join(blocks)
        if len(context) > self._max_context_chars:
            self.logging.debug("Context truncated from %d to %d characters.", len(context), self._max_context_chars)
            context = context[: self._max_context_chars]
        return context

    @staticmethod
    def build_source(hit: SearchHit) -> SourceItem:
        meta = hit.metadata
        return SourceItem(
            name=meta.name or "Unknown",
            brand=meta.brand or "Unknown",
            price=meta.price if meta.price is not None else "N/A",
            category=meta.category or "Unknown",
        )
