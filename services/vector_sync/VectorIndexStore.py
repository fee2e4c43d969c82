"""Vector index store.

All index operations are keyed by the back-reference id of the source record.
Point ids are derived deterministically from (back_ref_id, chunk_index), so
upserting the same record twice overwrites instead of duplicating.
"""

import uuid
from typing import Any

from services.vector_sync.EmbeddingPipeline import EmbeddedChunk
from services.vector_sync.TextBuilder import build_metadata
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import SearchHit, VectorMetadata, VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.record import CarRecord

UPSERT_BATCH_SIZE = 100  # max points per upsert call
BACK_REF_FIELD = "back_ref_id"
SEARCH_OVERFETCH = 4     # chunk hits fetched per requested record hit


def make_point_id(back_ref_id: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 point ID for a chunk of a record.

    Args:
        back_ref_id (str): Id of the source record.
        chunk_index (int): Zero-based chunk index within the record text.

    Returns:
        str: UUID string usable as a point ID.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"car:{back_ref_id}:{chunk_index}"))


class VectorIndexStore:
    def __init__(self, helper_config: HelperConfig, rag_client: RAGClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client

    def _back_ref_filter(self, back_ref_id: str, min_chunk_index: int | None = None) -> dict:
        gte = {"chunk_index": min_chunk_index} if min_chunk_index is not None else None
        return self._rag_client.build_filter({BACK_REF_FIELD: back_ref_id}, gte)

    ##########################################
    ################ SETUP ###################
    ##########################################

    async def ensure_collection(self, vector_size: int) -> bool:
        """Create the collection and its back-reference index if missing.

        Returns:
            bool: True if the collection was created, False if it already existed.
        """
        if await self._rag_client.do_existence_check():
            return False
        self.logging.info("Creating vector collection with %d dimensions (cosine).", vector_size)
        await self._rag_client.do_create_collection(vector_size=vector_size, distance="Cosine")
        await self._rag_client.do_create_payload_index(field_name=BACK_REF_FIELD, field_schema="keyword")
        return True

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def upsert(self, back_ref_id: str, chunks: list[EmbeddedChunk], metadata: VectorMetadata) -> int:
        """Write all chunk points of a record, then drop points left over from a longer previous version.

        Args:
            back_ref_id (str): Id of the source record.
            chunks (list[EmbeddedChunk]): Embedded chunks in chunk order.
            metadata (VectorMetadata): Metadata copied into every chunk.

        Returns:
            int: Number of points written.
        """
        points: list[dict[str, Any]] = []
        for chunk in chunks:
            payload = VectorPoint(
                back_ref_id=back_ref_id,
                chunk_index=chunk.index,
                chunk_count=len(chunks),
                text=chunk.text,
                metadata=metadata,
            )
            points.append({
                "id": make_point_id(back_ref_id, chunk.index),
                "vector": chunk.vector,
                "payload": payload.model_dump(),
            })

        # upsert in batches to avoid oversized requests
        for batch_start in range(0, len(points), UPSERT_BATCH_SIZE):
            await self._rag_client.do_upsert_points(points[batch_start: batch_start + UPSERT_BATCH_SIZE])

        # stale tail of a record whose text used to produce more chunks
        await self._rag_client.do_delete_points_by_filter(self._back_ref_filter(back_ref_id, min_chunk_index=len(chunks)))

        self.logging.info("Upserted %d point(s) for record id=%s.", len(points), back_ref_id)
        return len(points)

    async def upsert_record(self, record: CarRecord, chunks: list[EmbeddedChunk]) -> int:
        return await self.upsert(record.id, chunks, build_metadata(record))

    async def patch_metadata(self, back_ref_id: str, fields: dict[str, Any]) -> None:
        """Overwrite metadata keys on every point of a record without re-embedding.

        A record that has not been indexed yet matches no points; that is a success.
        """
        if not fields:
            return
        await self._rag_client.do_set_payload_by_filter(
            payload=fields,
            filter=self._back_ref_filter(back_ref_id),
            key="metadata",
        )
        self.logging.info("Patched metadata %s for record id=%s.", sorted(fields), back_ref_id)

    async def delete_by_back_ref(self, back_ref_id: str) -> None:
        """Remove every point of a record. Deleting an absent record is a success."""
        await self._rag_client.do_delete_points_by_filter(self._back_ref_filter(back_ref_id))
        self.logging.info("Deleted vectors for record id=%s.", back_ref_id)

    ##########################################
    ################ READS ###################
    ##########################################

    async def similarity_search(self, query_vector: list[float], k: int) -> list[SearchHit]:
        """Return the k records closest to the query vector, best first.

        Chunk hits are collapsed per record; the best scoring chunk represents it.
        """
        if k <= 0:
            return []
        raw_hits = await self._rag_client.do_search(vector=query_vector, limit=k * SEARCH_OVERFETCH)
        hits: list[SearchHit] = []
        seen: set[str] = set()
        for raw in raw_hits:
            payload = raw.get("payload") or {}
            back_ref_id = payload.get(BACK_REF_FIELD)
            if back_ref_id is None or back_ref_id in seen:
                continue
            seen.add(back_ref_id)
            hits.append(SearchHit(
                back_ref_id=back_ref_id,
                score=float(raw.get("score", 0.0)),
                text=payload.get("text", ""),
                metadata=VectorMetadata.model_validate(payload.get("metadata") or {}),
            ))
            if len(hits) >= k:
                break
        return hits

    async def list_back_ref_ids(self) -> set[str]:
        """Collect the back-reference ids of every indexed record."""
        page = await self._rag_client.do_scroll_all(filter=None, with_payload=[BACK_REF_FIELD])
        return {str(back_ref_id) for back_ref_id in page.payload_values(BACK_REF_FIELD)}
