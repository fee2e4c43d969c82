"""Sync runner entry point.

Embeds every car record of the primary store into the vector index and
removes vectors of deleted records. The API server keeps the index current
afterwards through the change feed; run this for an initial backfill or to
heal a stale index.

Usage:
    python -m services.vector_sync.vector_sync_runner
"""

import asyncio

from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from services.vector_sync.SyncService import SyncService
from services.vector_sync.VectorIndexStore import VectorIndexStore
from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main() -> None:
    """Run the full synchronisation pipeline."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    manager = ClientManager(helper_config=config)

    store_client: StoreClientInterface = manager.get_client("store")
    embed_client: EmbedClientInterface = manager.get_client("embed")
    rag_client: RAGClientInterface = manager.get_client("rag")

    try:
        # every client is required, there is no point in a partial sync
        for client in manager.get_clients():
            try:
                await client.boot()
                if not await client.do_healthcheck():
                    raise Exception("healthcheck failed")
            except Exception as e:
                logger.error("Error booting %s client %s: %s. Aborting.", client.get_client_type(), client.get_engine_name(), e)
                return

        index_store = VectorIndexStore(helper_config=config, rag_client=rag_client)
        vector_size, _ = await embed_client.do_fetch_embedding_vector_size()
        await index_store.ensure_collection(vector_size)

        sync_service = SyncService(
            helper_config=config,
            store_client=store_client,
            pipeline=EmbeddingPipeline(helper_config=config, embed_client=embed_client),
            index_store=index_store,
        )
        await sync_service.do_full_sync()
    finally:
        for client in manager.get_clients():
            await client.close()


if __name__ == "__main__":
    asyncio.run(main())
