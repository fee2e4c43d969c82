"""FastAPI application entry point for catalog_ai_bridge."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.ClientInterface import ClientInterface
from services.vector_sync.ChangeFeedWatcher import ChangeFeedWatcher
from services.vector_sync.DebounceScheduler import DEBOUNCE_SECONDS, DebounceScheduler
from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from services.vector_sync.SyncService import SyncService
from services.vector_sync.VectorIndexStore import VectorIndexStore
from server.core.AnswerComposer import AnswerComposer
from server.core.RetrievalCache import CACHE_TTL_SECONDS, SWEEP_INTERVAL_SECONDS, RetrievalCache
from server.routers.AskRouter import router as ask_router
from server.routers.CarRouter import router as car_router
from server.routers.HealthRouter import router as health_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.app_version = app_version
    app.state.helper_config = config = HelperConfig(logger=logging)

    manager = ClientManager(helper_config=config)
    store_client = manager.get_client("store")
    embed_client = manager.get_client("embed")
    llm_client = manager.get_client("llm")
    rag_client = manager.get_client("rag")
    clients = manager.get_clients()

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")
    await check_connections(clients)

    app.state.store_client = store_client

    pipeline = EmbeddingPipeline(helper_config=config, embed_client=embed_client)
    index_store = VectorIndexStore(helper_config=config, rag_client=rag_client)
    vector_size, _ = await embed_client.do_fetch_embedding_vector_size()
    await index_store.ensure_collection(vector_size)

    sync_service = SyncService(
        helper_config=config,
        store_client=store_client,
        pipeline=pipeline,
        index_store=index_store,
    )
    scheduler = DebounceScheduler(
        action=sync_service.do_record_sync,
        logger=logging,
        delay=float(config.get_number_val("SYNC_DEBOUNCE_SECONDS", default=DEBOUNCE_SECONDS)),
    )
    watcher = ChangeFeedWatcher(
        helper_config=config,
        store_client=store_client,
        scheduler=scheduler,
        index_store=index_store,
    )
    cache = RetrievalCache(
        logger=logging,
        ttl_seconds=float(config.get_number_val("CACHE_TTL_SECONDS", default=CACHE_TTL_SECONDS)),
    )
    app.state.sync_service = sync_service
    app.state.debounce_scheduler = scheduler
    app.state.watcher = watcher
    app.state.retrieval_cache = cache
    app.state.answer_composer = AnswerComposer(
        helper_config=config,
        pipeline=pipeline,
        index_store=index_store,
        llm_client=llm_client,
        cache=cache,
    )

    if config.get_bool_val("SYNC_FULL_ON_STARTUP", default=False):
        await sync_service.do_full_sync()

    # background tasks, never awaited by request handlers
    sweeper_stop = asyncio.Event()
    sweep_interval = float(config.get_number_val("CACHE_SWEEP_INTERVAL_SECONDS", default=SWEEP_INTERVAL_SECONDS))
    watcher_task = asyncio.create_task(watcher.watch(), name="change-feed-watcher")
    sweeper_task = asyncio.create_task(cache.run_sweeper(sweep_interval, sweeper_stop), name="cache-sweeper")

    # while the app is running...
    yield

    # when the app shuts down, stop background work and close all client connections
    logging.info("Shutting down, stopping background tasks...")
    watcher.stop()
    sweeper_stop.set()
    watcher_task.cancel()
    await asyncio.gather(watcher_task, sweeper_task, return_exceptions=True)
    await scheduler.close()

    logging.info("Closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="catalog_ai_bridge",
    description=(
        "Keeps a vector index of a car catalog in sync with its primary store "
        "and answers questions about the catalog via POST /ask. "
        "Catalog records are managed via /cars; the change feed updates the index."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ask_router)
app.include_router(car_router)
app.include_router(health_router)


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Store failures are non-fatal: the store connection is opened lazily and the
    change feed reconnects on its own. Embed, LLM and RAG failures are fatal,
    queries cannot be served without them.

    Raises:
        Exception: If a critical service is not reachable.
    """
    for client in clients:
        if await client.do_healthcheck():
            continue
        if client.get_client_type() == "store":
            logging.warning(
                "Store client '%s' is not reachable. Change feed will keep retrying.",
                client.__class__.__name__,
            )
            continue
        raise Exception(
            f"{client.get_client_type().upper()} client '{client.__class__.__name__}' is not reachable. Cannot serve queries."
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting catalog_ai_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
