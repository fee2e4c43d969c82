from fastapi import APIRouter, Request

from server.models.responses import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request) -> HealthResponse:
    """Liveness plus the state of the background sync and the answer cache."""
    state = request.app.state
    return HealthResponse(
        status="ok",
        version=state.app_version,
        watcher=state.watcher.get_state(),
        pending_debounce=state.debounce_scheduler.pending_count(),
        cache_size=state.retrieval_cache.size(),
    )
