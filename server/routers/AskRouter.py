from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.dependencies.errors import to_http_exception
from server.models.requests import AskRequest
from server.models.responses import AskResponse
from shared.helper.errors import BridgeError

router = APIRouter(prefix="/ask", tags=["ask"])


@router.post("")
async def ask_car_assistant(
    request: Request,
    body: AskRequest,
    _: None = Depends(verify_api_key),
) -> AskResponse:
    """Answer a question about the car catalog.

    Args:
        request (Request): FastAPI request (provides app.state.answer_composer).
        body (AskRequest): JSON body with the query string.
        _ (None): Auth dependency result (unused).

    Returns:
        AskResponse: The generated answer, its sources and whether it came from the cache.
    """
    answer_composer = request.app.state.answer_composer
    try:
        return await answer_composer.answer(body.query)
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
