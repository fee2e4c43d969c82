from fastapi import HTTPException

from shared.helper.errors import (
    BridgeError,
    DerivedDataError,
    RecordNotFoundError,
    RecordValidationError,
    TransientTransportError,
)

_STATUS_CODES: dict[type[BridgeError], int] = {
    RecordValidationError: 400,
    RecordNotFoundError: 404,
    DerivedDataError: 500,
    TransientTransportError: 503,
}


def to_http_exception(exc: BridgeError) -> HTTPException:
    """Map a bridge error to an HTTPException whose detail carries the error kind."""
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 500)
    return HTTPException(status_code=status_code, detail={"kind": exc.kind, "message": str(exc)})
