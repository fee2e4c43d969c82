"""CRUD endpoints for the car catalog.

These endpoints only write to the primary store. Embedding, metadata patching
and vector cleanup follow through the change feed watcher.
"""

import math

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from server.dependencies.auth import verify_api_key
from server.dependencies.errors import to_http_exception
from server.models.requests import CarCreateRequest, CarUpdateRequest
from server.models.responses import CarListResponse
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.errors import BridgeError, RecordNotFoundError, RecordValidationError
from shared.models.record import CarRecord

router = APIRouter(prefix="/cars", tags=["cars"], dependencies=[Depends(verify_api_key)])


def _get_store(request: Request) -> StoreClientInterface:
    return request.app.state.store_client


def _serialize(record: CarRecord) -> dict:
    return record.model_dump(by_alias=True)


@router.get("")
async def list_cars(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    brand: str | None = None,
    category: str | None = None,
    fuelType: str | None = None,
) -> CarListResponse:
    """List cars newest first, filtered by case-insensitive substrings."""
    filters = {"brand": brand, "category": category, "fuelType": fuelType}
    try:
        records, total = await _get_store(request).do_list_records(
            page=page,
            limit=limit,
            filters={key: value for key, value in filters.items() if value},
        )
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
    return CarListResponse(
        cars=[_serialize(record) for record in records],
        totalPages=math.ceil(total / limit),
        currentPage=page,
        total=total,
    )


@router.get("/{car_id}")
async def get_car(request: Request, car_id: str) -> dict:
    try:
        record = await _get_store(request).do_fetch_record(car_id)
        if record is None:
            raise RecordNotFoundError("Car not found")
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
    return {"car": _serialize(record)}


@router.post("", status_code=201)
async def add_car(request: Request, body: CarCreateRequest) -> dict:
    store = _get_store(request)
    try:
        data = store.validate_create(body.model_dump(exclude_none=True))
        record = await store.do_create_record(data)
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
    request.app.state.logging.info("Car added: %s (id=%s), change feed will handle vector creation.", record.name, record.id)
    return {"message": "Car added successfully. Vector embeddings will be generated automatically.", "car": _serialize(record)}


@router.post("/bulk")
async def add_cars(request: Request, body: list[CarCreateRequest]) -> JSONResponse:
    """Create several cars. Invalid items are reported without aborting the others.

    Returns:
        JSONResponse: 201 if every car was created, 207 if some failed, 400 for an empty list.
    """
    if not body:
        raise to_http_exception(RecordValidationError("No car data provided"))
    store = _get_store(request)
    created: list[dict] = []
    errors: list[dict] = []
    for index, item in enumerate(body):
        try:
            record = await store.do_create_record(store.validate_create(item.model_dump(exclude_none=True)))
            created.append(_serialize(record))
        except BridgeError as exc:
            errors.append({"index": index, "kind": exc.kind, "error": str(exc)})
    content = {
        "message": f"Processed {len(body)} cars. {len(created)} successful, {len(errors)} failed.",
        "successful": len(created),
        "failed": len(errors),
        "cars": created,
        "errors": errors,
    }
    return JSONResponse(status_code=207 if errors else 201, content=content)


@router.put("/{car_id}")
async def update_car(request: Request, car_id: str, body: CarUpdateRequest) -> dict:
    store = _get_store(request)
    try:
        data = store.validate_update(body.model_dump(exclude_unset=True))
        record = await store.do_update_record(car_id, data)
        if record is None:
            raise RecordNotFoundError("Car not found")
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
    return {"message": "Car updated successfully. Vector embeddings will be updated automatically.", "car": _serialize(record)}


@router.delete("/{car_id}")
async def delete_car(request: Request, car_id: str) -> dict:
    try:
        record = await _get_store(request).do_delete_record(car_id)
        if record is None:
            raise RecordNotFoundError("Car not found")
    except BridgeError as exc:
        raise to_http_exception(exc) from exc
    return {"message": "Car deleted successfully. Vector embeddings will be cleaned up automatically.", "deletedCar": _serialize(record)}
