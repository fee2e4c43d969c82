from typing import Any

from pydantic import BaseModel


class SourceItem(BaseModel):
    name: str
    brand: str
    price: float | str
    category: str


class AskResponse(BaseModel):
    query: str
    answer: str
    responseTime: str
    cached: bool
    sources: list[SourceItem]


class CarListResponse(BaseModel):
    cars: list[dict[str, Any]]
    totalPages: int
    currentPage: int
    total: int


class HealthResponse(BaseModel):
    status: str
    version: str
    watcher: dict[str, Any]
    pending_debounce: int
    cache_size: int
