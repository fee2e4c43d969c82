from pydantic import BaseModel


class AskRequest(BaseModel):
    query: str = ""


class CarCreateRequest(BaseModel):
    """Body of POST /cars. Presence of name and brand is checked by the store client."""

    name: str | None = None
    brand: str | None = None
    modelYear: int | None = None
    category: str | None = None
    description: str | None = None
    price: float | None = None
    fuelType: str | None = None
    transmission: str | None = None
    engineCapacity: str | None = None
    mileage: str | None = None
    available: bool | None = None


class CarUpdateRequest(CarCreateRequest):
    """Body of PUT /cars/{id}. Only the fields sent are updated."""
