"""Pydantic models for catalog records and their change events.

Hierarchy:
  CarRecord:    the source record as stored in the primary store.
  ChangeEvent:  a single mutation notification delivered by the change feed.

Field names in the primary store are camelCase; the model exposes snake_case
attributes with camelCase aliases so that store documents validate directly.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Ordered: the canonical text renders fields in exactly this order.
TEXT_FIELDS: tuple[str, ...] = (
    "name",
    "brand",
    "category",
    "description",
    "fuelType",
    "transmission",
    "engineCapacity",
    "mileage",
)

# Copied into vector metadata, never re-embedded.
PASSTHROUGH_FIELDS: tuple[str, ...] = ("price", "available", "modelYear")

DISPLAY_FIELDS: tuple[str, ...] = ("name", "brand", "category")

REQUIRED_FIELDS: tuple[str, ...] = ("name", "brand")


class CarRecord(BaseModel):
    """A car catalog item, the source of truth for every derived vector."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    brand: str
    model_year: int | None = Field(default=None, alias="modelYear")
    category: str | None = None
    description: str | None = None
    price: float | None = None
    fuel_type: str | None = Field(default=None, alias="fuelType")
    transmission: str | None = None
    engine_capacity: str | None = Field(default=None, alias="engineCapacity")
    mileage: str | None = None
    available: bool = True

    def store_fields(self) -> dict[str, Any]:
        """Return the record's fields keyed by their primary-store names (without id)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class ChangeOp(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """A mutation notification from the primary store's change feed.

    Attributes:
        op:              Kind of mutation.
        record_id:       Id of the affected record.
        changed_fields:  Store field names touched by an update (set and removed fields).
        updated_values:  New values of the changed fields; removed fields map to None.
        full_record:     The record after the mutation, when the feed delivered it.
    """

    op: ChangeOp
    record_id: str
    changed_fields: set[str] = set()
    updated_values: dict[str, Any] = {}
    full_record: CarRecord | None = None

    def touches_text(self) -> bool:
        return bool(self.changed_fields.intersection(TEXT_FIELDS))

    def passthrough_changes(self) -> dict[str, Any]:
        """Collect the new values of every changed passthrough field.

        Values come from the feed's update description first and fall back to
        the full record when the description did not carry them.
        """
        changes: dict[str, Any] = {}
        full = self.full_record.store_fields() if self.full_record else {}
        for field in PASSTHROUGH_FIELDS:
            if field not in self.changed_fields:
                continue
            if field in self.updated_values:
                changes[field] = self.updated_values[field]
            else:
                changes[field] = full.get(field)
        return changes
