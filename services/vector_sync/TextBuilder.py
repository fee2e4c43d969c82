"""Derives the canonical embedding text and the index metadata of a car record.

Both functions are pure: the same record always yields the same text, so that
re-embedding an unchanged record produces identical chunks and point ids.
"""

from typing import Any

from shared.clients.rag.models.VectorPoint import VectorMetadata
from shared.models.record import DISPLAY_FIELDS, PASSTHROUGH_FIELDS, TEXT_FIELDS, CarRecord

MISSING_PLACEHOLDER = "N/A"

FIELD_LABELS: dict[str, str] = {
    "name": "Name",
    "brand": "Brand",
    "category": "Category",
    "description": "Description",
    "fuelType": "Fuel type",
    "transmission": "Transmission",
    "engineCapacity": "Engine capacity",
    "mileage": "Mileage",
}


def _render_value(value: Any) -> str:
    if value is None:
        return MISSING_PLACEHOLDER
    text = str(value).strip()
    return text or MISSING_PLACEHOLDER


def build_record_text(record: CarRecord) -> str:
    """Render the text-bearing fields of a record as labeled lines.

    Fields appear in the fixed TEXT_FIELDS order; missing or blank values are
    rendered as a placeholder so that line positions never shift.

    Args:
        record (CarRecord): The source record.

    Returns:
        str: The canonical text blob, e.g. "Name: Corolla\\nBrand: Toyota\\n...".
    """
    fields = record.store_fields()
    return "\n".join(f"{FIELD_LABELS[field]}: {_render_value(fields.get(field))}" for field in TEXT_FIELDS)


def build_metadata(record: CarRecord) -> VectorMetadata:
    """Copy display and passthrough fields of a record into index metadata."""
    fields = record.store_fields()
    values = {field: fields.get(field) for field in DISPLAY_FIELDS + PASSTHROUGH_FIELDS}
    return VectorMetadata(**values)
