"""Tests for canonical record text and metadata derivation."""

from services.vector_sync.TextBuilder import MISSING_PLACEHOLDER, build_metadata, build_record_text
from shared.clients.rag.models.VectorPoint import PROVENANCE_TAG
from shared.models.record import CarRecord


def _corolla(**overrides) -> CarRecord:
    data = {
        "id": "car-1",
        "name": "Corolla",
        "brand": "Toyota",
        "category": "Sedan",
        "description": "Reliable compact sedan",
        "fuelType": "Petrol",
        "transmission": "Automatic",
        "engineCapacity": "1.8L",
        "mileage": "15 km/l",
        "price": 20000,
        "modelYear": 2022,
    }
    data.update(overrides)
    return CarRecord.model_validate(data)


class TestBuildRecordText:
    def test_fields_in_fixed_order(self):
        text = build_record_text(_corolla())
        lines = text.split("\n")
        assert lines[0] == "Name: Corolla"
        assert lines[1] == "Brand: Toyota"
        assert lines[2] == "Category: Sedan"
        assert lines[4] == "Fuel type: Petrol"
        assert len(lines) == 8

    def test_missing_fields_use_placeholder(self):
        text = build_record_text(_corolla(description=None, mileage="  "))
        assert f"Description: {MISSING_PLACEHOLDER}" in text
        assert f"Mileage: {MISSING_PLACEHOLDER}" in text

    def test_passthrough_fields_not_in_text(self):
        text = build_record_text(_corolla())
        assert "20000" not in text
        assert "2022" not in text

    def test_deterministic(self):
        assert build_record_text(_corolla()) == build_record_text(_corolla())


class TestBuildMetadata:
    def test_display_and_passthrough_fields(self):
        meta = build_metadata(_corolla(available=False))
        assert meta.name == "Corolla"
        assert meta.brand == "Toyota"
        assert meta.category == "Sedan"
        assert meta.price == 20000
        assert meta.available is False
        assert meta.modelYear == 2022
        assert meta.source == PROVENANCE_TAG
