"""VectorPoint model: payload stored alongside each vector chunk in the RAG backend."""

from pydantic import BaseModel

SCALAR = str | int | float | bool | None

PROVENANCE_TAG = "car_database"


class VectorMetadata(BaseModel):
    """Metadata copied from the source record into every chunk of its vector record.

    Attributes:
        name, brand, category: Display fields, shown as answer sources.
        price, available, modelYear: Passthrough fields, patched in place on
            change without re-embedding.
        source: Provenance tag of the record origin.
        extra: Escape hatch for provider-specific scalar extras.
    """

    # Display fields
    name: str | None = None
    brand: str | None = None
    category: str | None = None

    # Passthrough fields, store-side names
    price: float | None = None
    available: bool | None = None
    modelYear: int | None = None

    # Provenance
    source: str = PROVENANCE_TAG

    extra: dict[str, SCALAR] = {}


class VectorPoint(BaseModel):
    """Payload of a single chunk point.

    Attributes:
        back_ref_id:  Id of the source record. All index operations are keyed by it.
        chunk_index:  Zero-based position of this chunk within the record text.
        chunk_count:  Number of chunks the record text was split into.
        text:         Raw text of this chunk.
        metadata:     See VectorMetadata.
    """

    back_ref_id: str
    chunk_index: int
    chunk_count: int
    text: str
    metadata: VectorMetadata


class SearchHit(BaseModel):
    """A similarity search result, one per source record."""

    back_ref_id: str
    score: float
    text: str
    metadata: VectorMetadata
