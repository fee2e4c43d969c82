"""Error taxonomy shared by the sync engine and the request path.

Consistency-benign situations (patching a record that was never embedded,
deleting vectors that are already gone) are not represented here: they are
treated as success by the vector index store.
"""


class BridgeError(Exception):
    """Base class for all errors raised by the bridge."""

    kind = "internal"


class TransientTransportError(BridgeError):
    """A backend could not be reached or timed out. Retried or reconnected automatically."""

    kind = "transient_transport"


class RecordValidationError(BridgeError):
    """Client supplied invalid input (missing required fields, empty query)."""

    kind = "validation"


class RecordNotFoundError(BridgeError):
    """The requested record does not exist in the primary store."""

    kind = "not_found"


class DerivedDataError(BridgeError):
    """The embedding or generation provider failed on valid input."""

    kind = "derived_data"
