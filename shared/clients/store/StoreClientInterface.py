from abc import abstractmethod
from typing import Any, AsyncIterator

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import RecordValidationError
from shared.models.record import (
    PASSTHROUGH_FIELDS,
    REQUIRED_FIELDS,
    TEXT_FIELDS,
    CarRecord,
    ChangeEvent,
)

WRITABLE_FIELDS: frozenset[str] = frozenset(TEXT_FIELDS) | frozenset(PASSTHROUGH_FIELDS)


class StoreClientInterface(ClientInterface):
    """Primary record store: CRUD over car records plus a live change feed."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Check a new record payload and strip unknown fields.

        Args:
            data (dict[str, Any]): Field values keyed by store field name.

        Returns:
            dict[str, Any]: The writable subset of the payload.

        Raises:
            RecordValidationError: If a required field is missing or empty.
        """
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise RecordValidationError(f"{' and '.join(missing).capitalize()} {'is a required field' if len(missing) == 1 else 'are required fields'}")
        return self._writable(data)

    def validate_update(self, data: dict[str, Any]) -> dict[str, Any]:
        """Check a partial update payload and strip unknown fields.

        Raises:
            RecordValidationError: If a required field is present but empty, or nothing is left to update.
        """
        for field in REQUIRED_FIELDS:
            if field in data and not data[field]:
                raise RecordValidationError(f"{field.capitalize()} cannot be empty")
        cleaned = self._writable(data)
        if not cleaned:
            raise RecordValidationError("No updatable fields provided")
        return cleaned

    @staticmethod
    def _writable(data: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in data.items() if key in WRITABLE_FIELDS}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_fetch_record(self, record_id: str) -> CarRecord | None:
        """Fetch the current state of a record, None if it does not exist."""
        pass

    @abstractmethod
    async def do_list_records(self, page: int = 1, limit: int = 10, filters: dict[str, str] | None = None) -> tuple[list[CarRecord], int]:
        """List records newest first.

        Args:
            page (int): 1-based page number.
            limit (int): Page size.
            filters (dict[str, str] | None): Store field -> case-insensitive substring.

        Returns:
            tuple[list[CarRecord], int]: The page of records and the total number of matches.
        """
        pass

    @abstractmethod
    async def do_count_records(self, filters: dict[str, str] | None = None) -> int:
        """Count records matching the same filters as do_list_records()."""
        pass

    @abstractmethod
    def do_iter_records(self) -> AsyncIterator[CarRecord]:
        """Iterate over every record in the store."""
        pass

    @abstractmethod
    async def do_create_record(self, data: dict[str, Any]) -> CarRecord:
        """Create a record. Callers validate with validate_create() first."""
        pass

    @abstractmethod
    async def do_update_record(self, record_id: str, data: dict[str, Any]) -> CarRecord | None:
        """Apply a partial update, returning the updated record or None if it does not exist."""
        pass

    @abstractmethod
    async def do_delete_record(self, record_id: str) -> CarRecord | None:
        """Delete a record, returning the deleted record or None if it did not exist."""
        pass

    @abstractmethod
    def do_watch(self) -> AsyncIterator[ChangeEvent]:
        """Subscribe to the change feed of the record collection.

        Updates are delivered with the full post-update record where the
        backend can look it up. The iterator ends or raises when the
        subscription is lost; reconnecting is up to the caller.
        """
        pass
