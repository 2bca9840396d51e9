"""Record store used by the order service.

The storage technology is an external concern; the core only needs
create / find / update-by-id. ``InMemoryCollection`` is the implementation
used by the service and the tests.
"""

import threading
from collections.abc import Callable, Iterable
from typing import Any, Generic, Protocol, TypeVar

from .errors import DuplicateKey, NotFound
from .logger import logger
from .schemas import Record, utcnow

RecordT = TypeVar("RecordT", bound=Record)


class RecordCollection(Protocol[RecordT]):
    """Protocol defining the record store operations the core relies on."""

    def create(self, record: RecordT) -> RecordT: ...

    def find_by_id(self, record_id: str) -> RecordT | None: ...

    def get(self, record_id: str) -> RecordT: ...

    def find(self, predicate: Callable[[RecordT], bool] | None = None) -> list[RecordT]: ...

    def update(self, record_id: str, **changes: Any) -> RecordT: ...

    def delete(self, record_id: str) -> RecordT: ...

    def count(self) -> int: ...


class InMemoryCollection(Generic[RecordT]):
    """Thread-safe in-memory collection keeping insertion order.

    Args:
        name: Collection name used in log lines and error messages.
        unique_fields: Field names whose values must be unique across records.
    """

    def __init__(self, name: str, unique_fields: Iterable[str] = ()):
        self.name = name
        self._unique_fields = tuple(unique_fields)
        self._records: dict[str, RecordT] = {}
        self._lock = threading.RLock()

    def _check_unique(self, candidate: RecordT, ignore_id: str | None = None) -> None:
        for field_name in self._unique_fields:
            value = getattr(candidate, field_name)
            for existing in self._records.values():
                if existing.id != ignore_id and getattr(existing, field_name) == value:
                    raise DuplicateKey(
                        f"{self.name} with {field_name} '{value}' already exists",
                        field=field_name,
                    )

    def create(self, record: RecordT) -> RecordT:
        with self._lock:
            if record.id in self._records:
                raise DuplicateKey(f"{self.name} with id '{record.id}' already exists", field="id")
            self._check_unique(record)
            self._records[record.id] = record
        logger.debug(f"Record created | collection={self.name} | id={record.id}")
        return record

    def find_by_id(self, record_id: str) -> RecordT | None:
        with self._lock:
            return self._records.get(record_id)

    def get(self, record_id: str) -> RecordT:
        """Like ``find_by_id`` but raises NotFound for unknown ids."""
        record = self.find_by_id(record_id)
        if record is None:
            raise NotFound(f"{self.name} not found", id=record_id)
        return record

    def find(self, predicate: Callable[[RecordT], bool] | None = None) -> list[RecordT]:
        with self._lock:
            records = list(self._records.values())
        if predicate is None:
            return records
        return [r for r in records if predicate(r)]

    def update(self, record_id: str, **changes: Any) -> RecordT:
        """Apply field changes to a record and bump its ``updated_at``.

        Last write wins: there is no version check between concurrent updates.

        Raises:
            NotFound: If no record has this id.
            DuplicateKey: If the change breaks a uniqueness constraint.
        """
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise NotFound(f"{self.name} not found", id=record_id)
            updated = current.model_copy(update={**changes, "updated_at": utcnow()})
            self._check_unique(updated, ignore_id=record_id)
            self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> RecordT:
        with self._lock:
            record = self._records.pop(record_id, None)
        if record is None:
            raise NotFound(f"{self.name} not found", id=record_id)
        return record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
