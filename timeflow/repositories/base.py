"""Keyed collection persisted under a single storage key."""

import logging
from typing import Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from timeflow.errors import StorageError
from timeflow.models.base import BaseDataModel
from timeflow.services.storage import KeyValueStore
from timeflow.timer.clock import ClockSource, SystemClock

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseDataModel)


class KeyedRepository(Generic[ModelT]):
    """
    Ordered collection of models keyed by ``id``.

    The whole collection is stored as one JSON object under ``storage_key``
    (``{id: record}``, insertion ordered). Mutations are discrete user
    actions, so each one rewrites the collection.

    Subclasses set ``storage_key``, ``model`` and ``entity_name``.
    """

    storage_key: str = ""
    model: Type[ModelT]
    entity_name: str = "record"

    def __init__(self, store: KeyValueStore, clock: Optional[ClockSource] = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _load(self) -> Dict[str, ModelT]:
        raw = self.store.get(self.storage_key) or {}
        items: Dict[str, ModelT] = {}
        for record_id, record in raw.items():
            try:
                items[record_id] = self.model.from_record(record)
            except ValidationError as e:
                raise StorageError(
                    f"Stored {self.entity_name} {record_id!r} is invalid: {e}"
                )
        return items

    def _save(self, items: Dict[str, ModelT]) -> None:
        self.store.set(
            self.storage_key,
            {record_id: item.to_record() for record_id, item in items.items()},
        )

    def get(self, record_id: str) -> Optional[ModelT]:
        """Return the record with ``record_id`` or None."""
        return self._load().get(record_id)

    def require(self, record_id: str) -> ModelT:
        """
        Return the record with ``record_id``.

        Raises:
            KeyError: If no such record exists
        """
        item = self.get(record_id)
        if item is None:
            raise KeyError(f"{self.entity_name} not found: {record_id}")
        return item

    def exists(self, record_id: str) -> bool:
        return record_id in self._load()

    def all(self) -> List[ModelT]:
        """All records in insertion order."""
        return list(self._load().values())

    def _insert(self, item: ModelT) -> ModelT:
        items = self._load()
        if item.id in items:
            raise ValueError(f"{self.entity_name} already exists: {item.id}")
        items[item.id] = item
        self._save(items)
        logger.debug(f"Added {self.entity_name} {item.id}")
        return item

    def _replace(self, item: ModelT) -> ModelT:
        items = self._load()
        if item.id not in items:
            raise KeyError(f"{self.entity_name} not found: {item.id}")
        items[item.id] = item
        self._save(items)
        return item

    def _updated(self, item: ModelT, **changes) -> ModelT:
        """Validated copy of `item` with `changes` applied and updated_at refreshed."""
        changes.setdefault("updated_at", self.clock.now())
        return self.model.model_validate({**item.model_dump(), **changes})

    def _remove(self, record_id: str) -> ModelT:
        items = self._load()
        try:
            item = items.pop(record_id)
        except KeyError:
            raise KeyError(f"{self.entity_name} not found: {record_id}")
        self._save(items)
        logger.debug(f"Deleted {self.entity_name} {record_id}")
        return item
