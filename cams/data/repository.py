"""In-memory stores that own the live entity data between import and export."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

from cams.errors import NotFoundError, StoreStateError
from cams.schemas import Camp, Enquiry, Suggestion, User
from cams.utils.identifiers import next_sequence_id

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DeleteHook = Callable[[T], None]


class StoreState(str, Enum):
    """Lifecycle of a store.

    SAVED is a ready state that also records that nothing changed since the
    last export; the next change moves it to MUTATED like READY does.
    """

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    MUTATED = "mutated"
    SAVED = "saved"


_MUTABLE_STATES = {StoreState.READY, StoreState.MUTATED, StoreState.SAVED}


class RepositoryStore(Generic[K, T]):
    """ID -> entity mapping for one entity type.

    Entities are kept in insertion order so that exports are reproducible.
    The store is not thread-safe; callers serialise access themselves.
    """

    def __init__(self, entity_type: str, key: Callable[[T], K]) -> None:
        self.entity_type = entity_type
        self._key = key
        self._items: Dict[K, T] = {}
        self._delete_hooks: List[DeleteHook] = []
        self.state = StoreState.EMPTY

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    @property
    def dirty(self) -> bool:
        return self.state == StoreState.MUTATED

    @property
    def mutable(self) -> bool:
        return self.state in _MUTABLE_STATES

    def key_of(self, entity: T) -> K:
        return self._key(entity)

    # Lifecycle

    def begin_load(self) -> None:
        if self.state == StoreState.MUTATED:
            raise StoreStateError(
                f"{self.entity_type} store has unsaved changes and cannot be reloaded"
            )
        self._items.clear()
        self.state = StoreState.LOADING

    def load(self, entity: T) -> None:
        if self.state != StoreState.LOADING:
            raise StoreStateError(f"{self.entity_type} store is not loading")
        self._items[self._key(entity)] = entity

    def finish_load(self) -> None:
        if self.state != StoreState.LOADING:
            raise StoreStateError(f"{self.entity_type} store is not loading")
        self.state = StoreState.READY
        logger.debug("%s store ready with %d record(s)", self.entity_type, len(self))

    def mark_saved(self) -> None:
        if not self.mutable:
            raise StoreStateError(f"{self.entity_type} store has not been loaded")
        self.state = StoreState.SAVED

    def require_mutable(self) -> None:
        if not self.mutable:
            raise StoreStateError(
                f"{self.entity_type} store is {self.state.value}; "
                "changes are only allowed once it is ready"
            )

    # Access

    def get(self, entity_id: K) -> T:
        try:
            return self._items[entity_id]
        except KeyError:
            raise NotFoundError(self.entity_type, entity_id) from None

    def find(self, entity_id: K) -> Optional[T]:
        return self._items.get(entity_id)

    def list(self) -> List[T]:
        return list(self._items.values())

    def ids(self) -> List[K]:
        return list(self._items.keys())

    # Mutation

    def put(self, entity_id: K, entity: T) -> None:
        self.require_mutable()
        if self._key(entity) != entity_id:
            raise ValueError(
                f"{self.entity_type} {entity_id!r} does not match entity id {self._key(entity)!r}"
            )
        self._items[entity_id] = entity
        self.state = StoreState.MUTATED

    def touch(self) -> None:
        """Record an in-place change to an entity already in the store."""
        self.require_mutable()
        self.state = StoreState.MUTATED

    def delete(self, entity_id: K) -> T:
        self.require_mutable()
        entity = self.get(entity_id)
        del self._items[entity_id]
        self.state = StoreState.MUTATED
        logger.info("Deleted %s %s", self.entity_type, entity_id)
        for hook in list(self._delete_hooks):
            hook(entity)
        return entity

    def evict(self, entity_id: K) -> Optional[T]:
        """Drop a record while loading, without cascading."""
        if self.state != StoreState.LOADING:
            raise StoreStateError(f"{self.entity_type} store is not loading")
        return self._items.pop(entity_id, None)

    def on_delete(self, hook: DeleteHook) -> None:
        self._delete_hooks.append(hook)


class Repository:
    """The four stores that make up one CAMs dataset."""

    def __init__(self) -> None:
        self.users: RepositoryStore[str, User] = RepositoryStore(
            "user", lambda user: user.user_id
        )
        self.camps: RepositoryStore[str, Camp] = RepositoryStore(
            "camp", lambda camp: camp.camp_id
        )
        self.enquiries: RepositoryStore[int, Enquiry] = RepositoryStore(
            "enquiry", lambda enquiry: enquiry.enquiry_id
        )
        self.suggestions: RepositoryStore[int, Suggestion] = RepositoryStore(
            "suggestion", lambda suggestion: suggestion.suggestion_id
        )

    def stores(self) -> List[RepositoryStore]:
        return [self.users, self.camps, self.enquiries, self.suggestions]

    @property
    def ready(self) -> bool:
        return all(store.mutable for store in self.stores())

    @property
    def dirty(self) -> bool:
        return any(store.dirty for store in self.stores())

    def next_enquiry_id(self) -> int:
        return next_sequence_id(self.enquiries.ids())

    def next_suggestion_id(self) -> int:
        return next_sequence_id(self.suggestions.ids())
