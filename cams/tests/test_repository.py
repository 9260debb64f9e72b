import pytest

from cams.data.repository import Repository, RepositoryStore, StoreState
from cams.errors import NotFoundError, StoreStateError
from cams.schemas import Enquiry


def _enquiry(enquiry_id: int) -> Enquiry:
    return Enquiry(enquiry_id=enquiry_id, camp_id="CAMP1", enquirer="bob", text="Hello?")


def _ready_store() -> RepositoryStore:
    store = RepositoryStore("enquiry", lambda enquiry: enquiry.enquiry_id)
    store.begin_load()
    store.load(_enquiry(1))
    store.finish_load()
    return store


def test_store_rejects_changes_before_it_is_ready():
    store = RepositoryStore("enquiry", lambda enquiry: enquiry.enquiry_id)

    assert store.state == StoreState.EMPTY
    with pytest.raises(StoreStateError):
        store.put(1, _enquiry(1))

    store.begin_load()
    with pytest.raises(StoreStateError):
        store.put(1, _enquiry(1))


def test_store_lifecycle():
    store = _ready_store()
    assert store.state == StoreState.READY
    assert not store.dirty

    store.put(2, _enquiry(2))
    assert store.state == StoreState.MUTATED
    assert store.dirty

    store.mark_saved()
    assert store.state == StoreState.SAVED
    store.touch()
    assert store.dirty


def test_unsaved_store_cannot_be_reloaded():
    store = _ready_store()
    store.put(2, _enquiry(2))

    with pytest.raises(StoreStateError):
        store.begin_load()


def test_load_and_evict_only_while_loading():
    store = _ready_store()

    with pytest.raises(StoreStateError):
        store.load(_enquiry(3))
    with pytest.raises(StoreStateError):
        store.evict(1)


def test_get_missing_raises_not_found():
    store = _ready_store()

    with pytest.raises(NotFoundError) as excinfo:
        store.get(99)

    assert isinstance(excinfo.value, LookupError)
    assert excinfo.value.entity_id == 99
    assert store.find(99) is None


def test_put_checks_key_matches_entity():
    store = _ready_store()

    with pytest.raises(ValueError):
        store.put(5, _enquiry(6))


def test_delete_runs_hooks_with_removed_entity():
    store = _ready_store()
    seen = []
    store.on_delete(seen.append)

    removed = store.delete(1)

    assert seen == [removed]
    assert 1 not in store
    with pytest.raises(NotFoundError):
        store.delete(1)


def test_iteration_preserves_insertion_order():
    store = _ready_store()
    store.put(3, _enquiry(3))
    store.put(2, _enquiry(2))

    assert store.ids() == [1, 3, 2]
    assert [enquiry.enquiry_id for enquiry in store] == [1, 3, 2]


def test_repository_hands_out_next_ids():
    repository = Repository()
    for store in repository.stores():
        store.begin_load()
    repository.enquiries.load(_enquiry(4))
    for store in repository.stores():
        store.finish_load()

    assert repository.ready
    assert repository.next_enquiry_id() == 5
    assert repository.next_suggestion_id() == 1
