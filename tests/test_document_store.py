"""Tests for DocumentStore versioning and producer request bookkeeping."""
import pytest

from app.services.document_store import DocumentStore, ProducerBusyError
from app.services.editor import update_document_field
from app.services.mutations import add_section, remove_section
from tests.conftest import make_bar_document


@pytest.fixture
def store(demo_document):
    return DocumentStore(demo_document)


def test_initial_state(store, demo_document):
    state = store.snapshot()
    assert state.document is demo_document
    assert state.version == 0
    assert state.busy is False
    assert state.error is None


def test_apply_bumps_version(store):
    state = store.apply(add_section)
    assert state.version == 1
    assert len(state.document.sections) == 4


def test_apply_noop_edit_keeps_version(store):
    state = store.apply(lambda doc: remove_section(doc, 9))
    assert state.version == 0


def test_apply_index_error_is_ignored(store):
    def broken(doc):
        return doc.sections[42]

    state = store.apply(broken)
    assert state.version == 0


def test_apply_stale_version_is_ignored(store):
    store.apply(add_section)
    state = store.apply(lambda doc: remove_section(doc, 0), expected_version=0)
    assert state.version == 1
    assert len(state.document.sections) == 4


def test_apply_matching_version(store):
    state = store.apply(lambda doc: remove_section(doc, 0), expected_version=0)
    assert state.version == 1
    assert [s.id for s in state.document.sections] == ["s2", "s3"]


def test_apply_propagates_value_error(store):
    with pytest.raises(ValueError):
        store.apply(lambda doc: update_document_field(doc, "sections", "x"))


def test_replace_clears_error(store):
    token = store.begin_request("generate")
    store.fail_request(token, "boom")
    assert store.snapshot().error == "boom"

    state = store.replace(make_bar_document())
    assert state.error is None
    assert state.document.title == "Caffeine"


# ---------------------------------------------------------------------------
# Producer requests
# ---------------------------------------------------------------------------

def test_only_one_request_in_flight(store):
    store.begin_request("generate")
    assert store.busy is True
    with pytest.raises(ProducerBusyError):
        store.begin_request("optimize")


def test_complete_request_applies_result(store):
    token = store.begin_request("generate")
    assert store.complete_request(token, make_bar_document()) is True
    assert store.busy is False
    assert store.version == 1
    assert store.document.title == "Caffeine"


def test_result_discarded_when_document_changed(store, demo_document):
    token = store.begin_request("optimize")
    store.apply(add_section)

    assert store.complete_request(token, make_bar_document()) is False
    assert store.busy is False
    assert store.document.title == demo_document.title
    assert len(store.document.sections) == 4


def test_reset_keeps_request_in_flight(store, demo_document):
    old = store.begin_request("generate")
    store.reset(demo_document)

    assert store.busy is True
    with pytest.raises(ProducerBusyError):
        store.begin_request("generate")

    assert store.complete_request(old, make_bar_document()) is False
    assert store.busy is False
    assert store.document is demo_document

    newer = store.begin_request("generate")
    assert store.complete_request(newer, make_bar_document()) is True


def test_result_of_released_request_discarded(store):
    old = store.begin_request("generate")
    store.fail_request(old, "timed out")
    newer = store.begin_request("generate")

    assert store.complete_request(old, make_bar_document()) is False
    assert store.busy is True
    assert store.complete_request(newer, make_bar_document()) is True


def test_fail_request_keeps_document(store, demo_document):
    token = store.begin_request("generate")
    store.fail_request(token, "Could not generate")

    state = store.snapshot()
    assert state.document is demo_document
    assert state.version == 0
    assert state.busy is False
    assert state.error == "Could not generate"


def test_begin_request_clears_previous_error(store):
    store.fail_request(store.begin_request("generate"), "first failure")
    store.begin_request("generate")
    assert store.snapshot().error is None
