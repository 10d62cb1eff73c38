import pytest

from trackmerge.core.store import DocumentStore, new_document_id
from trackmerge.model import SourceDocument


def _doc(doc_id):
    return SourceDocument(id=doc_id, file_name=f"{doc_id}.gpx")


def test_storage_order_and_lookup():
    store = DocumentStore([_doc("b"), _doc("a")])
    assert store.ids() == ["b", "a"]
    assert store.get("a").file_name == "a.gpx"
    assert store.get("missing") is None
    assert "b" in store
    assert len(store) == 2


def test_filter_by_ids_keeps_storage_order():
    store = DocumentStore([_doc("x"), _doc("y"), _doc("z")])
    assert [d.id for d in store.filter_by_ids(["z", "x", "nope"])] == ["x", "z"]


def test_duplicate_id_rejected():
    store = DocumentStore([_doc("x")])
    with pytest.raises(ValueError):
        store.add(_doc("x"))


def test_replace_and_remove():
    store = DocumentStore([_doc("x"), _doc("y")])
    store.replace(SourceDocument(id="x", file_name="renamed.gpx"))
    assert store.get("x").file_name == "renamed.gpx"
    assert store.ids() == ["x", "y"]
    with pytest.raises(KeyError):
        store.replace(_doc("q"))
    assert store.remove("x") is True
    assert store.remove("x") is False
    assert store.ids() == ["y"]


def test_iteration_is_a_snapshot():
    store = DocumentStore([_doc("x"), _doc("y")])
    for d in store:
        store.remove(d.id)
    assert len(store) == 0


def test_new_document_id_unique():
    ids = {new_document_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 13 for i in ids)
