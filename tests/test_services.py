import asyncio
import io
import os

import pytest
from bson import ObjectId
from fastapi import UploadFile
from starlette.datastructures import Headers

from config import settings
from services import book_service
from tests.doubles import RecordingCollection, RecordingDb

from services.book_service import build_book_filter
from services.serializers import collect_ids, is_book_available, serialize_request


def test_build_book_filter_defaults():
    assert build_book_filter(set()) == {"isAvailable": True}


def test_build_book_filter_all_predicates():
    locked = ObjectId()
    owner = ObjectId()
    query = build_book_filter({locked}, search="dune", condition="good", genre="sci.fi", owner=owner)
    assert query == {
        "isAvailable": True,
        "_id": {"$nin": [locked]},
        "$text": {"$search": "dune"},
        "condition": "good",
        "genre": {"$regex": r"sci\.fi", "$options": "i"},
        "owner": owner,
    }


def test_availability_combines_flag_and_lock():
    book_id = ObjectId()
    assert is_book_available({"_id": book_id}, set())
    assert not is_book_available({"_id": book_id, "isAvailable": False}, set())
    assert not is_book_available({"_id": book_id, "isAvailable": True}, {book_id})


def test_serialize_request_with_missing_relations():
    request = {
        "_id": ObjectId(),
        "requester": ObjectId(),
        "bookOwner": ObjectId(),
        "book": ObjectId(),
        "status": "accepted",
        "exchangeBook": None,
    }
    data = serialize_request(request, users={}, books={}, locked_ids=set())
    assert data["book"] is None
    assert data["requester"] is None
    assert data["exchangeBook"] is None
    assert data["message"] == ""


def test_collect_ids_skips_none():
    a, b = ObjectId(), ObjectId()
    docs = [{"book": a, "exchangeBook": None}, {"book": b, "exchangeBook": a}]
    assert collect_ids(docs, "book", "exchangeBook") == {a, b}


def test_search_uses_text_index_and_score_sort():
    db = RecordingDb()
    assert asyncio.run(book_service.list_books(db, search="dune", condition="good")) == []

    query, projection = db.books.find_calls[0]
    assert query["$text"] == {"$search": "dune"}
    assert query["condition"] == "good"
    assert projection == {"score": {"$meta": "textScore"}}
    assert db.books.cursors[0].sort_args == (
        [("score", {"$meta": "textScore"}), ("createdAt", -1), ("_id", -1)],
    )


def test_listing_without_search_sorts_newest_first():
    db = RecordingDb()
    asyncio.run(book_service.list_books(db, genre="fantasy"))
    assert db.books.find_calls[0] == ({"isAvailable": True, "genre": {"$regex": "fantasy", "$options": "i"}},)
    assert db.books.cursors[0].sort_args == ([("createdAt", -1), ("_id", -1)],)


def _png_upload():
    return UploadFile(
        file=io.BytesIO(b"\x89PNG\r\n\x1a\nfake"),
        filename="cover.png",
        headers=Headers({"content-type": "image/png"}),
    )


def test_failed_insert_removes_uploaded_image(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    db = RecordingDb(books=RecordingCollection(fail_on={"insert_one"}))
    fields = {"title": "Dune", "author": "Frank Herbert", "condition": "good"}

    with pytest.raises(RuntimeError):
        asyncio.run(book_service.create_book(db, str(ObjectId()), fields, _png_upload()))
    assert os.listdir(tmp_path) == []


def test_failed_update_removes_new_image_and_keeps_old(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    owner = ObjectId()
    (tmp_path / "old.png").write_bytes(b"old")
    book = {"_id": ObjectId(), "owner": owner, "image": "/uploads/old.png"}
    db = RecordingDb(books=RecordingCollection([book], fail_on={"update_one"}))

    with pytest.raises(RuntimeError):
        asyncio.run(book_service.update_book(db, str(book["_id"]), str(owner), {"title": "X"}, _png_upload()))
    assert os.listdir(tmp_path) == ["old.png"]


def test_failed_delete_keeps_image(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    owner = ObjectId()
    (tmp_path / "cover.png").write_bytes(b"cover")
    book = {"_id": ObjectId(), "owner": owner, "image": "/uploads/cover.png"}
    db = RecordingDb(books=RecordingCollection([book], fail_on={"delete_one"}))

    with pytest.raises(RuntimeError):
        asyncio.run(book_service.delete_book(db, str(book["_id"]), str(owner)))
    assert (tmp_path / "cover.png").exists()
