"""
Catalog operations over the ``books`` collection.

Book availability is not stored as a single flag.  The ``isAvailable``
field on a book document is the owner's listing switch; a book is also
unavailable while any ``accepted`` exchange request references it, either
as the requested book or as the counter-offer.  ``locked_book_ids``
computes that second half from the ``requests`` collection, so accepting
a request never has to write to ``books``.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from bson import ObjectId
from fastapi import UploadFile
from pydantic import ValidationError

from models.exchange_models import RequestStatus
from models.post_book_model import PostBookModel
from models.update_book_model import UpdateBookModel
from services import image_store
from services.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from services.serializers import is_book_available, serialize_book
from utils import parse_object_id

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


async def locked_book_ids(db, book_ids: Optional[Iterable[ObjectId]] = None) -> Set[ObjectId]:
    """Ids of books referenced by an accepted request.

    When ``book_ids`` is given only those books are checked.
    """
    query: Dict[str, Any] = {"status": RequestStatus.ACCEPTED.value}
    if book_ids is not None:
        ids = list(book_ids)
        if not ids:
            return set()
        query["$or"] = [{"book": {"$in": ids}}, {"exchangeBook": {"$in": ids}}]

    locked = set()
    async for request in db.requests.find(query, {"book": 1, "exchangeBook": 1}):
        locked.add(request["book"])
        if request.get("exchangeBook") is not None:
            locked.add(request["exchangeBook"])
    return locked


async def find_book(db, book_id) -> Optional[Dict[str, Any]]:
    """Raw book document, or None when absent or the id is malformed."""
    oid = parse_object_id(book_id)
    if oid is None:
        return None
    return await db.books.find_one({"_id": oid})


async def book_is_available(db, book: Dict[str, Any]) -> bool:
    return is_book_available(book, await locked_book_ids(db, [book["_id"]]))


async def _owners(db, books: List[Dict[str, Any]]) -> Dict[ObjectId, Dict[str, Any]]:
    owner_ids = list({book["owner"] for book in books if book.get("owner") is not None})
    if not owner_ids:
        return {}
    owners = {}
    async for user in db.users.find({"_id": {"$in": owner_ids}}, {"password": 0}):
        owners[user["_id"]] = user
    return owners


async def _serialize_books(db, books: List[Dict[str, Any]], locked: Optional[Set[ObjectId]] = None) -> List[dict]:
    if locked is None:
        locked = await locked_book_ids(db, [book["_id"] for book in books])
    owners = await _owners(db, books)
    return [serialize_book(book, locked, owners.get(book.get("owner"))) for book in books]


def build_book_filter(
    locked: Set[ObjectId],
    search: Optional[str] = None,
    condition: Optional[str] = None,
    genre: Optional[str] = None,
    owner: Optional[ObjectId] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"isAvailable": True}
    if locked:
        query["_id"] = {"$nin": list(locked)}
    if search:
        query["$text"] = {"$search": search}
    if condition:
        query["condition"] = condition
    if genre:
        query["genre"] = {"$regex": re.escape(genre), "$options": "i"}
    if owner is not None:
        query["owner"] = owner
    return query


async def list_books(
    db,
    search: Optional[str] = None,
    condition: Optional[str] = None,
    genre: Optional[str] = None,
    owner: Optional[str] = None,
) -> List[dict]:
    """Available books matching every supplied filter."""
    owner_oid = None
    if owner:
        owner_oid = parse_object_id(owner)
        if owner_oid is None:
            return []

    locked = await locked_book_ids(db)
    query = build_book_filter(locked, search, condition, genre, owner_oid)

    if search:
        cursor = db.books.find(query, {"score": {"$meta": "textScore"}}).sort(
            [("score", {"$meta": "textScore"})] + NEWEST_FIRST
        )
    else:
        cursor = db.books.find(query).sort(NEWEST_FIRST)

    books = [book async for book in cursor]
    return await _serialize_books(db, books, locked)


async def get_book(db, book_id: str) -> dict:
    book = await find_book(db, book_id)
    if not book:
        raise NotFoundError("Book not found")
    return (await _serialize_books(db, [book]))[0]


async def list_owned(db, owner_id: str) -> List[dict]:
    """Every book of ``owner_id``, available or not, newest first."""
    owner_oid = parse_object_id(owner_id)
    if owner_oid is None:
        return []
    books = [book async for book in db.books.find({"owner": owner_oid}).sort(NEWEST_FIRST)]
    return await _serialize_books(db, books)


async def list_genres(db) -> List[str]:
    genres = await db.books.distinct("genre")
    return sorted(genre for genre in genres if genre and genre.strip())


async def create_book(db, owner_id: str, fields: Dict[str, Any], image: Optional[UploadFile] = None) -> dict:
    owner_oid = parse_object_id(owner_id)
    if owner_oid is None:
        raise UnauthorizedError("Token is not valid")

    try:
        book = PostBookModel(**{key: value for key, value in fields.items() if value is not None})
    except ValidationError as exc:
        raise ValidationFailedError.from_pydantic(exc)

    now = datetime.utcnow()
    stored_image = await image_store.save_image(image)
    book_data = book.model_dump(mode="json")
    book_data.update({
        "owner": owner_oid,
        "isAvailable": True,
        "image": stored_image or "",
        "createdAt": now,
        "updatedAt": now,
    })
    try:
        result = await db.books.insert_one(book_data)
    except Exception:
        image_store.remove_image(stored_image)
        raise
    logger.info("Book %s listed by user %s", result.inserted_id, owner_id)
    return await get_book(db, result.inserted_id)


async def _owned_book(db, book_id: str, acting_user_id: str) -> Dict[str, Any]:
    book = await find_book(db, book_id)
    if not book:
        raise NotFoundError("Book not found")
    if str(book.get("owner")) != acting_user_id:
        logger.warning("User %s tried to modify book %s owned by %s", acting_user_id, book_id, book.get("owner"))
        raise UnauthorizedError()
    return book


async def update_book(
    db,
    book_id: str,
    acting_user_id: str,
    fields: Dict[str, Any],
    image: Optional[UploadFile] = None,
) -> dict:
    """Apply the supplied fields only; the owner reference never changes."""
    book = await _owned_book(db, book_id, acting_user_id)

    try:
        update = UpdateBookModel(**{key: value for key, value in fields.items() if value is not None})
    except ValidationError as exc:
        raise ValidationFailedError.from_pydantic(exc)

    update_fields = update.model_dump(mode="json", exclude_unset=True)
    new_image = await image_store.save_image(image)
    if new_image:
        update_fields["image"] = new_image
    update_fields["updatedAt"] = datetime.utcnow()

    try:
        await db.books.update_one({"_id": book["_id"]}, {"$set": update_fields})
    except Exception:
        image_store.remove_image(new_image)
        raise
    if new_image and book.get("image"):
        image_store.remove_image(book["image"])

    logger.info("Book %s updated (%s)", book_id, ", ".join(sorted(update_fields)))
    return await get_book(db, book["_id"])


async def delete_book(db, book_id: str, acting_user_id: str) -> None:
    """Delete a book, its image, and the pending requests that reference it.

    Accepted and declined requests are kept; they resolve the missing
    book as ``None``.
    """
    book = await _owned_book(db, book_id, acting_user_id)

    await db.books.delete_one({"_id": book["_id"]})
    image_store.remove_image(book.get("image"))
    result = await db.requests.delete_many({
        "status": RequestStatus.PENDING.value,
        "$or": [{"book": book["_id"]}, {"exchangeBook": book["_id"]}],
    })
    logger.info("Book %s deleted; %d pending request(s) cancelled", book_id, result.deleted_count)
