"""
Turn stored documents into the JSON shapes the API returns.

Related documents are resolved here (the "populate" step): users become
short profile summaries and books become listing summaries.  A reference
whose document no longer exists resolves to ``None``.
"""

from typing import Any, Dict, Iterable, Optional, Set

from bson import ObjectId


def _id(value) -> Optional[str]:
    return str(value) if value is not None else None


def serialize_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    return {
        "id": str(user["_id"]),
        "username": user.get("username", ""),
        "avatar": user.get("avatar", ""),
        "bio": user.get("bio", ""),
        "location": user.get("location", ""),
    }


def is_book_available(book: Dict[str, Any], locked_ids: Set[ObjectId]) -> bool:
    """Effective availability: listed by the owner and not locked by an accepted request."""
    return bool(book.get("isAvailable", True)) and book["_id"] not in locked_ids


def serialize_book(book, locked_ids: Set[ObjectId], owner: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "id": str(book["_id"]),
        "title": book.get("title"),
        "author": book.get("author"),
        "description": book.get("description", ""),
        "condition": book.get("condition"),
        "image": book.get("image", ""),
        "genre": book.get("genre", ""),
        "isbn": book.get("isbn", ""),
        "year": book.get("year"),
        "language": book.get("language", "English"),
        "isAvailable": is_book_available(book, locked_ids),
        "owner": serialize_user(owner) if owner is not None else {"id": _id(book.get("owner"))},
        "createdAt": book.get("createdAt"),
        "updatedAt": book.get("updatedAt"),
    }


def serialize_book_summary(book: Optional[Dict[str, Any]], locked_ids: Set[ObjectId]) -> Optional[dict]:
    if not book:
        return None
    return {
        "id": str(book["_id"]),
        "title": book.get("title"),
        "author": book.get("author"),
        "condition": book.get("condition"),
        "image": book.get("image", ""),
        "description": book.get("description", ""),
        "isAvailable": is_book_available(book, locked_ids),
    }


def serialize_request(
    request: Dict[str, Any],
    users: Dict[ObjectId, Dict[str, Any]],
    books: Dict[ObjectId, Dict[str, Any]],
    locked_ids: Set[ObjectId],
) -> dict:
    exchange_book_id = request.get("exchangeBook")
    return {
        "id": str(request["_id"]),
        "requester": serialize_user(users.get(request["requester"])),
        "bookOwner": serialize_user(users.get(request["bookOwner"])),
        "book": serialize_book_summary(books.get(request["book"]), locked_ids),
        "status": request["status"],
        "message": request.get("message", ""),
        "exchangeBook": serialize_book_summary(books.get(exchange_book_id), locked_ids)
        if exchange_book_id is not None else None,
        "exchangeMessage": request.get("exchangeMessage", ""),
        "createdAt": request.get("createdAt"),
        "updatedAt": request.get("updatedAt"),
    }


def collect_ids(documents: Iterable[Dict[str, Any]], *fields: str) -> Set[ObjectId]:
    ids = set()
    for document in documents:
        for field in fields:
            value = document.get(field)
            if value is not None:
                ids.add(value)
    return ids
