"""
Exchange request lifecycle.

A request moves ``pending -> accepted`` or ``pending -> declined`` exactly
once.  The move is a compare-and-set on ``status: "pending"`` so two
concurrent decisions (or a decision racing a cancellation) leave exactly
one winner.  Accepting a request makes both the requested book and the
counter-offer unavailable through ``book_service.locked_book_ids``; no
book document is written.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from models.exchange_models import ACTIVE_STATUSES, RequestStatus
from services import book_service
from services.errors import InvalidStateError, NotFoundError, UnauthorizedError
from services.serializers import collect_ids, serialize_request
from utils import parse_object_id

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


async def _resolve(db, requests: List[Dict[str, Any]]) -> List[dict]:
    """Serialize requests with their users and books populated."""
    if not requests:
        return []

    user_ids = list(collect_ids(requests, "requester", "bookOwner"))
    users = {}
    async for user in db.users.find({"_id": {"$in": user_ids}}, {"password": 0}):
        users[user["_id"]] = user

    book_ids = list(collect_ids(requests, "book", "exchangeBook"))
    books = {}
    async for book in db.books.find({"_id": {"$in": book_ids}}):
        books[book["_id"]] = book

    locked = await book_service.locked_book_ids(db, books.keys())
    return [serialize_request(request, users, books, locked) for request in requests]


async def _find_request(db, request_id) -> Dict[str, Any]:
    oid = parse_object_id(request_id)
    request = await db.requests.find_one({"_id": oid}) if oid is not None else None
    if not request:
        raise NotFoundError("Request not found")
    return request


async def create_request(
    db,
    requester_id: str,
    book_id: str,
    message: str = "",
    exchange_book_id: Optional[str] = None,
    exchange_message: str = "",
) -> dict:
    """Create a pending request for ``book_id`` on behalf of ``requester_id``.

    Preconditions are checked in order and the first failure is raised:
    the book exists, is available and is not the requester's own; the
    counter-offer (if any) exists, belongs to the requester and is
    available; the requester has no pending or accepted request for the
    same book.
    """
    requester = parse_object_id(requester_id)
    if requester is None:
        raise UnauthorizedError("Token is not valid")

    book = await book_service.find_book(db, book_id)
    if not book:
        raise NotFoundError("Book not found")
    if not await book_service.book_is_available(db, book):
        raise InvalidStateError("bookUnavailable", "Book is not available for exchange")
    if book["owner"] == requester:
        raise InvalidStateError("selfRequest", "Cannot request your own book")

    exchange_book = None
    if exchange_book_id:
        exchange_book = await book_service.find_book(db, exchange_book_id)
        if not exchange_book:
            raise NotFoundError("Exchange book not found")
        if exchange_book["owner"] != requester:
            raise InvalidStateError("exchangeBookNotOwned", "Exchange book must belong to you")
        if not await book_service.book_is_available(db, exchange_book):
            raise InvalidStateError("exchangeBookUnavailable", "Exchange book is not available")

    existing = await db.requests.find_one({
        "requester": requester,
        "book": book["_id"],
        "status": {"$in": list(ACTIVE_STATUSES)},
    })
    if existing:
        raise InvalidStateError("duplicateRequest", "Request already exists for this book")

    now = datetime.utcnow()
    request_data = {
        "requester": requester,
        "bookOwner": book["owner"],
        "book": book["_id"],
        "status": RequestStatus.PENDING.value,
        "message": message or "",
        "exchangeBook": exchange_book["_id"] if exchange_book else None,
        "exchangeMessage": exchange_message or "",
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.requests.insert_one(request_data)
    logger.info("Request %s created: user %s -> book %s", result.inserted_id, requester_id, book["_id"])

    created = await db.requests.find_one({"_id": result.inserted_id})
    return (await _resolve(db, [created]))[0]


async def update_status(db, request_id: str, acting_user_id: str, new_status: str) -> dict:
    """Accept or decline a pending request addressed to ``acting_user_id``."""
    new_status = RequestStatus(new_status)
    if new_status == RequestStatus.PENDING:
        raise InvalidStateError("invalidStatus", "Status must be accepted or declined")

    request = await _find_request(db, request_id)
    if str(request["bookOwner"]) != acting_user_id:
        logger.warning("User %s tried to %s request %s", acting_user_id, new_status.value, request_id)
        raise UnauthorizedError()
    if request["status"] != RequestStatus.PENDING.value:
        raise InvalidStateError("alreadyProcessed", "Request has already been processed")

    updated = await db.requests.find_one_and_update(
        {"_id": request["_id"], "status": RequestStatus.PENDING.value},
        {"$set": {"status": new_status.value, "updatedAt": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        # Lost a race against another decision or a cancellation
        raise InvalidStateError("alreadyProcessed", "Request has already been processed")

    logger.info("Request %s %s by user %s", request_id, new_status.value, acting_user_id)
    return (await _resolve(db, [updated]))[0]


async def cancel_request(db, request_id: str, acting_user_id: str) -> None:
    """Delete a pending request; only its requester may do so."""
    request = await _find_request(db, request_id)
    if str(request["requester"]) != acting_user_id:
        raise UnauthorizedError()
    if request["status"] != RequestStatus.PENDING.value:
        raise InvalidStateError("cannotCancelProcessed", "Cannot cancel processed request")

    result = await db.requests.delete_one({"_id": request["_id"], "status": RequestStatus.PENDING.value})
    if result.deleted_count == 0:
        raise InvalidStateError("cannotCancelProcessed", "Cannot cancel processed request")
    logger.info("Request %s cancelled by user %s", request_id, acting_user_id)


async def get_request(db, request_id: str, acting_user_id: str) -> dict:
    request = await _find_request(db, request_id)
    if acting_user_id not in (str(request["requester"]), str(request["bookOwner"])):
        raise UnauthorizedError()
    return (await _resolve(db, [request]))[0]


async def _list(db, query: Dict[str, Any]) -> List[dict]:
    requests = [request async for request in db.requests.find(query).sort(NEWEST_FIRST)]
    return await _resolve(db, requests)


async def list_received(db, user_id: str) -> List[dict]:
    oid = parse_object_id(user_id)
    if oid is None:
        return []
    return await _list(db, {"bookOwner": oid})


async def list_sent(db, user_id: str) -> List[dict]:
    oid = parse_object_id(user_id)
    if oid is None:
        return []
    return await _list(db, {"requester": oid})
