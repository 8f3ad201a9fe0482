from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from typing import List, Optional

from dataBase import get_db
from services import book_service
from services.errors import ValidationFailedError
from utils import get_current_user_id

router = APIRouter(prefix="/books", tags=["books"])

@router.get("")
async def list_books(
    search: Optional[str] = Query(None),
    condition: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    owner: Optional[str] = Query(None),
    db=Depends(get_db),
) -> List[dict]:
    return await book_service.list_books(db, search=search, condition=condition, genre=genre, owner=owner)

@router.get("/genres")
async def list_genres(db=Depends(get_db)) -> List[str]:
    return await book_service.list_genres(db)

# Declared before /{book_id} so "user" is not taken for a book id
@router.get("/user/my-books")
async def my_books(user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> List[dict]:
    return await book_service.list_owned(db, user_id)

@router.get("/{book_id}")
async def get_book(book_id: str, db=Depends(get_db)) -> dict:
    return await book_service.get_book(db, book_id)

@router.post("")
async def create_book(
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    isbn: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
) -> dict:
    fields = {
        "title": title,
        "author": author,
        "condition": condition,
        "description": description,
        "genre": genre,
        "isbn": isbn,
        "year": year or None,
        "language": language or None,
    }
    return await book_service.create_book(db, user_id, fields, image)

@router.put("/{book_id}")
async def update_book(
    book_id: str,
    request: Request,
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    isbn: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    isAvailable: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
) -> dict:
    fields = {
        "title": title,
        "author": author,
        "condition": condition,
        "description": description,
        "genre": genre,
        "isbn": isbn,
        "year": year or None,
        "language": language,
        "isAvailable": isAvailable,
    }
    if request.headers.get("content-type", "").startswith("application/json"):
        fields = await _json_fields(request)
        image = None
    return await book_service.update_book(db, book_id, user_id, fields, image)

@router.delete("/{book_id}")
async def delete_book(book_id: str, user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> dict:
    await book_service.delete_book(db, book_id, user_id)
    return {"message": "Book removed"}

async def _json_fields(request: Request) -> dict:
    """Fields of a JSON update body; the client toggles availability this way."""
    try:
        body = await request.json()
    except ValueError:
        raise ValidationFailedError.single("body", "Malformed JSON body")
    if not isinstance(body, dict):
        raise ValidationFailedError.single("body", "Expected a JSON object")
    return body
