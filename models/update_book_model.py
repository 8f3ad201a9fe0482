from pydantic import BaseModel, field_validator
from typing import Optional

from models.post_book_model import BookCondition

class UpdateBookModel(BaseModel):
    """Partial book update; only fields the caller sent are applied."""

    title: Optional[str] = None
    author: Optional[str] = None
    condition: Optional[BookCondition] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    isbn: Optional[str] = None
    year: Optional[int] = None
    language: Optional[str] = None
    isAvailable: Optional[bool] = None

    @field_validator("title", "author")
    @classmethod
    def not_empty(cls, value: Optional[str], info) -> Optional[str]:
        if value is None:
            raise ValueError(f"{info.field_name.capitalize()} cannot be empty")
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name.capitalize()} cannot be empty")
        return value

    @field_validator("description", "genre", "isbn", "language")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else value
