from pydantic import BaseModel, field_validator
from typing import Optional
from enum import Enum

class BookCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

class PostBookModel(BaseModel):
    title: str
    author: str
    condition: BookCondition
    description: str = ""
    genre: str = ""
    isbn: str = ""
    year: Optional[int] = None
    language: str = "English"

    @field_validator("title", "author")
    @classmethod
    def required_text(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name.capitalize()} is required")
        return value

    @field_validator("description", "genre", "isbn", "language")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()
