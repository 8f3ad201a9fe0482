from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional
from enum import Enum

class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

# Statuses that block a second request for the same book by the same user
ACTIVE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value)

class CreateRequestModel(BaseModel):
    bookId: str = Field(min_length=1)
    message: Optional[str] = Field("", max_length=500)
    exchangeBookId: Optional[str] = None
    exchangeMessage: Optional[str] = Field("", max_length=500)

    @field_validator("bookId")
    @classmethod
    def book_id_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Book ID is required")
        return value

    @field_validator("exchangeBookId")
    @classmethod
    def exchange_book_not_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Exchange book ID cannot be empty if provided")
        return value.strip() if value is not None else value

    @field_validator("message", "exchangeMessage")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> str:
        return value.strip() if value is not None else ""

class StatusUpdateModel(BaseModel):
    status: Literal["accepted", "declined"]
