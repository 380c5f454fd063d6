"""
API models and schemas for the FastAPI application.

Field names are snake_case in Python and camelCase on the wire. Every model
accepts either spelling when it is built.
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

# JSON numbers; whole numbers stay ints
Number = Union[int, float]


class ResponseStatus(str, Enum):
    """Values of the ``status`` key carried by every response envelope."""
    SUCCESS = "success"
    FAIL = "fail"


class BookPayload(BaseModel):
    """Request body for creating or updating a book.

    ``name`` is optional here so that a missing name is reported by the
    service with its own message rather than by request validation.
    """
    name: Optional[str] = Field(None, description="Book title")
    year: Optional[Number] = Field(None, description="Publication year")
    author: Optional[str] = Field(None, description="Book author")
    summary: Optional[str] = Field(None, description="Short summary")
    publisher: Optional[str] = Field(None, description="Publisher name")
    page_count: Optional[Number] = Field(None, alias="pageCount", description="Total number of pages")
    read_page: Optional[Number] = Field(None, alias="readPage", description="Last page read")
    reading: Optional[bool] = Field(None, description="Whether the book is being read")

    model_config = {"populate_by_name": True}


class BookRecord(BaseModel):
    """A book as held by the store and returned by ``GET /books/{bookId}``."""
    id: str = Field(..., description="Unique book identifier")
    name: str = Field(..., description="Book title")
    year: Optional[Number] = Field(None, description="Publication year")
    author: Optional[str] = Field(None, description="Book author")
    summary: Optional[str] = Field(None, description="Short summary")
    publisher: Optional[str] = Field(None, description="Publisher name")
    page_count: Optional[Number] = Field(None, alias="pageCount", description="Total number of pages")
    read_page: Optional[Number] = Field(None, alias="readPage", description="Last page read")
    finished: bool = Field(..., description="Whether readPage has reached pageCount")
    reading: Optional[bool] = Field(None, description="Whether the book is being read")
    inserted_at: str = Field(..., alias="insertedAt", description="Creation timestamp")
    updated_at: str = Field(..., alias="updatedAt", description="Last update timestamp")

    model_config = {"populate_by_name": True}

    def summarize(self) -> "BookSummary":
        """Project the record down to its list entry."""
        return BookSummary(id=self.id, name=self.name, publisher=self.publisher)


class BookSummary(BaseModel):
    """Reduced view of a book used in list results."""
    id: str = Field(..., description="Unique book identifier")
    name: str = Field(..., description="Book title")
    publisher: Optional[str] = Field(None, description="Publisher name")


class BookIdData(BaseModel):
    book_id: str = Field(..., alias="bookId", description="Identifier of the new book")

    model_config = {"populate_by_name": True}


class BookCreatedResponse(BaseModel):
    """Response model for a newly added book."""
    status: ResponseStatus = Field(ResponseStatus.SUCCESS, description="Response status")
    message: str = Field(..., description="Human-readable outcome")
    data: BookIdData


class BookListData(BaseModel):
    books: List[BookSummary] = Field(..., description="Matching books")


class BookListResponse(BaseModel):
    """Response model for the book list."""
    status: ResponseStatus = Field(ResponseStatus.SUCCESS, description="Response status")
    data: BookListData


class BookDetailData(BaseModel):
    book: BookRecord


class BookDetailResponse(BaseModel):
    """Response model for a single book."""
    status: ResponseStatus = Field(ResponseStatus.SUCCESS, description="Response status")
    data: BookDetailData


class MessageResponse(BaseModel):
    """Status plus message; used for updates, deletes and every failure."""
    status: ResponseStatus = Field(..., description="Response status")
    message: str = Field(..., description="Human-readable outcome")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    book_count: int = Field(..., alias="bookCount", description="Number of books on the shelf")

    model_config = {"populate_by_name": True}


DECIMAL_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")
RADIX_PATTERNS = {
    "0x": (16, re.compile(r"[0-9a-fA-F]+")),
    "0o": (8, re.compile(r"[0-7]+")),
    "0b": (2, re.compile(r"[01]+")),
}
INFINITIES = {"Infinity", "+Infinity", "-Infinity"}


def parse_flag(value: Optional[str]) -> Optional[bool]:
    """Coerce a ``reading``/``finished`` query value to a boolean.

    The value is read as a JavaScript-style numeric string: decimal or
    exponent notation, ``0x``/``0o``/``0b`` integers, or ``Infinity``.
    Zero and the empty string are false, any other number is true, and
    anything else is false. ``None`` means the filter was not supplied.
    """
    if value is None:
        return None

    text = value.strip()
    if not text:
        return False
    if text in INFINITIES:
        return True

    radix = RADIX_PATTERNS.get(text[:2].lower())
    if radix is not None:
        base, digits = radix
        if not digits.fullmatch(text[2:]):
            return False
        return int(text[2:], base) != 0

    if not DECIMAL_PATTERN.fullmatch(text):
        return False
    return float(text) != 0
