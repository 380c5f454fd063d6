"""
In-memory book store for the FastAPI application.

The store keeps books in insertion order in a plain list. Lookups by id are
linear scans, which is fine for a personal shelf. Store operations never
yield control, so they are safe to call from ``async def`` handlers on a
single event loop; hosting the store in a threaded server needs a lock.
"""

import secrets
from datetime import datetime, timezone
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional

import structlog

from bookshelf.models import BookPayload, BookRecord, BookSummary

logger = structlog.get_logger(__name__)


class BookStoreError(Exception):
    """Base class for store errors."""


class BookValidationError(BookStoreError, ValueError):
    """A payload was rejected before touching the store."""


class MissingNameError(BookValidationError):
    def __init__(self):
        super().__init__("Please provide the book name")


class ReadPageExceedsPageCountError(BookValidationError):
    def __init__(self, read_page: float, page_count: float):
        self.read_page = read_page
        self.page_count = page_count
        super().__init__("readPage cannot be greater than pageCount")


class BookNotFoundError(BookStoreError, LookupError):
    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book with ID '{book_id}' not found")


class BookInsertError(BookStoreError):
    """A new book could not be found in the store right after inserting it."""


def _timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


class BookListing:
    """Lazy view over the books matching a set of filters.

    Iterating re-reads the store, so the same listing can be iterated more
    than once and always reflects the current shelf. At most ``limit``
    summaries are produced, in store order.
    """

    def __init__(
        self,
        books: List[BookRecord],
        predicates: List[Callable[[BookRecord], bool]],
        limit: int
    ):
        self._books = books
        self._predicates = predicates
        self._limit = limit

    def __iter__(self) -> Iterator[BookSummary]:
        matches = (
            book for book in self._books
            if all(predicate(book) for predicate in self._predicates)
        )
        return (book.summarize() for book in islice(matches, self._limit))


class BookStore:
    """Authoritative ordered collection of book records."""

    LIST_LIMIT = 2
    ID_BYTES = 12  # 16 url-safe characters

    def __init__(self, books: Optional[Iterable[BookRecord]] = None):
        self._books: List[BookRecord] = list(books or [])

    def __len__(self) -> int:
        return len(self._books)

    @classmethod
    def generate_book_id(cls) -> str:
        """Generate a new opaque book id."""
        return secrets.token_urlsafe(cls.ID_BYTES)

    @staticmethod
    def validate_payload(payload: BookPayload) -> None:
        """
        Apply the checks shared by create and update.

        Raises:
            MissingNameError: the payload has no name
            ReadPageExceedsPageCountError: readPage is past pageCount
        """
        if payload.name is None:
            raise MissingNameError()
        if (
            payload.read_page is not None
            and payload.page_count is not None
            and payload.read_page > payload.page_count
        ):
            raise ReadPageExceedsPageCountError(payload.read_page, payload.page_count)

    def add_book(self, payload: BookPayload) -> str:
        """
        Add a book to the end of the shelf.

        Args:
            payload: Book fields sent by the client

        Returns:
            The generated book id
        """
        self.validate_payload(payload)

        book_id = self.generate_book_id()
        while self._find_index(book_id) is not None:
            book_id = self.generate_book_id()

        now = _timestamp()
        book = BookRecord(
            id=book_id,
            finished=payload.page_count == payload.read_page,
            inserted_at=now,
            updated_at=now,
            **payload.model_dump()
        )
        self._books.append(book)

        if self._find_index(book_id) is None:
            logger.error("Book missing after insert", book_id=book_id)
            raise BookInsertError(f"Book '{book_id}' was not stored")

        logger.info("Book added", book_id=book_id, name=book.name)
        return book_id

    def list_books(
        self,
        name: Optional[str] = None,
        reading: Optional[bool] = None,
        finished: Optional[bool] = None
    ) -> BookListing:
        """
        List book summaries matching every supplied filter.

        Args:
            name: Case-insensitive substring of the book name
            reading: Required value of the ``reading`` flag
            finished: Required value of the ``finished`` flag

        Returns:
            A restartable listing of at most ``LIST_LIMIT`` summaries
        """
        predicates: List[Callable[[BookRecord], bool]] = []

        if name is not None:
            needle = name.lower()
            predicates.append(lambda book: needle in book.name.lower())

        if reading is not None:
            predicates.append(lambda book: book.reading == reading)

        if finished is not None:
            predicates.append(lambda book: book.finished == finished)

        return BookListing(self._books, predicates, self.LIST_LIMIT)

    def get_book_by_id(self, book_id: str) -> BookRecord:
        """Return the book with the given id or raise ``BookNotFoundError``."""
        return self._books[self._require_index(book_id)]

    def update_book_by_id(self, book_id: str, payload: BookPayload) -> BookRecord:
        """
        Replace every mutable field of a book.

        Fields missing from the payload are cleared. ``id`` and
        ``inserted_at`` are kept.

        Raises:
            BookNotFoundError: no book has this id
            BookValidationError: the payload failed validation
        """
        index = self._require_index(book_id)
        self.validate_payload(payload)

        book = self._books[index]
        for field, value in payload.model_dump().items():
            setattr(book, field, value)
        book.finished = payload.page_count == payload.read_page
        book.updated_at = _timestamp()

        logger.info("Book updated", book_id=book_id)
        return book

    def delete_book_by_id(self, book_id: str) -> None:
        """Remove a book, keeping the order of the others."""
        index = self._require_index(book_id)
        del self._books[index]
        logger.info("Book deleted", book_id=book_id)

    def _find_index(self, book_id: str) -> Optional[int]:
        for index, book in enumerate(self._books):
            if book.id == book_id:
                return index
        return None

    def _require_index(self, book_id: str) -> int:
        index = self._find_index(book_id)
        if index is None:
            raise BookNotFoundError(book_id)
        return index
