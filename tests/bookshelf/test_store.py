"""
Unit tests for the in-memory book store.
"""

import pytest

from bookshelf import store as store_module
from bookshelf.models import BookPayload, BookSummary
from bookshelf.store import (
    BookInsertError, BookNotFoundError, BookStore, MissingNameError,
    ReadPageExceedsPageCountError
)


class TestAddBook:
    """Test cases for adding books."""

    def test_add_book_returns_retrievable_id(self, book_store, make_payload):
        """Test that the generated id can be used to read the book back."""
        book_id = book_store.add_book(make_payload())

        book = book_store.get_book_by_id(book_id)
        assert len(book_id) == 16
        assert book.id == book_id
        assert book.name == "Dune"
        assert book.author == "Frank Herbert"
        assert book.page_count == 412
        assert book.read_page == 120
        assert book.reading is True
        assert len(book_store) == 1

    def test_timestamps_are_set_once(self, book_store, make_payload):
        """Test that a new book has equal UTC insert and update timestamps."""
        book = book_store.get_book_by_id(book_store.add_book(make_payload()))

        assert book.inserted_at == book.updated_at
        assert book.inserted_at.endswith("Z")

    def test_unfinished_book(self, book_store, make_payload):
        """Test that a partly read book is not finished."""
        book_id = book_store.add_book(make_payload(readPage=411))
        assert book_store.get_book_by_id(book_id).finished is False

    def test_finished_book(self, book_store, make_payload):
        """Test that a book read to its last page is finished."""
        book_id = book_store.add_book(make_payload(readPage=412))
        assert book_store.get_book_by_id(book_id).finished is True

    def test_missing_name(self, book_store, make_payload):
        """Test that a book without a name is rejected and not stored."""
        with pytest.raises(MissingNameError):
            book_store.add_book(make_payload(name=None))

        assert len(book_store) == 0

    def test_read_page_past_page_count(self, book_store, make_payload):
        """Test that readPage greater than pageCount is rejected and not stored."""
        with pytest.raises(ReadPageExceedsPageCountError) as exc_info:
            book_store.add_book(make_payload(readPage=413))

        assert "readPage cannot be greater than pageCount" in str(exc_info.value)
        assert exc_info.value.read_page == 413
        assert len(book_store) == 0

    def test_read_page_without_page_count(self, book_store):
        """Test that the page check only applies when both counts are given."""
        book_id = book_store.add_book(BookPayload(name="Notes", readPage=10))
        assert book_store.get_book_by_id(book_id).read_page == 10

    def test_ids_are_unique(self, book_store, make_payload, monkeypatch):
        """Test that an id already on the shelf is never handed out again."""
        ids = iter(["same-id", "same-id", "other-id"])
        monkeypatch.setattr(book_store, "generate_book_id", lambda: next(ids))

        first = book_store.add_book(make_payload())
        second = book_store.add_book(make_payload())

        assert first == "same-id"
        assert second == "other-id"

    def test_insert_failure(self, book_store, make_payload, monkeypatch):
        """Test that a book missing right after insert raises BookInsertError."""
        monkeypatch.setattr(book_store, "_find_index", lambda book_id: None)

        with pytest.raises(BookInsertError):
            book_store.add_book(make_payload())


class TestListBooks:
    """Test cases for listing books."""

    def test_empty_store(self, book_store):
        """Test listing an empty store."""
        assert list(book_store.list_books()) == []

    def test_summaries(self, book_store, make_payload):
        """Test that listings only carry id, name and publisher."""
        book_id = book_store.add_book(make_payload())

        summaries = list(book_store.list_books())

        assert summaries == [BookSummary(id=book_id, name="Dune", publisher="Chilton Books")]

    def test_capped_at_two_in_insertion_order(self, book_store, make_payload):
        """Test that only the first two matches are returned."""
        ids = [book_store.add_book(make_payload(name=f"Book {i}")) for i in range(4)]

        summaries = list(book_store.list_books())

        assert [s.id for s in summaries] == ids[:2]

    def test_name_filter_is_case_insensitive(self, book_store, make_payload):
        """Test filtering by part of the name regardless of case."""
        book_store.add_book(make_payload(name="Neuromancer"))
        dune = book_store.add_book(make_payload(name="Dune"))
        messiah = book_store.add_book(make_payload(name="DUNE Messiah"))

        summaries = list(book_store.list_books(name="dune"))

        assert [s.id for s in summaries] == [dune, messiah]

    def test_reading_filter(self, book_store, make_payload):
        """Test filtering by the reading flag."""
        reading = book_store.add_book(make_payload(reading=True))
        idle = book_store.add_book(make_payload(reading=False))

        assert [s.id for s in book_store.list_books(reading=True)] == [reading]
        assert [s.id for s in book_store.list_books(reading=False)] == [idle]

    def test_finished_filter(self, book_store, make_payload):
        """Test filtering by the finished flag."""
        done = book_store.add_book(make_payload(readPage=412))
        open_book = book_store.add_book(make_payload(readPage=1))

        assert [s.id for s in book_store.list_books(finished=True)] == [done]
        assert [s.id for s in book_store.list_books(finished=False)] == [open_book]

    def test_filters_combine(self, book_store, make_payload):
        """Test that a book must match every supplied filter."""
        book_store.add_book(make_payload(name="Dune", reading=False))
        match = book_store.add_book(make_payload(name="Dune", reading=True, readPage=412))
        book_store.add_book(make_payload(name="Emma", reading=True, readPage=412))

        summaries = list(book_store.list_books(name="dune", reading=True, finished=True))

        assert [s.id for s in summaries] == [match]

    def test_listing_is_restartable(self, book_store, make_payload):
        """Test that a listing can be iterated again and sees new books."""
        first = book_store.add_book(make_payload())
        listing = book_store.list_books()

        assert [s.id for s in listing] == [first]
        assert [s.id for s in listing] == [first]

        second = book_store.add_book(make_payload())
        assert [s.id for s in listing] == [first, second]


class TestGetBook:
    """Test cases for reading a single book."""

    def test_not_found(self, book_store):
        """Test reading an unknown id."""
        with pytest.raises(BookNotFoundError) as exc_info:
            book_store.get_book_by_id("missing")

        assert exc_info.value.book_id == "missing"


class TestUpdateBook:
    """Test cases for updating books."""

    def test_update_replaces_fields(self, book_store, make_payload, monkeypatch):
        """Test that every mutable field is replaced and id/insert time kept."""
        monkeypatch.setattr(store_module, "_timestamp", lambda: "2024-01-01T00:00:00.000Z")
        book_id = book_store.add_book(make_payload())

        monkeypatch.setattr(store_module, "_timestamp", lambda: "2024-02-01T00:00:00.000Z")
        book = book_store.update_book_by_id(
            book_id,
            BookPayload(name="Dune Messiah", pageCount=256, readPage=256)
        )

        assert book.id == book_id
        assert book.name == "Dune Messiah"
        assert book.page_count == 256
        assert book.finished is True
        assert book.author is None
        assert book.publisher is None
        assert book.inserted_at == "2024-01-01T00:00:00.000Z"
        assert book.updated_at == "2024-02-01T00:00:00.000Z"
        assert book_store.get_book_by_id(book_id) is book

    def test_update_recomputes_finished(self, book_store, make_payload):
        """Test that finishing and then un-finishing a book is tracked."""
        book_id = book_store.add_book(make_payload(readPage=412))

        book = book_store.update_book_by_id(book_id, make_payload(readPage=100))

        assert book.finished is False

    def test_not_found_takes_precedence(self, book_store):
        """Test that an unknown id is reported before payload problems."""
        with pytest.raises(BookNotFoundError):
            book_store.update_book_by_id("missing", BookPayload())

    def test_invalid_update_leaves_book_untouched(self, book_store, make_payload):
        """Test that a rejected update does not change the book."""
        book_id = book_store.add_book(make_payload())

        with pytest.raises(MissingNameError):
            book_store.update_book_by_id(book_id, make_payload(name=None))
        with pytest.raises(ReadPageExceedsPageCountError):
            book_store.update_book_by_id(book_id, make_payload(readPage=500))

        book = book_store.get_book_by_id(book_id)
        assert book.name == "Dune"
        assert book.read_page == 120


class TestDeleteBook:
    """Test cases for deleting books."""

    def test_delete_keeps_order(self, book_store, make_payload):
        """Test that deleting a book keeps the order of the rest."""
        ids = [book_store.add_book(make_payload(name=f"Book {i}")) for i in range(3)]

        book_store.delete_book_by_id(ids[0])

        assert len(book_store) == 2
        assert [s.id for s in book_store.list_books()] == ids[1:]
        with pytest.raises(BookNotFoundError):
            book_store.get_book_by_id(ids[0])

    def test_not_found(self, book_store):
        """Test deleting an unknown id."""
        with pytest.raises(BookNotFoundError):
            book_store.delete_book_by_id("missing")


def test_store_can_be_seeded(make_payload):
    """Test building a store around existing records."""
    source = BookStore()
    book_id = source.add_book(make_payload())

    seeded = BookStore([source.get_book_by_id(book_id)])

    assert len(seeded) == 1
    assert seeded.get_book_by_id(book_id).name == "Dune"
