"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from bookshelf.main import create_app
from bookshelf.models import BookPayload
from bookshelf.store import BookStore


@pytest.fixture
def book_store():
    """Create an empty book store."""
    return BookStore()


@pytest.fixture
def client(book_store):
    """Create a test client serving the ``book_store`` fixture."""
    return TestClient(create_app(store=book_store))


@pytest.fixture
def sample_book_payload():
    """Sample request body for creating a book."""
    return {
        "name": "Dune",
        "year": 1965,
        "author": "Frank Herbert",
        "summary": "A desert planet and the spice that rules the universe.",
        "publisher": "Chilton Books",
        "pageCount": 412,
        "readPage": 120,
        "reading": True,
    }


@pytest.fixture
def make_payload(sample_book_payload):
    """Factory building a ``BookPayload`` from the sample with overrides."""
    def _make(**overrides):
        return BookPayload(**{**sample_book_payload, **overrides})
    return _make
