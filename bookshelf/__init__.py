"""
FastAPI RESTful API for the Bookshelf reading tracker.

This package provides a small REST API for:
- Adding books to an in-memory shelf
- Listing books with name/reading/finished filters
- Reading, updating and removing a single book
"""
