"""
FastAPI main application for the Bookshelf API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookshelf.config import APIConfig, config
from bookshelf.models import (
    BookCreatedResponse, BookDetailData, BookDetailResponse, BookIdData,
    BookListData, BookListResponse, BookPayload, HealthResponse,
    MessageResponse, ResponseStatus, parse_flag
)
from bookshelf.store import (
    BookInsertError, BookNotFoundError, BookStore, BookValidationError
)

# Setup logging
logger = structlog.get_logger(__name__)

router = APIRouter()

FAILURE_RESPONSES = {
    400: {"model": MessageResponse, "description": "Invalid book data"},
    404: {"model": MessageResponse, "description": "Book not found"},
}


def get_book_store(request: Request) -> BookStore:
    """Dependency returning the store attached to the running app."""
    return request.app.state.book_store


def _json(model: BaseModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Bookshelf API", books=len(app.state.book_store))
    yield
    logger.info("Shutting down Bookshelf API")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(
            status=ResponseStatus.FAIL,
            message=str(exc.detail)
        ).model_dump(mode="json"),
        headers=exc.headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Answer malformed request bodies with 400 instead of 422."""
    logger.warning("Invalid request payload", path=request.url.path, errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=MessageResponse(
            status=ResponseStatus.FAIL,
            message="Invalid request payload"
        ).model_dump(mode="json")
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    message = "Internal server error"
    if request.app.state.settings.debug:
        message = f"{message}: {exc}"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=MessageResponse(
            status=ResponseStatus.FAIL,
            message=message
        ).model_dump(mode="json")
    )


# Health check endpoint
@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request, store: BookStore = Depends(get_book_store)):
    """Health check endpoint."""
    return _json(HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=request.app.state.settings.api_version,
        book_count=len(store)
    ))


# Books endpoints
@router.post(
    "/books",
    response_model=BookCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: FAILURE_RESPONSES[400], 500: {"model": MessageResponse}},
    tags=["Books"]
)
async def add_book(payload: BookPayload, store: BookStore = Depends(get_book_store)):
    """
    Add a book to the shelf.

    - **name**: required
    - **readPage**: must not be greater than **pageCount**
    """
    try:
        book_id = store.add_book(payload)
    except BookValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to add book. {e}"
        )
    except BookInsertError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Book could not be added"
        )

    return _json(
        BookCreatedResponse(
            message="Book added successfully",
            data=BookIdData(book_id=book_id)
        ),
        status_code=status.HTTP_201_CREATED
    )


@router.get("/books", response_model=BookListResponse, tags=["Books"])
async def get_books(
    name: Optional[str] = None,
    reading: Optional[str] = None,
    finished: Optional[str] = None,
    store: BookStore = Depends(get_book_store)
):
    """
    List books, at most two at a time.

    - **name**: case-insensitive part of the book name
    - **reading**: 1 for books being read, 0 for the others
    - **finished**: 1 for finished books, 0 for the others
    """
    books = store.list_books(
        name=name,
        reading=parse_flag(reading),
        finished=parse_flag(finished)
    )
    return _json(BookListResponse(data=BookListData(books=list(books))))


@router.get(
    "/books/{book_id}",
    response_model=BookDetailResponse,
    responses={404: FAILURE_RESPONSES[404]},
    tags=["Books"]
)
async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Get a single book by ID."""
    try:
        book = store.get_book_by_id(book_id)
    except BookNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found"
        )

    return _json(BookDetailResponse(data=BookDetailData(book=book)))


@router.put(
    "/books/{book_id}",
    response_model=MessageResponse,
    responses=FAILURE_RESPONSES,
    tags=["Books"]
)
async def update_book(
    book_id: str,
    payload: BookPayload,
    store: BookStore = Depends(get_book_store)
):
    """Replace the details of a book."""
    try:
        store.update_book_by_id(book_id, payload)
    except BookNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Failed to update book. Id not found"
        )
    except BookValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to update book. {e}"
        )

    return _json(MessageResponse(
        status=ResponseStatus.SUCCESS,
        message="Book updated successfully"
    ))


@router.delete(
    "/books/{book_id}",
    response_model=MessageResponse,
    responses={404: FAILURE_RESPONSES[404]},
    tags=["Books"]
)
async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Remove a book from the shelf."""
    try:
        store.delete_book_by_id(book_id)
    except BookNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Failed to delete book. Id not found"
        )

    return _json(MessageResponse(
        status=ResponseStatus.SUCCESS,
        message="Book deleted successfully"
    ))


def create_app(store: Optional[BookStore] = None, settings: Optional[APIConfig] = None) -> FastAPI:
    """
    Build the FastAPI application around a book store.

    Args:
        store: Store to serve; a new empty one when omitted
        settings: API settings; the global ``config`` when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or config

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan
    )
    app.state.book_store = store if store is not None else BookStore()
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(router)
    return app


# Create FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bookshelf.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
