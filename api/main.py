"""
FastAPI main application for the Book API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import APIConfig, config
from api.database import BookDatabaseService, MongoDBManager
from api.docs import DOCS_URL, OPENAPI_URL, ROUTE_DOCS, configure_openapi
from api.exceptions import BookNotFoundError, BookStoreError
from api.middleware import RequestLoggingMiddleware
from api.models import Book, BookCreate, BookUpdate, ErrorResponse, HealthResponse

logger = structlog.get_logger(__name__)

WELCOME_MESSAGE = "Welcome my friends welcome"
ADDED_MESSAGE = "Added Successfully"
DELETED_MESSAGE = "Book is deleted"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the MongoDB connection for the lifetime of the app."""
    api_config: APIConfig = app.state.config
    logger.info("Starting Book API", database=api_config.mongodb_database)

    # A failed connect propagates and aborts startup
    db_manager = MongoDBManager(
        connection_url=api_config.mongodb_url,
        database_name=api_config.mongodb_database,
        collection_name=api_config.mongodb_collection
    )
    await db_manager.connect()

    app.state.db_manager = db_manager
    app.state.book_service = BookDatabaseService(
        db_manager.collection,
        id_assignment_retries=api_config.id_assignment_retries
    )

    yield

    logger.info("Shutting down Book API")
    await db_manager.disconnect()


def get_book_service(request: Request) -> BookDatabaseService:
    """Dependency returning the book service opened in the lifespan."""
    book_service = getattr(request.app.state, "book_service", None)
    if book_service is None:
        raise BookStoreError("Database service not available")
    return book_service


def _error_response(status_code: int, error: str, detail: Optional[str] = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).to_response(),
        headers=headers
    )


def register_exception_handlers(app: FastAPI, api_config: APIConfig) -> None:
    """Map every failure to the {"error": ...} envelope."""

    @app.exception_handler(BookNotFoundError)
    async def book_not_found_handler(request: Request, exc: BookNotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        logger.warning("Invalid request", detail=detail)
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request", detail)

    @app.exception_handler(PyMongoError)
    @app.exception_handler(BookStoreError)
    async def storage_exception_handler(request: Request, exc: Exception):
        logger.error("Database error", error=str(exc), error_type=type(exc).__name__)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Database error",
            str(exc) if api_config.debug else None
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            str(exc) if api_config.debug else None
        )


router = APIRouter()


@router.get("/", response_class=PlainTextResponse, **ROUTE_DOCS["welcome"])
async def welcome():
    return WELCOME_MESSAGE


@router.get("/health", response_model=HealthResponse, **ROUTE_DOCS["health_check"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_manager: Optional[MongoDBManager] = getattr(request.app.state, "db_manager", None)
    db_status = "healthy" if db_manager and await db_manager.ping() else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=request.app.state.config.api_version,
        database_status=db_status
    )


@router.get("/api/books", response_model=List[Book], **ROUTE_DOCS["list_books"])
async def list_books(book_service: BookDatabaseService = Depends(get_book_service)):
    return await book_service.list_books()


@router.get("/api/books/{id}", response_model=List[Book], **ROUTE_DOCS["get_book"])
async def get_book(
    id: str = Path(..., description="Storage record identifier (_id)"),
    book_service: BookDatabaseService = Depends(get_book_service)
):
    return await book_service.find_books(id)


@router.post("/api/books/addBook", response_class=PlainTextResponse, **ROUTE_DOCS["add_book"])
async def add_book(
    book: BookCreate,
    book_service: BookDatabaseService = Depends(get_book_service)
):
    await book_service.add_book(book)
    return ADDED_MESSAGE


@router.put("/api/books/{id}", response_model=Book, **ROUTE_DOCS["update_book"])
async def update_book(
    update: BookUpdate,
    id: str = Path(..., description="Storage record identifier (_id)"),
    book_service: BookDatabaseService = Depends(get_book_service)
):
    return await book_service.update_book(id, update)


@router.delete("/api/books/{id}", response_class=PlainTextResponse, **ROUTE_DOCS["delete_book"])
async def delete_book(
    id: str = Path(..., description="Storage record identifier (_id)"),
    book_service: BookDatabaseService = Depends(get_book_service)
):
    await book_service.delete_book(id)
    return DELETED_MESSAGE


def create_app(api_config: APIConfig = config) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        api_config: Settings for this app instance

    Returns:
        Configured FastAPI app; the database opens when its lifespan starts
    """
    app = FastAPI(
        title=api_config.api_title,
        description=api_config.api_description,
        version=api_config.api_version,
        docs_url=DOCS_URL,
        openapi_url=OPENAPI_URL,
        redoc_url=None,
        lifespan=lifespan
    )
    app.state.config = api_config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app, api_config)
    app.include_router(router)
    configure_openapi(app, api_config)

    return app


app = create_app()
