"""
OpenAPI description for the book API.

Route documentation lives in ROUTE_DOCS, keyed by handler name, and is
unpacked into the route decorators in api.main. configure_openapi adds
the server list and shared schemas to the generated document.
"""

from typing import Any, Dict

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from api.config import APIConfig
from api.models import Book, ErrorResponse

DOCS_URL = "/api-docs"
OPENAPI_URL = "/api-docs/openapi.json"

_TEXT_RESPONSE = {"content": {"text/plain": {"schema": {"type": "string"}}}}
_ERROR_RESPONSE = {"model": ErrorResponse}

_RECORD_ID_NOTE = "The `id` path parameter is the storage record identifier (`_id`), not the book number."

ROUTE_DOCS: Dict[str, Dict[str, Any]] = {
    "welcome": {
        "summary": "Check that the service answers GET requests",
        "description": "Returns a static greeting.",
        "tags": ["Health"],
        "responses": {200: {"description": "Greeting", **_TEXT_RESPONSE}},
    },
    "health_check": {
        "summary": "Service and database health",
        "description": "Pings MongoDB and reports the result.",
        "tags": ["Health"],
    },
    "list_books": {
        "summary": "Get all books from MongoDB",
        "description": "Returns every stored book, unfiltered and unpaginated.",
        "tags": ["Books"],
        "responses": {500: {"description": "Database error", **_ERROR_RESPONSE}},
    },
    "get_book": {
        "summary": "Get a book by record identifier",
        "description": "Returns a list holding the matching book, or an empty list. " + _RECORD_ID_NOTE,
        "tags": ["Books"],
        "responses": {500: {"description": "Database error", **_ERROR_RESPONSE}},
    },
    "add_book": {
        "summary": "Insert a book into MongoDB",
        "description": "Stores a new book numbered one past the highest existing book number.",
        "tags": ["Books"],
        "responses": {
            200: {"description": "Added Successfully", **_TEXT_RESPONSE},
            422: {"description": "Invalid request body", **_ERROR_RESPONSE},
            500: {"description": "Database error", **_ERROR_RESPONSE},
        },
    },
    "update_book": {
        "summary": "Update a book title",
        "description": "Replaces the title and returns the updated record. " + _RECORD_ID_NOTE,
        "tags": ["Books"],
        "responses": {
            404: {"description": "Book not found", **_ERROR_RESPONSE},
            422: {"description": "Invalid request body", **_ERROR_RESPONSE},
            500: {"description": "Database error", **_ERROR_RESPONSE},
        },
    },
    "delete_book": {
        "summary": "Delete a book from MongoDB",
        "description": "Removes the matching book. Succeeds even when nothing matched. " + _RECORD_ID_NOTE,
        "tags": ["Books"],
        "responses": {
            200: {"description": "Book is deleted", **_TEXT_RESPONSE},
            500: {"description": "Database error", **_ERROR_RESPONSE},
        },
    },
}


def configure_openapi(app: FastAPI, api_config: APIConfig) -> None:
    """Install an OpenAPI generator that adds servers and the Book schema."""

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(
            title=api_config.api_title,
            version=api_config.api_version,
            description=api_config.api_description,
            routes=app.routes,
            servers=[{"url": api_config.server_url}],
        )
        components = schema.setdefault("components", {}).setdefault("schemas", {})
        components.setdefault("Book", Book.model_json_schema(by_alias=True))

        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi
