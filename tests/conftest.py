"""
Pytest configuration and shared fixtures.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from api.config import APIConfig
from api.database import BookDatabaseService, MongoDBManager
from api.main import create_app, get_book_service


class InMemoryCursor:
    """Stand-in for a motor cursor."""

    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        return [dict(document) for document in self._documents[:length]]


class InMemoryCollection:
    """
    Small in-memory stand-in for the motor book collection.

    Supports exact-match filters, the sort used for id assignment and the
    unique index on ``id``. With yield_on_read set, find_one gives control
    back to the event loop so concurrent adds read the same maximum id.
    """

    def __init__(self, yield_on_read: bool = False):
        self.documents = []
        self.yield_on_read = yield_on_read

    @staticmethod
    def _matches(document, query):
        return all(document.get(key) == value for key, value in query.items())

    def _find(self, query):
        return [document for document in self.documents if self._matches(document, query or {})]

    def find(self, query=None):
        return InMemoryCursor(self._find(query))

    async def find_one(self, query=None, sort=None):
        if self.yield_on_read:
            await asyncio.sleep(0)
        matches = self._find(query)
        if sort:
            key, direction = sort[0]
            matches.sort(key=lambda document: document[key], reverse=direction == DESCENDING)
        return dict(matches[0]) if matches else None

    async def insert_one(self, document):
        if any(stored["id"] == document["id"] for stored in self.documents):
            raise DuplicateKeyError(f"E11000 duplicate key error dup key: {{ id: {document['id']} }}")
        document.setdefault("_id", ObjectId())
        self.documents.append(dict(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for document in self.documents:
            if self._matches(document, query):
                before = dict(document)
                document.update(update["$set"])
                return dict(document) if return_document == ReturnDocument.AFTER else before
        return None

    async def find_one_and_delete(self, query):
        for document in self.documents:
            if self._matches(document, query):
                self.documents.remove(document)
                return dict(document)
        return None


@pytest.fixture
def api_config():
    """Settings isolated from the environment's .env file."""
    return APIConfig(_env_file=None)


@pytest.fixture
def book_collection():
    """Empty in-memory book collection."""
    return InMemoryCollection()


@pytest.fixture
def racing_book_collection():
    """In-memory collection where concurrent adds read the same max id."""
    return InMemoryCollection(yield_on_read=True)


@pytest.fixture
def book_service(book_collection):
    """Book service backed by the in-memory collection."""
    return BookDatabaseService(book_collection, id_assignment_retries=3)


@pytest.fixture
def app(api_config, book_service):
    """App with the book service injected in place of MongoDB."""
    application = create_app(api_config)
    application.dependency_overrides[get_book_service] = lambda: book_service
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mock_collection():
    """Mock motor collection; cursor-returning find stays synchronous."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.find.return_value.to_list = AsyncMock(return_value=[])
    return collection


@pytest.fixture
def mock_db_manager():
    """Create a mock MongoDB manager for testing."""
    manager = AsyncMock(spec=MongoDBManager)
    manager.collection = MagicMock()
    manager.ping.return_value = True
    return manager


@pytest.fixture
def sample_document():
    """Stored book document."""
    return {"_id": ObjectId("65f1c2a4e13b9a0d8c7e4b21"), "id": 1, "title": "Dune"}
