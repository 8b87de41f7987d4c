"""
MongoDB access for the book API.
Holds the motor connection and the book CRUD operations built on it.
"""

from typing import List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from api.exceptions import BookNotFoundError, BookStoreError
from api.models import Book, BookCreate, BookUpdate, parse_record_id

logger = structlog.get_logger(__name__)

DUPLICATE_KEY_ERROR_CODE = 11000


class MongoDBManager:
    """
    Async MongoDB manager owning the single client connection.
    Opened once at startup and closed on shutdown.
    """

    def __init__(self, connection_url: str, database_name: str, collection_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the book collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._collection: Optional[AsyncIOMotorCollection] = None

    @property
    def collection(self) -> AsyncIOMotorCollection:
        if self._collection is None:
            raise BookStoreError("MongoDB connection is not open")
        return self._collection

    async def connect(self) -> None:
        """Establish connection to MongoDB and prepare the collection."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self._collection = self.database[self.collection_name]

            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self._create_indexes()

        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self._collection = None
            logger.info("Disconnected from MongoDB")

    async def ping(self) -> bool:
        """Return True when the server answers a ping."""
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed", error=str(e))
            return False

    async def _create_indexes(self) -> None:
        """
        Unique index on the application id.
        Concurrent adds that compute the same id fail on insert and retry.
        Collections already holding duplicate ids keep working without it.
        """
        try:
            await self._collection.create_index("id", unique=True)
            logger.info("Successfully created MongoDB indexes")
        except OperationFailure as e:
            if e.code != DUPLICATE_KEY_ERROR_CODE:
                logger.error("Failed to create indexes", error=str(e))
                raise
            logger.warning("Duplicate book ids stored, unique id index not created",
                           collection=self.collection_name, error=str(e))
        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise


class BookDatabaseService:
    """Book CRUD operations, one collection call each."""

    def __init__(self, collection: AsyncIOMotorCollection, id_assignment_retries: int = 3):
        self.collection = collection
        self.id_assignment_retries = id_assignment_retries

    async def list_books(self) -> List[Book]:
        """Get every book, unfiltered and unpaginated."""
        try:
            documents = await self.collection.find({}).to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list books", error=str(e))
            raise

        return [Book.from_document(document) for document in documents]

    async def find_books(self, record_id: str) -> List[Book]:
        """
        Get the books stored under a record identifier.

        Args:
            record_id: Storage record identifier

        Returns:
            List with the matching book, or an empty list
        """
        try:
            cursor = self.collection.find({"_id": parse_record_id(record_id)})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to get book", record_id=record_id, error=str(e))
            raise

        return [Book.from_document(document) for document in documents]

    async def next_book_id(self) -> int:
        """Highest stored application id plus one, or 1 for an empty collection."""
        try:
            last_book = await self.collection.find_one({}, sort=[("id", DESCENDING)])
        except PyMongoError as e:
            logger.error("Failed to read last book id", error=str(e))
            raise
        return last_book["id"] + 1 if last_book else 1

    async def add_book(self, book: BookCreate) -> Book:
        """
        Insert a new book with the next application id.

        The id is read then written without a lock, so a concurrent add can
        take it first. The unique index rejects the second insert and the
        sequence is retried with a fresh id.

        Args:
            book: Validated request body

        Returns:
            The stored book
        """
        for attempt in range(1, self.id_assignment_retries + 1):
            book_id = await self.next_book_id()
            document = book.to_document(book_id)
            try:
                result = await self.collection.insert_one(document)
            except DuplicateKeyError:
                if attempt == self.id_assignment_retries:
                    logger.error("Book id still taken after retries",
                                 book_id=book_id, attempts=attempt)
                    raise
                logger.warning("Book id already taken, retrying",
                               book_id=book_id, attempt=attempt)
                continue
            except PyMongoError as e:
                logger.error("Failed to add book", title=book.title, error=str(e))
                raise

            document["_id"] = result.inserted_id
            logger.info("Book added", book_id=book_id, record_id=str(result.inserted_id))
            return Book.from_document(document)

        # range() is never empty: id_assignment_retries is validated >= 1
        raise BookStoreError("No attempt was made to add the book")

    async def update_book(self, record_id: str, update: BookUpdate) -> Book:
        """
        Replace the title of a book and return the updated record.

        Raises:
            BookNotFoundError: nothing is stored under record_id
        """
        try:
            document = await self.collection.find_one_and_update(
                {"_id": parse_record_id(record_id)},
                update.to_update(),
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error("Failed to update book", record_id=record_id, error=str(e))
            raise

        if document is None:
            logger.warning("Book not found for update", record_id=record_id)
            raise BookNotFoundError(record_id)

        logger.info("Book updated", record_id=record_id, book_id=document["id"])
        return Book.from_document(document)

    async def delete_book(self, record_id: str) -> Optional[Book]:
        """
        Delete the book stored under record_id.

        A missing record is not an error.

        Returns:
            The deleted book, or None if nothing matched
        """
        try:
            document = await self.collection.find_one_and_delete(
                {"_id": parse_record_id(record_id)}
            )
        except PyMongoError as e:
            logger.error("Failed to delete book", record_id=record_id, error=str(e))
            raise

        if document is None:
            logger.info("No book to delete", record_id=record_id)
            return None

        logger.info("Book deleted", record_id=record_id, book_id=document["id"])
        return Book.from_document(document)
