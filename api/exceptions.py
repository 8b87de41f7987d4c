"""
Exceptions raised by the book data service.
"""


class BookStoreError(Exception):
    """Base class for book storage failures."""


class BookNotFoundError(BookStoreError):
    """No book matched the given record identifier."""

    def __init__(self, record_id: str):
        super().__init__("Book not found")
        self.record_id = record_id
