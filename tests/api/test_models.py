"""
Unit tests for Pydantic models and record mapping.
"""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from api.models import Book, BookCreate, BookUpdate, ErrorResponse, parse_record_id


class TestBook:
    """Test cases for the Book model."""

    def test_from_document(self, sample_document):
        """Stored documents map to the wire shape."""
        book = Book.from_document(sample_document)

        assert book.record_id == "65f1c2a4e13b9a0d8c7e4b21"
        assert book.id == 1
        assert book.title == "Dune"

    def test_to_response_uses_underscore_id(self, sample_document):
        """Test serialization by alias."""
        response = Book.from_document(sample_document).to_response()

        assert response == {"_id": "65f1c2a4e13b9a0d8c7e4b21", "id": 1, "title": "Dune"}

    def test_populate_by_alias(self):
        """Test construction from wire data."""
        book = Book(**{"_id": "abc", "id": 2, "title": "Emma"})
        assert book.record_id == "abc"

    def test_id_coercion(self):
        """Numeric strings are coerced to int."""
        book = Book(record_id="abc", id="3", title="Emma")
        assert book.id == 3

    def test_invalid_id(self):
        """Test non-numeric id is rejected."""
        with pytest.raises(ValidationError):
            Book(record_id="abc", id="three", title="Emma")


class TestRequestBodies:
    """Test cases for request models."""

    def test_book_create_document(self):
        """Test document built for insert."""
        assert BookCreate(title="Dune").to_document(5) == {"id": 5, "title": "Dune"}

    def test_book_create_ignores_extra_fields(self):
        """Test client-supplied ids are dropped."""
        body = BookCreate(**{"title": "Dune", "id": 9, "_id": "x"})
        assert body.model_dump() == {"title": "Dune"}

    def test_book_create_requires_title(self):
        """Test missing title."""
        with pytest.raises(ValidationError):
            BookCreate()

    def test_book_create_rejects_non_string_title(self):
        """Test title type checking."""
        with pytest.raises(ValidationError):
            BookCreate(title=["Dune"])

    def test_book_update_sets_title_only(self):
        """Test update document."""
        assert BookUpdate(title="Emma", id=4).to_update() == {"$set": {"title": "Emma"}}


class TestParseRecordId:
    """Test cases for record identifier parsing."""

    def test_object_id_string(self):
        """Test 24-hex strings become ObjectId."""
        assert parse_record_id("65f1c2a4e13b9a0d8c7e4b21") == ObjectId("65f1c2a4e13b9a0d8c7e4b21")

    @pytest.mark.parametrize("record_id", ["42", "not-an-id", "65f1c2a4e13b9a0d8c7e4b2"])
    def test_other_strings_are_kept(self, record_id):
        """Test opaque identifiers pass through."""
        assert parse_record_id(record_id) == record_id


def test_error_response_drops_empty_detail():
    """Test error envelope serialization."""
    assert ErrorResponse(error="Book not found").to_response() == {"error": "Book not found"}
    assert ErrorResponse(error="Database error", detail="timeout").to_response() == {
        "error": "Database error",
        "detail": "timeout",
    }
