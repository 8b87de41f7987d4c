"""
API models and schemas for the FastAPI application.
Also maps stored MongoDB documents to and from the wire format.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


def parse_record_id(record_id: str) -> Union[ObjectId, str]:
    """
    Convert a path record identifier to the value stored in ``_id``.

    Record identifiers are opaque: a 24-hex string is treated as an
    ObjectId, anything else is matched as a plain string.
    """
    if ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return record_id


class Book(BaseModel):
    """Book record as returned by the API."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "65f1c2a4e13b9a0d8c7e4b21",
                "id": 1,
                "title": "Dune"
            }
        }
    )

    record_id: str = Field(..., alias="_id", description="Storage-assigned record identifier")
    id: int = Field(..., description="Application-assigned book number")
    title: str = Field(..., description="Book title")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Book":
        """Build a Book from a stored MongoDB document."""
        return cls(
            record_id=str(document["_id"]),
            id=document["id"],
            title=document["title"]
        )

    def to_response(self) -> Dict[str, Any]:
        """Serialize using the wire field names."""
        return self.model_dump(by_alias=True)


class BookCreate(BaseModel):
    """Request body for adding a book."""
    model_config = ConfigDict(
        extra="ignore",
        coerce_numbers_to_str=True,
        json_schema_extra={"example": {"title": "Dune"}}
    )

    title: str = Field(..., description="Book title")

    def to_document(self, book_id: int) -> Dict[str, Any]:
        """Build the document to insert for the given application id."""
        return {"id": book_id, "title": self.title}


class BookUpdate(BaseModel):
    """Request body for updating a book."""
    model_config = ConfigDict(
        extra="ignore",
        coerce_numbers_to_str=True,
        json_schema_extra={"example": {"title": "Dune Messiah"}}
    )

    title: str = Field(..., description="New book title")

    def to_update(self) -> Dict[str, Any]:
        return {"$set": {"title": self.title}}


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
