"""
FastAPI CRUD service for a MongoDB book collection.

This package provides:
- Book listing, lookup, creation, update and deletion
- MongoDB connection lifecycle
- Interactive API documentation at /api-docs
"""
