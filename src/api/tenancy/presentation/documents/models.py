"""Pydantic models for document API responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DocumentListResponse(BaseModel):
    """Response model for a document query."""

    items: list[dict[str, Any]] = Field(..., description="Matching documents")
    count: int = Field(..., description="Number of matching documents")

    @classmethod
    def from_documents(cls, documents: list[dict[str, Any]]) -> DocumentListResponse:
        """Build the response from store documents."""
        return cls(items=documents, count=len(documents))
