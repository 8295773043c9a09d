"""Common Pydantic schemas."""

import math

from pydantic import BaseModel, Field


class PaginatedResponse(BaseModel):
    """Base class for offset-paginated responses."""

    total: int = Field(..., ge=0, description="Total number of matching rows")
    page: int = Field(..., ge=1, description="1-based page number")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="Number of pages at this page size")

    @staticmethod
    def count_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0
