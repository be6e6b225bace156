"""
Pydantic models for API response schemas.

Responsibilities:
- Define standard response structures
- Ensure consistent API output
"""

from pydantic import BaseModel, Field


class RemoveBackgroundResponse(BaseModel):
    imageUrl: str = Field(..., description="Public path of the processed image")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable error message")
