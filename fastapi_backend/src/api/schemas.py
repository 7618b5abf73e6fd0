from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    id: int = Field(..., description="Identifier assigned by the database")
    name: str = Field(..., max_length=100, description="Display name")
    created_at: datetime = Field(..., description="Insert time assigned by the database")


class HealthStatus(BaseModel):
    status: str = Field("healthy", description="Fixed liveness marker")


class DatabaseStatus(BaseModel):
    message: str = Field(..., description="Human readable message")
    timestamp: datetime = Field(..., description="Current time reported by the database")


class DatabaseFailure(BaseModel):
    message: str = Field(..., description="Human readable message")
    error: str = Field(..., description="Stable description of the failure")


class APIError(BaseModel):
    error: str = Field(..., description="Stable description of the failure")
