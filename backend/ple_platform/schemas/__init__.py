"""
PLE Platform - Pydantic Schemas
===============================
Request/Response schemas for the API layer.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    database: str
