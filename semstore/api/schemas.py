"""
Request and response models for the semantic store API.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List


class IngestRequest(BaseModel):
    id: str
    text: str

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v

    @field_validator('text')
    @classmethod
    def text_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('text cannot be empty')
        return v


class IngestResponse(BaseModel):
    success: bool
    id: str
    dimension: int


class BatchIngestRequest(BaseModel):
    items: List[IngestRequest]

    @field_validator('items')
    @classmethod
    def items_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('items cannot be empty')
        return v


class BatchIngestResponse(BaseModel):
    success: bool
    ids: List[str]
    count: int


class QueryRequest(BaseModel):
    text: str
    k: int = Field(default=5, ge=1, le=100)


class NeighborResult(BaseModel):
    id: str
    distance: float


class QueryResponse(BaseModel):
    query: str
    k: int
    results: List[NeighborResult]


class RecordResponse(BaseModel):
    id: str
    dimension: int
    vector: List[float]


class HealthResponse(BaseModel):
    status: str
    version: str
    size: int
    dimension: Optional[int] = None
    provider: str
    index_strategy: Optional[str] = None
    stale: bool
    persistent: bool
