"""API request and response models."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Question submitted against a session's document."""
    question: str = Field(..., description="Natural-language question about the document")


class MessageOut(BaseModel):
    role: str
    content: str
    timestamp: datetime


class SessionSummary(BaseModel):
    """Session entry for the history list."""
    session_id: str
    name: str
    filename: str
    created_at: datetime
    total_pages: int
    chunk_count: int
    message_count: int
    active: bool = False


class SessionDetail(SessionSummary):
    messages: List[MessageOut]


class UploadResponse(BaseModel):
    """Result of processing an uploaded document."""
    session: SessionDetail
    progress: List[str]


class QueryResponse(BaseModel):
    """Non-streaming answer with the strategy that produced it."""
    answer: str
    strategy: Optional[str] = None
    session_id: str
