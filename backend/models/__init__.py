"""Data models for Ragify document Q&A."""
from .document import Document, Page, ProcessedDocument
from .chunk import Chunk, ScoredChunk
from .conversation import Message, Session
from .api import QueryRequest, QueryResponse, MessageOut, SessionSummary, SessionDetail, UploadResponse

__all__ = [
    "Document",
    "Page",
    "ProcessedDocument",
    "Chunk",
    "ScoredChunk",
    "Message",
    "Session",
    "QueryRequest",
    "QueryResponse",
    "MessageOut",
    "SessionSummary",
    "SessionDetail",
    "UploadResponse",
]
