"""Chunk data models."""
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Chunk:
    """Represents a window of page text for retrieval."""
    chunk_id: str  # Format: "{page_number}-{start_offset}"
    text: str
    page_number: int
    start_offset: int = 0
    embedding: Optional[List[float]] = None

    @property
    def end_offset(self) -> int:
        """Offset one past the last character of this chunk within its page."""
        return self.start_offset + len(self.text)

    def attach_embedding(self, embedding: List[float]) -> None:
        """Attach the embedding vector; a chunk is embedded at most once."""
        if self.embedding is not None:
            raise ValueError(f"Chunk {self.chunk_id} already has an embedding")
        self.embedding = list(embedding)


@dataclass
class ScoredChunk:
    """Chunk with relevance score from retrieval."""
    chunk: Chunk
    relevance_score: float  # cosine similarity, -1.0 to 1.0
