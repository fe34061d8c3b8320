"""Chunking engine with fixed-size overlapping character windows."""
import logging
from typing import List, Sequence

from config import CHUNK_OVERLAP, CHUNK_SIZE
from exceptions import ChunkConfigError
from models.chunk import Chunk
from models.document import Document, Page

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Segments page text into overlapping windows tagged with their page."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Window size in characters
            chunk_overlap: Characters shared by consecutive windows

        Raises:
            ChunkConfigError: Unless 0 < chunk_overlap < chunk_size
        """
        if chunk_size <= 0:
            raise ChunkConfigError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 < chunk_overlap < chunk_size:
            raise ChunkConfigError(
                f"chunk_overlap must be between 0 and chunk_size ({chunk_size}), "
                f"got {chunk_overlap}"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @property
    def step(self) -> int:
        """Distance between the start offsets of consecutive windows."""
        return self.chunk_size - self.chunk_overlap

    def chunk_document(self, document: Document) -> List[Chunk]:
        """Chunk every page of a loaded document."""
        chunks = self.chunk_pages(document.pages)
        logger.info(
            f"Created {len(chunks)} chunks from {document.filename} "
            f"({document.total_pages} pages)"
        )
        return chunks

    def chunk_pages(self, pages: Sequence[Page]) -> List[Chunk]:
        """
        Chunk pages independently, preserving page order.

        Args:
            pages: Pages in ascending page order

        Returns:
            Chunks ordered by page, then by start offset
        """
        all_chunks: List[Chunk] = []
        for page in pages:
            all_chunks.extend(self._chunk_text(page.text, page.page_number))
        return all_chunks

    def _chunk_text(self, text: str, page_number: int) -> List[Chunk]:
        """
        Slide the window over one page's text.

        The window that reaches the end of the text is the last one emitted,
        so trailing content is never dropped and no empty window follows.
        """
        chunks: List[Chunk] = []
        length = len(text)
        start = 0

        while start < length:
            end = min(start + self.chunk_size, length)
            chunks.append(Chunk(
                chunk_id=f"{page_number}-{start}",
                text=text[start:end],
                page_number=page_number,
                start_offset=start
            ))
            if end >= length:
                break
            start += self.step

        return chunks
