"""Document processing pipeline: extract, chunk and embed an upload."""
import asyncio
import logging
from typing import Callable, Optional

from models.document import ProcessedDocument
from services.batch_embedder import BatchEmbedder
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader

logger = logging.getLogger(__name__)


class DocumentProcessor:
    """Turn raw PDF bytes into a ProcessedDocument."""

    def __init__(
        self,
        document_loader: DocumentLoader,
        chunking_engine: ChunkingEngine,
        batch_embedder: BatchEmbedder
    ):
        self.document_loader = document_loader
        self.chunking_engine = chunking_engine
        self.batch_embedder = batch_embedder

    async def process(
        self,
        data: bytes,
        filename: str,
        on_progress: Optional[Callable[[str], None]] = None
    ) -> ProcessedDocument:
        """
        Extract -> chunk -> embed.

        Args:
            data: Raw PDF bytes
            filename: Name of the uploaded file
            on_progress: Optional status callback

        Returns:
            ProcessedDocument holding only embedded chunks

        Raises:
            ExtractionError: If the PDF cannot be read; nothing is produced
        """
        notify = on_progress or (lambda status: None)

        # PyMuPDF is blocking; parse pages off the event loop
        document = await asyncio.to_thread(self.document_loader.load_pdf_bytes, data, filename, notify)

        notify("Splitting text into chunks...")
        chunks = self.chunking_engine.chunk_document(document)

        embedded = await self.batch_embedder.embed_all(chunks, notify)

        processed = ProcessedDocument(
            filename=filename,
            chunks=tuple(embedded),
            full_text=document.full_text,
            total_pages=document.total_pages
        )
        logger.info(
            f"Processed {filename}: {document.total_pages} pages, "
            f"{processed.chunk_count}/{len(chunks)} chunks embedded"
        )
        return processed
