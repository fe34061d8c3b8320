"""Shared test fixtures and fakes for the external capabilities."""
import asyncio
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import fitz  # PyMuPDF
import pytest

from exceptions import EmbeddingError


class FakeEmbeddingModel:
    """Stands in for the HF embedding API; records call ordering and concurrency."""

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        fail_when: Optional[Callable[[str], bool]] = None,
        default: Optional[List[float]] = None
    ):
        self.vectors = vectors or {}
        self.fail_when = fail_when or (lambda text: False)
        self.default = default or [1.0, 0.5, 0.25]
        self.calls: List[str] = []
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed_text(self, text: str) -> List[float]:
        self.calls.append(text)
        self.events.append(("start", text))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.fail_when(text):
                raise EmbeddingError(f"embedding failed for {text[:20]!r}")
            return list(self.vectors.get(text, self.default))
        finally:
            self.in_flight -= 1
            self.events.append(("end", text))


class FakeLLMClient:
    """Stands in for the Groq client: streams canned fragments, optionally failing."""

    def __init__(self, fragments: Sequence[str] = ("Hello", " world"), error: Optional[Exception] = None):
        self.fragments = list(fragments)
        self.error = error
        self.prompts: List[str] = []

    async def generate_stream(self, prompt: str):
        self.prompts.append(prompt)
        for fragment in self.fragments:
            await asyncio.sleep(0)
            yield fragment
        if self.error is not None:
            raise self.error


def make_pdf(page_texts: Sequence[str]) -> bytes:
    """Build an in-memory PDF with one text line per page."""
    pdf = fitz.open()
    for text in page_texts:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


@pytest.fixture
def embedding_model_factory():
    return FakeEmbeddingModel


@pytest.fixture
def llm_factory():
    return FakeLLMClient


@pytest.fixture
def pdf_factory():
    return make_pdf
