"""Answer synthesis: strategy selection, prompt construction and streamed generation."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, List, Optional, Sequence

from config import MAX_CONTEXT_CHARS
from exceptions import GenerationError
from models.chunk import ScoredChunk
from models.document import ProcessedDocument
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from services.strategy_selector import Strategy, StrategySelector

logger = logging.getLogger(__name__)

SUMMARY_SOURCE_FOOTER = "\n\n**Source:** Full Document Analysis"
STREAM_ERROR_TEMPLATE = "\n\n**Error:** The answer was interrupted: {reason}"


class SynthesisState(str, Enum):
    IDLE = "idle"
    BUILDING_PROMPT = "building_prompt"
    STREAMING = "streaming"
    APPENDIX = "appendix"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    SynthesisState.IDLE: {SynthesisState.BUILDING_PROMPT},
    SynthesisState.BUILDING_PROMPT: {SynthesisState.STREAMING, SynthesisState.FAILED},
    SynthesisState.STREAMING: {SynthesisState.APPENDIX, SynthesisState.FAILED},
    SynthesisState.APPENDIX: {SynthesisState.DONE},
    SynthesisState.DONE: set(),
    SynthesisState.FAILED: set(),
}


@dataclass
class SynthesisRun:
    """Observable state of a single answer generation."""
    state: SynthesisState = SynthesisState.IDLE
    strategy: Optional[Strategy] = None
    cited_pages: List[int] = field(default_factory=list)
    error: Optional[BaseException] = None

    def advance(self, state: SynthesisState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid synthesis transition {self.state.value} -> {state.value}")
        self.state = state

    def fail(self, error: BaseException) -> None:
        self.advance(SynthesisState.FAILED)
        self.error = error


def format_page_citation(pages: Sequence[int]) -> str:
    """Source footer for retrieved pages, e.g. "Page 2" or "Pages 1, 3"."""
    label = "Pages" if len(pages) > 1 else "Page"
    return f"\n\n**Sources:** {label} {', '.join(str(page) for page in pages)}"


class AnswerSynthesizer:
    """Build the prompt for a question and stream the model's answer."""

    def __init__(
        self,
        llm_client: LLMClient,
        retrieval_engine: RetrievalEngine,
        strategy_selector: Optional[StrategySelector] = None,
        max_context_chars: int = MAX_CONTEXT_CHARS
    ):
        self.llm_client = llm_client
        self.retrieval_engine = retrieval_engine
        self.strategy_selector = strategy_selector or StrategySelector()
        self.max_context_chars = max_context_chars

    async def answer(
        self,
        question: str,
        document: ProcessedDocument,
        run: Optional[SynthesisRun] = None
    ) -> AsyncIterator[str]:
        """
        Stream the answer to a question about one document.

        The model's fragments are forwarded verbatim and in order, followed by
        one source-attribution fragment. If generation fails mid-stream a single
        error fragment is yielded instead of the attribution and the stream ends
        normally.

        Args:
            question: User question
            document: The session's processed document
            run: Optional state holder, updated as the answer progresses

        Yields:
            Answer text fragments

        Raises:
            EmbeddingError: If the question could not be embedded (retrieval path)
        """
        run = run or SynthesisRun()
        run.advance(SynthesisState.BUILDING_PROMPT)

        try:
            run.strategy = self.strategy_selector.select_strategy(question)
            if run.strategy is Strategy.SUMMARY:
                prompt = LLMClient.build_summary_prompt(question, document.full_text, self.max_context_chars)
                footer = SUMMARY_SOURCE_FOOTER
            else:
                retrieved = await self.retrieval_engine.retrieve(question, document)
                prompt = LLMClient.build_rag_prompt(question, [scored.chunk.text for scored in retrieved])
                run.cited_pages = self._unique_pages(retrieved)
                footer = format_page_citation(run.cited_pages) if run.cited_pages else ""
        except Exception as e:
            run.fail(e)
            raise

        run.advance(SynthesisState.STREAMING)
        try:
            async for fragment in self.llm_client.generate_stream(prompt):
                yield fragment
        except GenerationError as e:
            run.fail(e)
            yield STREAM_ERROR_TEMPLATE.format(reason=str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected error while streaming answer: {e}", exc_info=True)
            run.fail(e)
            yield STREAM_ERROR_TEMPLATE.format(reason="unexpected error while generating the response.")
            return

        run.advance(SynthesisState.APPENDIX)
        if footer:
            yield footer
        run.advance(SynthesisState.DONE)

    @staticmethod
    def _unique_pages(retrieved: Sequence[ScoredChunk]) -> List[int]:
        return sorted({scored.chunk.page_number for scored in retrieved})
