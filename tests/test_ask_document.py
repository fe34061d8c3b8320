"""Tests for the command-line interface."""
import threading
from unittest.mock import AsyncMock, Mock, patch

import pytest

import ask_document
from exceptions import ConfigurationError, ExtractionError
from models.document import ProcessedDocument
from services.answer_synthesizer import AnswerSynthesizer
from services.retrieval_engine import RetrievalEngine
from services.session_manager import SessionManager
from services.similarity_ranker import SimilarityRanker


@pytest.fixture
def manager(llm_factory, embedding_model_factory):
    processor = Mock()
    processor.process = AsyncMock(return_value=ProcessedDocument(
        filename="manual.pdf", chunks=(), full_text="The manual.", total_pages=1
    ))
    synthesizer = AnswerSynthesizer(
        llm_factory(fragments=["Short ", "summary."]),
        RetrievalEngine(embedding_model_factory(), SimilarityRanker())
    )
    return SessionManager(processor, synthesizer)


class TestAskDocument:
    """Test suite for ask_document."""

    def test_parse_args(self):
        args = ask_document.parse_args(["manual.pdf", "-q", "First?", "--question", "Second?"])

        assert str(args.pdf) == "manual.pdf"
        assert args.question == ["First?", "Second?"]

    @pytest.mark.asyncio
    async def test_run_answers_each_question(self, manager, tmp_path, capsys):
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4")

        code = await ask_document.run(pdf, ["Summarize this", "Give me an overview"], manager)

        assert code == 0
        out = capsys.readouterr().out
        assert "I've analyzed **manual.pdf**" in out
        assert out.count("Short summary.") == 2
        assert "**Source:** Full Document Analysis" in out

    @pytest.mark.asyncio
    async def test_interactive_questions_read_off_the_event_loop(self, manager, tmp_path, capsys, monkeypatch):
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4")
        answers = iter(["Summarize this", "", "exit", "never asked"])
        prompt_threads = []

        def fake_input(prompt=""):
            prompt_threads.append(threading.current_thread())
            return next(answers)

        monkeypatch.setattr("builtins.input", fake_input)

        code = await ask_document.run(pdf, [], manager)

        assert code == 0
        assert len(prompt_threads) == 3
        assert all(t is not threading.main_thread() for t in prompt_threads)
        out = capsys.readouterr().out
        assert out.count("Short summary.") == 1

    @pytest.mark.asyncio
    async def test_interactive_mode_stops_at_eof(self, manager, tmp_path, monkeypatch):
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4")

        def eof_input(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", eof_input)

        assert await ask_document.run(pdf, [], manager) == 0

    @pytest.mark.asyncio
    async def test_run_missing_file(self, manager, tmp_path):
        assert await ask_document.run(tmp_path / "missing.pdf", ["Hi?"], manager) == 1

    @pytest.mark.asyncio
    async def test_run_unreadable_pdf(self, manager, tmp_path):
        pdf = tmp_path / "broken.pdf"
        pdf.write_bytes(b"junk")
        manager.document_processor.process.side_effect = ExtractionError("corrupt")

        assert await ask_document.run(pdf, ["Hi?"], manager) == 1

    def test_main_without_api_keys(self):
        with patch("ask_document.require_api_keys", side_effect=ConfigurationError("missing")):
            assert ask_document.main(["manual.pdf"]) == 2
