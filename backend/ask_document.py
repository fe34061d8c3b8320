"""
Command-line document Q&A for Ragify.

This script:
1. Loads a PDF and extracts its pages
2. Chunks the text into overlapping windows
3. Generates embeddings using the HuggingFace API
4. Answers questions, streaming each answer to the terminal

Usage:
    python ask_document.py report.pdf -q "Summarize this document"
    python ask_document.py report.pdf          # interactive
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import AsyncIterator, List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_LEVEL, require_api_keys
from exceptions import ConfigurationError, ExtractionError
from logger import setup_logging
from services.session_manager import SessionManager

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit", ":q"}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ask questions about a PDF document"
    )
    parser.add_argument(
        "pdf",
        type=Path,
        help="Path to the PDF to analyze"
    )
    parser.add_argument(
        "-q", "--question",
        action="append",
        default=[],
        help="Question to ask (repeatable); omit for interactive mode"
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help=f"Logging level (default: {LOG_LEVEL})"
    )
    return parser.parse_args(argv)


async def _read_questions() -> AsyncIterator[str]:
    """Prompt until EOF or an exit command; input() runs in a worker thread."""
    while True:
        try:
            question = (await asyncio.to_thread(input, "\nQuestion> ")).strip()
        except EOFError:
            return
        if question.lower() in EXIT_COMMANDS:
            return
        if question:
            yield question


async def _given(questions: List[str]) -> AsyncIterator[str]:
    for question in questions:
        yield question


async def run(pdf_path: Path, questions: List[str], manager: SessionManager) -> int:
    """Process the document, then answer each question. Returns an exit code."""
    try:
        data = pdf_path.read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {pdf_path}: {e}")
        return 1

    try:
        session = await manager.create_session(data, pdf_path.name, on_progress=logger.info)
    except ExtractionError as e:
        logger.error(f"Unable to process the file: {e}")
        return 1

    print(session.messages[0].content)

    async for question in (_given(questions) if questions else _read_questions()):
        print(f"\n> {question}\n")
        turn = manager.start_turn(session.session_id, question)
        async for fragment in turn:
            print(fragment, end="", flush=True)
        print()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI process."""
    args = parse_args(argv)
    setup_logging(args.log_level, log_format="text")

    try:
        require_api_keys()
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    # Imported late so configuration errors are reported before wiring
    from main import build_session_manager

    try:
        return asyncio.run(run(args.pdf, args.question, build_session_manager()))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
