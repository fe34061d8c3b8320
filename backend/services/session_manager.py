"""Session manager: in-memory registry of document chat sessions."""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional, Set

from config import STREAM_QUEUE_SIZE
from exceptions import EmbeddingError, SessionBusyError, SessionNotFoundError, StaleOperationError
from models.conversation import ASSISTANT, USER, Message, Session
from services.answer_synthesizer import AnswerSynthesizer, SynthesisRun
from services.document_processor import DocumentProcessor
from services.stream_channel import FragmentChannel

logger = logging.getLogger(__name__)

SESSION_NAME_LENGTH = 20
GREETING_TEMPLATE = "I've analyzed **{filename}**. What would you like to know?"
QUESTION_EMBEDDING_ERROR = "**Error:** I couldn't search the document for your question. Please try again."
UNEXPECTED_ERROR = "**Error:** Something went wrong while answering. Please try again."


class SessionManager:
    """
    Owns every session and all mutations of session state.

    Each session holds exactly one processed document and its transcript.
    Uploads and selections advance a selection epoch; an upload that finishes
    after the epoch moved on is discarded instead of registered.
    """

    def __init__(
        self,
        document_processor: DocumentProcessor,
        answer_synthesizer: AnswerSynthesizer,
        stream_queue_size: int = STREAM_QUEUE_SIZE
    ):
        self.document_processor = document_processor
        self.answer_synthesizer = answer_synthesizer
        self.stream_queue_size = stream_queue_size

        self._sessions: Dict[str, Session] = {}
        self._busy: Set[str] = set()
        self._epoch = 0
        self.active_session_id: Optional[str] = None
        logger.info("SessionManager initialized")

    async def create_session(
        self,
        data: bytes,
        filename: str,
        on_progress: Optional[Callable[[str], None]] = None
    ) -> Session:
        """
        Process an uploaded document into a new, selected session.

        Args:
            data: Raw PDF bytes
            filename: Uploaded file name
            on_progress: Optional status callback

        Returns:
            The registered session

        Raises:
            ExtractionError: If the document cannot be read; nothing is registered
                and the previous selection is restored (also on cancellation)
            StaleOperationError: If another upload or selection happened meanwhile
        """
        epoch = self._advance_epoch()
        previous_active = self.active_session_id
        self.active_session_id = None

        try:
            processed = await self.document_processor.process(data, filename, on_progress)
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Failed to process upload {filename}: {e!r}")
            if epoch == self._epoch and previous_active in self._sessions:
                self.active_session_id = previous_active
            raise

        if epoch != self._epoch:
            logger.warning(f"Discarding stale upload {filename}: selection changed while processing")
            raise StaleOperationError(f"Processing of {filename} was superseded")

        session = Session(
            session_id=self._generate_session_id(),
            name=self._session_name(filename),
            filename=filename,
            document=processed,
            messages=[Message(role=ASSISTANT, content=GREETING_TEMPLATE.format(filename=filename))],
            created_at=datetime.now()
        )
        self._sessions[session.session_id] = session
        self.active_session_id = session.session_id

        logger.info(f"Created session {session.session_id} for {filename}")
        return session

    def get_session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def list_sessions(self) -> List[Session]:
        """All sessions, newest first."""
        return sorted(self._sessions.values(), key=lambda s: s.created_at, reverse=True)

    def select_session(self, session_id: str) -> Session:
        """Make a session the active one."""
        session = self.get_session(session_id)
        self._advance_epoch()
        self.active_session_id = session_id
        logger.info(f"Selected session {session_id}")
        return session

    def new_chat(self) -> None:
        """Clear the active selection; pending uploads become stale."""
        self._advance_epoch()
        self.active_session_id = None

    def delete_session(self, session_id: str) -> None:
        """
        Remove a session. A turn still streaming for it will append nothing.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        self.get_session(session_id)
        del self._sessions[session_id]
        if self.active_session_id == session_id:
            self.new_chat()
        logger.info(f"Deleted session {session_id}")

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._busy

    def start_turn(self, session_id: str, question: str) -> "AnswerTurn":
        """
        Record the user's question and reserve the session for one answer.

        Raises:
            SessionNotFoundError: If the session does not exist
            ValueError: If the question is empty
            SessionBusyError: If an answer is already being generated for this session
        """
        session = self.get_session(session_id)
        question = (question or "").strip()
        if not question:
            raise ValueError("Question cannot be empty")
        if session_id in self._busy:
            raise SessionBusyError(f"Session {session_id} is already answering a question")

        self._busy.add(session_id)
        session.messages.append(Message(role=USER, content=question))
        logger.info(f"Processing question for session {session_id}: {question[:100]}...")
        return AnswerTurn(self, session, question)

    def _finish_turn(self, session: Session, answer: Optional[str]) -> None:
        self._busy.discard(session.session_id)
        if answer is None:
            return
        if self._sessions.get(session.session_id) is not session:
            logger.warning(f"Session {session.session_id} was removed during generation; answer discarded")
            return
        session.messages.append(Message(role=ASSISTANT, content=answer))

    def _advance_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    @staticmethod
    def _session_name(filename: str) -> str:
        if len(filename) > SESSION_NAME_LENGTH:
            return filename[:SESSION_NAME_LENGTH] + "..."
        return filename

    @staticmethod
    def _generate_session_id() -> str:
        return f"sess_{uuid.uuid4().hex[:12]}"


class AnswerTurn:
    """
    One question/answer exchange, consumed as an async stream of fragments.

    Whatever was streamed (including error fragments) is appended to the
    transcript when the stream ends, fails or is closed early.
    """

    def __init__(self, manager: SessionManager, session: Session, question: str):
        self._manager = manager
        self.session = session
        self.question = question
        self.run = SynthesisRun()
        self._fragments: List[str] = []
        self._started = False

    @property
    def answer(self) -> str:
        """Everything streamed so far."""
        return "".join(self._fragments)

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("AnswerTurn can only be consumed once")
        self._started = True
        return self._stream()

    async def close(self) -> None:
        """Release the session if the turn was never consumed."""
        if not self._started:
            self._started = True
            self._manager._finish_turn(self.session, None)

    async def _stream(self) -> AsyncIterator[str]:
        source = self._manager.answer_synthesizer.answer(self.question, self.session.document, self.run)
        fragments = FragmentChannel(source, maxsize=self._manager.stream_queue_size).stream()
        try:
            try:
                async for fragment in fragments:
                    self._fragments.append(fragment)
                    yield fragment
            except EmbeddingError as e:
                logger.error(f"Question embedding failed for session {self.session.session_id}: {e}")
                yield self._error_fragment(QUESTION_EMBEDDING_ERROR)
            except Exception as e:
                logger.error(
                    f"Unexpected error answering for session {self.session.session_id}: {e}",
                    exc_info=True
                )
                yield self._error_fragment(UNEXPECTED_ERROR)
        finally:
            self._manager._finish_turn(self.session, self.answer)
            await fragments.aclose()

    def _error_fragment(self, message: str) -> str:
        fragment = f"\n\n{message}" if self._fragments else message
        self._fragments.append(fragment)
        return fragment
