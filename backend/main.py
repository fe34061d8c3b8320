"""Main entry point for the Ragify document Q&A API."""
import json
import logging
from typing import List

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from config import (
    CHUNK_OVERLAP, CHUNK_SIZE, CORS_ORIGINS, EMBED_BATCH_SIZE, LOG_FORMAT, LOG_LEVEL,
    MAX_CONTEXT_CHARS, MAX_UPLOAD_BYTES, PORT, RETRIEVAL_TOP_K, require_api_keys
)
from exceptions import ExtractionError, SessionBusyError, SessionNotFoundError, StaleOperationError
from logger import setup_logging
from models.api import MessageOut, QueryRequest, QueryResponse, SessionDetail, SessionSummary, UploadResponse
from models.conversation import Session
from services.answer_synthesizer import AnswerSynthesizer
from services.batch_embedder import BatchEmbedder
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.document_processor import DocumentProcessor
from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from services.session_manager import AnswerTurn, SessionManager
from services.similarity_ranker import SimilarityRanker

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Ragify",
    description="Ask questions about an uploaded PDF, answered by a language model",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialized on startup
session_manager: SessionManager = None


def build_session_manager() -> SessionManager:
    """Wire the document pipeline and answer synthesizer from configuration."""
    embedding_model = EmbeddingModel()
    document_processor = DocumentProcessor(
        document_loader=DocumentLoader(),
        chunking_engine=ChunkingEngine(chunk_size=CHUNK_SIZE, chunk_overlap=CHUNK_OVERLAP),
        batch_embedder=BatchEmbedder(embedding_model, batch_size=EMBED_BATCH_SIZE)
    )
    answer_synthesizer = AnswerSynthesizer(
        llm_client=LLMClient(),
        retrieval_engine=RetrievalEngine(embedding_model, SimilarityRanker(top_k=RETRIEVAL_TOP_K)),
        max_context_chars=MAX_CONTEXT_CHARS
    )
    return SessionManager(document_processor, answer_synthesizer)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global session_manager

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing Ragify services...")

    try:
        require_api_keys()
        session_manager = build_session_manager()
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Ragify API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "ragify",
        "version": "1.0.0",
        "sessions": len(session_manager.list_sessions()) if session_manager else 0
    }


def _summary(session: Session) -> dict:
    return dict(
        session_id=session.session_id,
        name=session.name,
        filename=session.filename,
        created_at=session.created_at,
        total_pages=session.document.total_pages,
        chunk_count=session.document.chunk_count,
        message_count=len(session.messages),
        active=session.session_id == session_manager.active_session_id
    )


def _detail(session: Session) -> SessionDetail:
    return SessionDetail(
        **_summary(session),
        messages=[
            MessageOut(role=m.role, content=m.content, timestamp=m.timestamp)
            for m in session.messages
        ]
    )


def _get_session(session_id: str) -> Session:
    try:
        return session_manager.get_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _start_turn(session_id: str, request: QueryRequest) -> AnswerTurn:
    try:
        return session_manager.start_turn(session_id, request.question)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError:
        raise HTTPException(status_code=400, detail="Question field is required and cannot be empty")


async def _read_upload_bytes(upload: UploadFile, max_bytes: int) -> bytes:
    """Read upload bytes with a hard size limit."""
    buffer = bytearray()
    while True:
        chunk = await upload.read(65536)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds maximum size of {max_bytes} bytes"
            )
    return bytes(buffer)


@app.post("/sessions", response_model=UploadResponse)
async def upload_document(file: UploadFile = File(...)) -> UploadResponse:
    """
    Upload a PDF and start a new session for it.

    The document is extracted, chunked and embedded before the response is
    returned; the progress messages emitted along the way are included.
    """
    filename = file.filename or "document.pdf"
    data = await _read_upload_bytes(file, MAX_UPLOAD_BYTES)
    progress: List[str] = []

    def on_progress(status: str) -> None:
        progress.append(status)
        logger.debug(f"{filename}: {status}")

    try:
        session = await session_manager.create_session(data, filename, on_progress)
    except ExtractionError as e:
        raise HTTPException(status_code=422, detail=f"Unable to process the file: {e}")
    except StaleOperationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error processing upload {filename}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    return UploadResponse(session=_detail(session), progress=progress)


@app.get("/sessions", response_model=List[SessionSummary])
async def list_sessions() -> List[SessionSummary]:
    """Session history, newest first."""
    return [SessionSummary(**_summary(s)) for s in session_manager.list_sessions()]


@app.post("/sessions/new")
async def new_chat():
    """Clear the active session (the "New Chat" action)."""
    session_manager.new_chat()
    return {"active_session_id": None}


@app.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(session_id: str) -> SessionDetail:
    return _detail(_get_session(session_id))


@app.post("/sessions/{session_id}/select", response_model=SessionDetail)
async def select_session(session_id: str) -> SessionDetail:
    try:
        session = session_manager.select_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _detail(session)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    try:
        session_manager.delete_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": session_id}


@app.post("/sessions/{session_id}/query", response_model=QueryResponse)
async def query_endpoint(session_id: str, request: QueryRequest) -> QueryResponse:
    """
    Answer a question about the session's document in one response.

    Errors during answering are part of the answer text, as in the stream.
    """
    turn = _start_turn(session_id, request)
    async for _ in turn:
        pass

    strategy = turn.run.strategy.value if turn.run.strategy else None
    logger.info(f"Query answered for session {session_id} (strategy: {strategy})")
    return QueryResponse(answer=turn.answer, strategy=strategy, session_id=session_id)


@app.post("/sessions/{session_id}/query/stream")
async def query_stream_endpoint(session_id: str, request: QueryRequest):
    """
    Streaming query endpoint.

    Returns:
        StreamingResponse with SSE format:
        - data: {"type": "token", "content": "..."} for each fragment
        - data: {"type": "done", ...} once the answer is complete
    """
    turn = _start_turn(session_id, request)

    async def generate_stream():
        """Generator function for streaming response."""
        async for fragment in turn:
            yield f"data: {json.dumps({'type': 'token', 'content': fragment})}\n\n".encode('utf-8')

        final = {
            "type": "done",
            "session_id": session_id,
            "strategy": turn.run.strategy.value if turn.run.strategy else None,
            "state": turn.run.state.value,
            "cited_pages": turn.run.cited_pages
        }
        yield f"data: {json.dumps(final)}\n\n".encode('utf-8')

    return StreamingResponse(
        generate_stream(),
        background=BackgroundTask(turn.close),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable buffering in nginx
        }
    )


if __name__ == "__main__":
    import uvicorn
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info(f"Starting Ragify API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
