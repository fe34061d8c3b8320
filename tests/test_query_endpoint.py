"""Integration tests for the session and query endpoints."""
import json

import pytest
from fastapi.testclient import TestClient

from services.answer_synthesizer import AnswerSynthesizer
from services.batch_embedder import BatchEmbedder
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.document_processor import DocumentProcessor
from services.retrieval_engine import RetrievalEngine
from services.session_manager import GREETING_TEMPLATE, SessionManager
from services.similarity_ranker import SimilarityRanker


@pytest.fixture
def llm(llm_factory):
    return llm_factory(fragments=["The warranty ", "lasts two years."])


@pytest.fixture
def client(monkeypatch, llm, embedding_model_factory):
    """Test client whose session manager runs on fake model capabilities."""
    import main

    embedding_model = embedding_model_factory(default=[1.0, 0.0])
    manager = SessionManager(
        DocumentProcessor(DocumentLoader(), ChunkingEngine(), BatchEmbedder(embedding_model)),
        AnswerSynthesizer(llm, RetrievalEngine(embedding_model, SimilarityRanker()))
    )
    monkeypatch.setattr(main, "session_manager", manager)

    # Startup is not run: the client is not used as a context manager
    yield TestClient(main.app)


@pytest.fixture
def session_id(client, pdf_factory):
    response = client.post(
        "/sessions",
        files={"file": ("warranty.pdf", pdf_factory(["Warranty terms", "Support hours"]), "application/pdf")}
    )
    assert response.status_code == 200
    return response.json()["session"]["session_id"]


def _events(body: str):
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


class TestSessionEndpoints:
    """Test suite for session management endpoints."""

    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "ok"
        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["sessions"] == 0

    def test_upload_creates_active_session(self, client, pdf_factory):
        response = client.post(
            "/sessions",
            files={"file": ("warranty.pdf", pdf_factory(["Warranty terms", "Support hours"]), "application/pdf")}
        )

        assert response.status_code == 200
        data = response.json()
        session = data["session"]
        assert session["filename"] == "warranty.pdf"
        assert session["total_pages"] == 2
        assert session["chunk_count"] == 2
        assert session["active"] is True
        assert session["messages"][0]["role"] == "assistant"
        assert session["messages"][0]["content"] == GREETING_TEMPLATE.format(filename="warranty.pdf")
        assert data["progress"][0] == "Loading PDF..."
        assert "Splitting text into chunks..." in data["progress"]

    def test_upload_unreadable_file(self, client):
        response = client.post("/sessions", files={"file": ("broken.pdf", b"not a pdf", "application/pdf")})

        assert response.status_code == 422
        assert "Unable to process the file" in response.json()["detail"]
        assert client.get("/sessions").json() == []

    def test_upload_too_large(self, client, monkeypatch, pdf_factory):
        import main
        monkeypatch.setattr(main, "MAX_UPLOAD_BYTES", 16)

        response = client.post("/sessions", files={"file": ("big.pdf", pdf_factory(["x"]), "application/pdf")})

        assert response.status_code == 413

    def test_list_get_select_and_delete(self, client, session_id):
        listed = client.get("/sessions").json()
        assert [s["session_id"] for s in listed] == [session_id]

        assert client.post("/sessions/new").json() == {"active_session_id": None}
        assert client.get(f"/sessions/{session_id}").json()["active"] is False

        selected = client.post(f"/sessions/{session_id}/select")
        assert selected.status_code == 200
        assert selected.json()["active"] is True

        assert client.delete(f"/sessions/{session_id}").status_code == 200
        assert client.get(f"/sessions/{session_id}").status_code == 404
        assert client.delete(f"/sessions/{session_id}").status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/sessions/sess_missing").status_code == 404
        assert client.post("/sessions/sess_missing/select").status_code == 404
        response = client.post("/sessions/sess_missing/query", json={"question": "Hi?"})
        assert response.status_code == 404


class TestQueryEndpoints:
    """Test suite for the question endpoints."""

    def test_query_returns_answer_with_sources(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query", json={"question": "How long is the warranty?"})

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "The warranty lasts two years.\n\n**Sources:** Pages 1, 2"
        assert data["strategy"] == "retrieval"
        assert data["session_id"] == session_id

        messages = client.get(f"/sessions/{session_id}").json()["messages"]
        assert [m["role"] for m in messages] == ["assistant", "user", "assistant"]
        assert messages[-1]["content"] == data["answer"]

    def test_summary_question(self, client, session_id, llm):
        response = client.post(f"/sessions/{session_id}/query", json={"question": "Summarize this"})

        data = response.json()
        assert data["strategy"] == "summary"
        assert data["answer"].endswith("**Source:** Full Document Analysis")
        assert "Warranty terms" in llm.prompts[-1]

    def test_empty_question(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query", json={"question": "   "})

        assert response.status_code == 400
        assert "cannot be empty" in response.json()["detail"]

    def test_missing_question_field(self, client, session_id):
        assert client.post(f"/sessions/{session_id}/query", json={}).status_code == 422

    def test_busy_session_rejects_second_question(self, client, session_id):
        import main
        main.session_manager.start_turn(session_id, "First question?")

        response = client.post(f"/sessions/{session_id}/query", json={"question": "Second question?"})

        assert response.status_code == 409

    def test_stream_emits_tokens_then_done(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query/stream", json={"question": "How long is the warranty?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        events = _events(response.text)
        tokens = [e["content"] for e in events if e["type"] == "token"]
        assert tokens == ["The warranty ", "lasts two years.", "\n\n**Sources:** Pages 1, 2"]

        done = events[-1]
        assert done["type"] == "done"
        assert done["state"] == "done"
        assert done["strategy"] == "retrieval"
        assert done["cited_pages"] == [1, 2]

    def test_stream_generation_failure_is_in_band(self, client, session_id, llm):
        from services.llm_client import LLMClientError, LLMError
        llm.fragments = ["Partial answer "]
        llm.error = LLMClientError(LLMError(code="API_ERROR", message="Groq API error: overloaded", details={}))

        response = client.post(f"/sessions/{session_id}/query/stream", json={"question": "What is covered?"})

        assert response.status_code == 200
        events = _events(response.text)
        tokens = [e["content"] for e in events if e["type"] == "token"]
        assert tokens[0] == "Partial answer "
        assert "**Error:**" in tokens[1]
        assert events[-1]["state"] == "failed"

        import main
        assert not main.session_manager.is_busy(session_id)
        messages = client.get(f"/sessions/{session_id}").json()["messages"]
        assert messages[-1]["content"].startswith("Partial answer ")
