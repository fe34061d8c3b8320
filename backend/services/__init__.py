"""Services for Ragify document Q&A."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .batch_embedder import BatchEmbedder
from .similarity_ranker import SimilarityRanker, cosine_similarity
from .retrieval_engine import RetrievalEngine
from .strategy_selector import Strategy, StrategySelector
from .llm_client import LLMClient, LLMError, LLMClientError
from .stream_channel import FragmentChannel
from .answer_synthesizer import AnswerSynthesizer, SynthesisRun, SynthesisState
from .document_processor import DocumentProcessor
from .session_manager import SessionManager, AnswerTurn

__all__ = [
    'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'BatchEmbedder',
    'SimilarityRanker', 'cosine_similarity', 'RetrievalEngine', 'Strategy',
    'StrategySelector', 'LLMClient', 'LLMError', 'LLMClientError', 'FragmentChannel',
    'AnswerSynthesizer', 'SynthesisRun', 'SynthesisState', 'DocumentProcessor',
    'SessionManager', 'AnswerTurn',
]
