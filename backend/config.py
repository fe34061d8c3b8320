"""Configuration management for Ragify document Q&A."""
import os
from typing import List, Optional

from dotenv import load_dotenv

from exceptions import ConfigurationError

# Load environment variables
load_dotenv()


def _first_env(*names: str) -> Optional[str]:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


# API Keys (precedence: first listed variable wins)
GROQ_API_KEY = _first_env("GROQ_API_KEY", "API_KEY")
HUGGINGFACE_API_KEY = _first_env("HUGGINGFACE_API_KEY", "HF_TOKEN", "API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_API_URL = os.getenv(
    "EMBEDDING_API_URL",
    f"https://router.huggingface.co/hf-inference/models/{EMBEDDING_MODEL}/pipeline/feature-extraction"
)
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.3-70b-versatile")
MAX_OUTPUT_TOKENS = int(os.getenv("MAX_OUTPUT_TOKENS", "2048"))
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "4000"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "500"))  # characters

# Embedding Configuration
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "5"))

# Retrieval / Synthesis Configuration
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "8"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "3000000"))
STREAM_QUEUE_SIZE = int(os.getenv("STREAM_QUEUE_SIZE", "64"))

# Upload Configuration
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))


def require_api_keys() -> None:
    """
    Fail fast when an API key needed by the pipeline is not configured.

    Raises:
        ConfigurationError: If GROQ_API_KEY or HUGGINGFACE_API_KEY could not be resolved
    """
    missing: List[str] = []
    if not GROQ_API_KEY:
        missing.append("GROQ_API_KEY (or API_KEY)")
    if not HUGGINGFACE_API_KEY:
        missing.append("HUGGINGFACE_API_KEY (or HF_TOKEN, API_KEY)")
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
