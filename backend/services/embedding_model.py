"""Embedding model integration with Hugging Face Inference API."""
import asyncio
import logging
import time
from typing import List, Optional

import httpx

from config import EMBEDDING_API_URL, EMBEDDING_MODEL, HUGGINGFACE_API_KEY
from exceptions import ConfigurationError, EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Async wrapper for the Hugging Face feature-extraction endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        api_url: str = EMBEDDING_API_URL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            api_url: Feature-extraction endpoint for the model
            max_retries: Maximum number of attempts for 503 errors and network failures
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If no API key is available
        """
        if not api_key:
            raise ConfigurationError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            EmbeddingError: If text is empty or the API request fails after all retries
        """
        clean_text = text.replace("\n", " ") if text else ""
        if not clean_text.strip():
            raise EmbeddingError("Text cannot be empty")

        embeddings = await self._embed_with_retry([clean_text])
        return embeddings[0]

    async def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call the HF API with exponential backoff.

        HF free tier models "sleep" and take 15-20s to load on first query,
        answering 503 until they are ready.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True
            }
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )

                elapsed = time.time() - start_time

                # Model still loading
                if response.status_code == 503:
                    last_error = f"Model unavailable (503) on attempt {attempt + 1}"
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)
                        delay = min(delay * 2, 60.0)
                    continue

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingError("Rate limit exceeded. Please try again later.")

                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingError("Invalid API key")

                if response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingError(error_msg)

                try:
                    data = response.json()
                except ValueError as e:
                    raise EmbeddingError(f"Invalid JSON from embedding API: {e}") from e

                embeddings = self._parse_embeddings(data, len(texts))
                logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
                return embeddings

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, 60.0)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingError(error_msg)

    @staticmethod
    def _parse_embeddings(data, expected: int) -> List[List[float]]:
        """Validate the response body: one flat numeric vector per input text."""
        if not isinstance(data, list) or len(data) != expected:
            raise EmbeddingError(f"Expected {expected} embeddings, got {type(data).__name__}")

        embeddings = []
        for vector in data:
            if not vector or not all(isinstance(v, (int, float)) for v in vector):
                raise EmbeddingError("No embedding returned")
            embeddings.append([float(v) for v in vector])
        return embeddings

