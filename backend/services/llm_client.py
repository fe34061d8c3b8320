"""LLM Client for Groq API integration."""
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Sequence

from groq import AsyncGroq
from groq import APIError, APITimeoutError, AuthenticationError, RateLimitError

from config import GENERATION_MODEL, GROQ_API_KEY, MAX_CONTEXT_CHARS, MAX_OUTPUT_TOKENS, TEMPERATURE
from exceptions import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "...[truncated]"
CONTEXT_SEPARATOR = "\n\n---\n\n"
NOT_FOUND_ANSWER = "I cannot find the answer in the document."


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(GenerationError):
    """Generation failure with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for streaming text generation from the Groq API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GENERATION_MODEL,
        max_tokens: int = MAX_OUTPUT_TOKENS,
        temperature: float = TEMPERATURE
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model for generation
            max_tokens: Maximum tokens to generate per answer
            temperature: Sampling temperature

        Raises:
            ConfigurationError: If no API key is available
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ConfigurationError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = AsyncGroq(api_key=self.api_key)
        logger.info(f"LLMClient initialized with model: {model}")

    async def generate_stream(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[str]:
        """
        Stream a completion for the prompt, one text fragment at a time.

        Fragments are yielded in arrival order; empty deltas are skipped.

        Args:
            prompt: Complete prompt with context and question
            model: Model override
            max_tokens: Output token limit override

        Yields:
            Text fragments of the answer

        Raises:
            LLMClientError: Structured error, whether the request failed up front or mid-stream
        """
        model = model or self.model
        start_time = time.time()
        fragments = 0

        try:
            logger.debug(f"Streaming response with model: {model}")
            stream = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature,
                stream=True
            )

            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    fragments += 1
                    yield content

        except Exception as e:
            raise self._to_client_error(e, model, start_time, fragments) from e

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Streamed response: model={model}, fragments={fragments}, latency={latency_ms}ms")

    @staticmethod
    def _to_client_error(exc: Exception, model: str, start_time: float, fragments: int) -> LLMClientError:
        """Map an SDK or unexpected exception to a structured LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": model,
            "latency_ms": latency_ms,
            "fragments_received": fragments,
            "original_error": str(exc)
        }

        if isinstance(exc, RateLimitError):
            details["retry_after"] = 60
            error = LLMError(
                code="RATE_LIMIT_ERROR",
                message="Rate limit exceeded. Please try again in a few moments.",
                details=details
            )
        elif isinstance(exc, AuthenticationError):
            error = LLMError(
                code="AUTHENTICATION_ERROR",
                message="Authentication failed. Please check your API key.",
                details=details
            )
        elif isinstance(exc, APITimeoutError):
            error = LLMError(
                code="TIMEOUT_ERROR",
                message="Request timed out. Please try again.",
                details=details
            )
        elif isinstance(exc, APIError):
            error = LLMError(
                code="API_ERROR",
                message=f"Groq API error: {str(exc)}",
                details=details
            )
        else:
            details["error_type"] = type(exc).__name__
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(exc)}",
                details=details
            )

        logger.error(
            f"Generation failed: code={error.code}, model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=exc,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    @staticmethod
    def build_summary_prompt(
        question: str,
        full_text: str,
        max_chars: int = MAX_CONTEXT_CHARS
    ) -> str:
        """
        Build a context-stuffing prompt from the whole document.

        Args:
            question: User request
            full_text: All page texts of the document
            max_chars: Character budget for the document text

        Returns:
            Complete prompt string
        """
        if len(full_text) > max_chars:
            logger.warning(f"Document text truncated from {len(full_text)} to {max_chars} characters")
            full_text = full_text[:max_chars] + TRUNCATION_MARKER

        return f"""You are an expert document assistant.
The user wants a summary or overview of the following document.
Provide a comprehensive, detailed, and well-structured summary.
Explain the key points in depth.

Document Content:
{full_text}

User Request: {question}"""

    @staticmethod
    def build_rag_prompt(question: str, chunk_texts: Sequence[str]) -> str:
        """
        Build a prompt answering strictly from retrieved excerpts.

        Args:
            question: User question
            chunk_texts: Retrieved chunk texts, most relevant first

        Returns:
            Complete prompt string
        """
        context = CONTEXT_SEPARATOR.join(chunk_texts)

        return f"""You are a helpful assistant answering questions about a document.
Use only the following context snippets from the document to answer the question.

Instructions:
1. Provide a well-explained answer. Do not be too brief.
2. Explain the concepts thoroughly based on the text.
3. Do not use knowledge from outside the context.
4. If the answer is not in the context, say "{NOT_FOUND_ANSWER}"

Context:
{context}

Question:
{question}

Answer:"""
