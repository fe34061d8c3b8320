"""Error taxonomy for Ragify document Q&A."""


class RagifyError(Exception):
    """Base class for all Ragify errors."""


class ConfigurationError(RagifyError, ValueError):
    """Required configuration is missing or invalid (fatal at startup)."""


class ExtractionError(RagifyError):
    """The uploaded document could not be read."""


class ChunkConfigError(RagifyError, ValueError):
    """Chunk size and overlap do not allow the window to advance."""


class EmbeddingError(RagifyError):
    """The embedding capability failed for a single text."""


class GenerationError(RagifyError):
    """The generation capability failed before or during streaming."""


class DimensionMismatchError(RagifyError):
    """Two embedding vectors of different width were compared."""


class SessionNotFoundError(RagifyError):
    """No session is registered under the given ID."""


class SessionBusyError(RagifyError):
    """An answer is already being generated for this session."""


class StaleOperationError(RagifyError):
    """An operation finished after the user moved on; its result was discarded."""
