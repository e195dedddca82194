class EmbeddingUnavailableError(Exception):
    """Raised when no sentence-embedding model can be loaded or run."""
