class TranslatorError(Exception):
    """Raised when a remote translation call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
