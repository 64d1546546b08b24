"""Domain exceptions for the compute metrics registry"""
from typing import Optional


class EncodingError(Exception):
    """Raised when the metrics snapshot cannot be rendered as exposition text.

    Not retried internally; a later scrape is independent and may succeed.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause
