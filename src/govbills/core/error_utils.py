"""Error categorization and metadata extraction utilities."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from govbills.core.exceptions import (
    InvariantViolationError,
    ProcessedException,
    RateLimitException,
    TransientError,
)


class ErrorCategories:
    """Standard error categories across the pipeline."""

    TRANSIENT = "transient"
    FATAL = "fatal"
    INVARIANT = "invariant"
    UNKNOWN = "unknown_error"


class ErrorCategorizer:
    """Categorize and extract metadata from errors in a consistent way."""

    # Message fragments that indicate a transient fault when the type alone doesn't tell us
    TRANSIENT_PATTERNS = [
        "timeout",
        "timed out",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "502",
        "503",
        "504",
    ]

    @classmethod
    def categorize_error(cls, error: BaseException) -> str:
        """Categorize an error based on its type and message.

        Args:
            error: The exception to categorize

        Returns:
            Error category string
        """
        if isinstance(error, InvariantViolationError):
            return ErrorCategories.INVARIANT
        if isinstance(error, ProcessedException):
            return ErrorCategories.FATAL
        if isinstance(
            error, (TransientError, RateLimitException, requests.exceptions.RequestException)
        ):
            return ErrorCategories.TRANSIENT

        error_str = str(error).lower()
        if any(pattern in error_str for pattern in cls.TRANSIENT_PATTERNS):
            return ErrorCategories.TRANSIENT

        return ErrorCategories.UNKNOWN

    @classmethod
    def is_retryable(cls, error: BaseException) -> bool:
        """True if retrying the same step could succeed."""
        return cls.categorize_error(error) == ErrorCategories.TRANSIENT

    @classmethod
    def extract_error_metadata(
        cls, error: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Extract structured metadata from an error for use as logging ``extra``.

        Args:
            error: The exception to analyze
            context: Optional context information

        Returns:
            Dictionary of error metadata
        """
        metadata = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "error_category": cls.categorize_error(error),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        url = getattr(error, "url", None)
        if url:
            metadata["error_url"] = url
        else:
            url_match = re.search(r"https?://[^\s]+", str(error))
            if url_match:
                metadata["error_url"] = url_match.group(0).rstrip(".,;)\"'")

        # govinfo file names carry the full bill identifier
        bill_match = re.search(r"BILLS-(\d{3})([a-z]+?)(\d+)([a-z]{2,3})\.xml", str(error))
        if bill_match:
            metadata["doc_id"] = f"{bill_match.group(1)}-{bill_match.group(2)}-{bill_match.group(3)}"
            metadata["version_code"] = bill_match.group(4)

        status_match = re.search(r"\b(4\d\d|5\d\d)\b", str(error))
        if status_match:
            metadata["http_status"] = int(status_match.group(0))

        if context:
            metadata["context"] = context

        return metadata
