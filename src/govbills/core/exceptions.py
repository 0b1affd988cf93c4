class GovBillsError(Exception):
    """Base class for all govbills errors."""


class RateLimitException(Exception):
    """Raised when API rate limit is hit."""

    def __init__(self, message: str, retry_after: int = None):
        super().__init__(message)
        self.retry_after = retry_after


class TransientError(GovBillsError):
    """
    A failure that may succeed on retry (network, upstream service, index).

    Steps raising this are retried with backoff and then abandoned for the pass.
    """

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class FetchError(TransientError):
    """Manifest or document could not be fetched."""


class SummarizationError(TransientError):
    """The summarization service call failed."""


class IndexingError(TransientError):
    """The semantic index rejected or failed an operation."""


class ProcessedException(GovBillsError):
    """
    Marks a file as handled even though it could not be ingested.

    Use this for fatal per-file problems that a retry cannot fix
    (unparseable identifiers, missing root elements, malformed markup).
    """

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class BillParsingError(ProcessedException):
    """The bill markup could not be turned into text."""


class BillIdentifierError(ProcessedException):
    """No recognisable bill identifier in the legislative number or URL."""


class MissingRootElementError(BillParsingError):
    """The document has neither a <bill> nor a <resolution> root element."""


class InvariantViolationError(GovBillsError):
    """A write would break a storage invariant. Indicates a logic bug."""
