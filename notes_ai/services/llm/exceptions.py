"""LLM Generation Error Taxonomy

Structured, closed set of failure kinds for the generation client.

Every failure originating in the client is a GenerationError tagged with
an ErrorKind:
- VALIDATION: Request violates the input contract (not retryable)
- AUTH: Missing or rejected API credential (not retryable)
- RATE_LIMIT: Upstream throttled the request (retryable with backoff)
- TIMEOUT: Network attempt exceeded its timeout (retryable)
- NETWORK: Connection-level failure (retryable)
- SERVICE: Upstream unavailable / 5xx (retryable)
- PARSE: Response violates the output contract (not retryable)
- API: Any other upstream status (retryable only for status >= 500)

The retryable flag is derived from RETRYABLE_KINDS via is_retryable();
callers never re-derive it from the kind themselves.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of generation failure kinds."""

    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVICE = "service"
    PARSE = "parse"
    API = "api"


# API is resolved from the status code in is_retryable()
RETRYABLE_KINDS: Dict[ErrorKind, bool] = {
    ErrorKind.VALIDATION: False,
    ErrorKind.AUTH: False,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.TIMEOUT: True,
    ErrorKind.NETWORK: True,
    ErrorKind.SERVICE: True,
    ErrorKind.PARSE: False,
}


def is_retryable(kind: ErrorKind, status_code: Optional[int] = None) -> bool:
    """Return whether a failure of this kind may be retried.

    Args:
        kind: Failure kind
        status_code: Upstream HTTP status (only consulted for API errors)

    Returns:
        True if the retry loop may attempt the call again
    """
    if kind is ErrorKind.API:
        return status_code is not None and status_code >= 500
    return RETRYABLE_KINDS[kind]


class GenerationError(Exception):
    """Typed failure raised by the generation client.

    Attributes:
        kind: ErrorKind tag
        message: Human-readable description
        status_code: Upstream HTTP status for API errors
        field: Offending field for schema validation failures
        expected_type: Declared schema type for type mismatches
        actual_type: Observed JSON type for type mismatches
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        field: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_type: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.field = field
        self.expected_type = expected_type
        self.actual_type = actual_type
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether the retry loop may attempt the call again."""
        return is_retryable(self.kind, self.status_code)

    def __repr__(self) -> str:
        return (
            f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, "
            f"status_code={self.status_code!r})"
        )

    @classmethod
    def validation(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def auth(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.AUTH, message)

    @classmethod
    def rate_limit(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.RATE_LIMIT, message)

    @classmethod
    def timeout(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.TIMEOUT, message)

    @classmethod
    def network(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.NETWORK, message)

    @classmethod
    def service(cls, message: str) -> "GenerationError":
        return cls(ErrorKind.SERVICE, message)

    @classmethod
    def parse(
        cls,
        message: str,
        field: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_type: Optional[str] = None,
    ) -> "GenerationError":
        return cls(
            ErrorKind.PARSE,
            message,
            field=field,
            expected_type=expected_type,
            actual_type=actual_type,
        )

    @classmethod
    def api(cls, message: str, status_code: Optional[int] = None) -> "GenerationError":
        return cls(ErrorKind.API, message, status_code=status_code)
