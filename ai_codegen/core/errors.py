"""
Error taxonomy for code generation.

Per-request failures derive from CompletionError and are recoverable: the
interactive loop renders them and waits for the next prompt. Configuration
failures are raised before the loop starts and are fatal.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when the tool cannot start with the current configuration."""


class MissingCredential(ConfigurationError):
    """Raised when the API key is not available at startup."""

    def __init__(self, env_var: str):
        super().__init__(f"Please set {env_var} environment variable")
        self.env_var = env_var


class CompletionError(Exception):
    """Base class for failures of a single completion request."""


class RateLimitExceeded(CompletionError):
    """Raised when the local limiter denies a request or the API returns 429.

    Both cases are surfaced identically to the caller; ``source`` tells
    them apart ("local" or "server").
    """

    def __init__(self, source: str = "local"):
        super().__init__("Rate limit exceeded")
        self.source = source


class TransportError(CompletionError):
    """Raised on DNS, connection or timeout failures."""

    def __init__(self, cause: Exception):
        super().__init__(f"API Error: {cause}")
        self.cause = cause


class DecodeError(CompletionError):
    """Raised when a successful response body cannot be decoded."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(f"JSON Error: {message}")
        self.cause = cause


class UnexpectedStatus(CompletionError):
    """Raised for any HTTP status other than 200 and 429."""

    def __init__(self, status_code: int):
        super().__init__(f"Unexpected response status code: {status_code}")
        self.status_code = status_code


class EmptyChoices(CompletionError):
    """Raised when a response parses but contains no choices."""

    def __init__(self):
        super().__init__("Response contained no choices")
