"""
Dua Search Service - Custom Exceptions

Anti-Patterns Avoided:
- Exception shadowing: namespaced exceptions instead of builtins like
  ConnectionError or TimeoutError
"""


class DuaSearchError(Exception):
    """Base exception for Dua Search Service.

    All custom exceptions inherit from this base class.
    """

    pass


class UpstreamUnavailableError(DuaSearchError):
    """Raised when the embedding service or search backend cannot serve a request.

    Attributes:
        hint: Operator-facing hint on how to restore the upstream
    """

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.hint = hint


class InvalidQueryError(DuaSearchError):
    """Raised when caller input is rejected before any network call."""

    pass


class ConfigurationError(DuaSearchError):
    """Raised when configuration is invalid or missing."""

    pass


class CorpusLoadError(ConfigurationError):
    """Raised when a static table or corpus file cannot be loaded."""

    pass
