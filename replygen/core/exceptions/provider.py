"""
Language-Model Backend Exceptions

Every adapter translates its SDK/transport errors into one of these so the
orchestrator can classify failures without knowing which backend raised them.
The backend name travels in ``details["backend"]``.
"""

from replygen.core.exceptions.base import ReplyGenError


class ProviderError(ReplyGenError):
    """
    Base exception for backend errors.

    Raised directly for failures no more specific class describes; the
    orchestrator treats those as unclassified.
    """

    @property
    def backend(self) -> str | None:
        return self.details.get("backend")


class ProviderCredentialsError(ProviderError):
    """
    Raised when the user's credentials for a backend are missing or rejected.

    Common causes:
    - No API key saved for the backend
    - Invalid or revoked API key
    """
    pass


class ProviderRateLimitError(ProviderError):
    """
    Raised when the backend throttles the request or reports a quota problem.

    Common causes:
    - Requests per minute exceeded
    - No billing details / exhausted credits
    - Backend overloaded
    """
    pass


class ProviderConnectionError(ProviderError):
    """
    Raised on transport-level failures.

    The message is the low-level failure description and is shown to the
    user verbatim.
    """
    pass


class ProviderResponseError(ProviderError):
    """
    Raised when the backend response is empty or cannot be parsed.
    """
    pass
