"""
Failure Classification

Maps whatever ended a run early onto a terminal Disposition and the
user-readable text the finalized message carries.

    ResponseCancelledError      -> CANCELLED            (partial text kept)
    ProviderCredentialsError    -> MISSING_CREDENTIALS  (backend-specific key instructions)
    ProviderResponseError       -> EMPTY_RESPONSE
    ProviderConnectionError     -> CONNECTION_FAILED    (low-level description included)
    ProviderRateLimitError      -> RATE_LIMITED         (backend billing console link)
    anything else               -> UNCLASSIFIED         (generic error text)
"""

from replygen.core.config.constants import BILLING_URLS, Backend
from replygen.core.exceptions import (
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderRateLimitError,
    ProviderResponseError,
    ResponseCancelledError,
)
from replygen.domain.models import Disposition

MISSING_CREDENTIALS_TEXT = {
    Backend.OPENAI: (
        "(You need to enter a valid API key for OpenAI to use GPT-3.5 or GPT-4. Click your Profile in the bottom "
        "left and then Settings. You will find OpenAI Key instructions.)"
    ),
    Backend.ANTHROPIC: (
        "(You need to enter a valid API key for Anthropic to use Claude. Click your Profile in the bottom "
        "left and then Settings. You will find Anthropic Key instructions.)"
    ),
}

EMPTY_RESPONSE_TEXT = (
    "(Received a blank response. It's possible your API key is invalid, has expired, or the AI servers may be "
    "experiencing trouble. Try again or ensure your API key is valid. You can change your API key by clicking your "
    "Profile in the bottom left and then settings.)"
)

CONNECTION_FAILED_TEMPLATE = "I experienced a connection error. {description}"

RATE_LIMITED_TEMPLATE = (
    "(Received a quota error. Your API key is probably valid but you may need to adding billing details. You are "
    "using {service} so go here {url} and add a credit card, or if you already have one review your billing plan.)"
)

UNCLASSIFIED_TEXT = (
    "(Something went wrong while generating this reply. Please try again. If the problem continues, "
    "check your API key by clicking your Profile in the bottom left and then Settings.)"
)

_DISPOSITIONS: tuple[tuple[type[Exception], Disposition], ...] = (
    (ResponseCancelledError, Disposition.CANCELLED),
    (ProviderCredentialsError, Disposition.MISSING_CREDENTIALS),
    (ProviderResponseError, Disposition.EMPTY_RESPONSE),
    (ProviderConnectionError, Disposition.CONNECTION_FAILED),
    (ProviderRateLimitError, Disposition.RATE_LIMITED),
)


def classify(exc: BaseException) -> Disposition:
    for exc_type, disposition in _DISPOSITIONS:
        if isinstance(exc, exc_type):
            return disposition
    return Disposition.UNCLASSIFIED


def disposition_text(disposition: Disposition, backend: Backend, exc: BaseException | None = None) -> str | None:
    """
    Text the finalized message carries for a disposition.

    Returns:
        The replacement text, or None when the accumulated text is kept
        (cancellation)
    """
    if disposition == Disposition.CANCELLED:
        return None

    if disposition == Disposition.MISSING_CREDENTIALS:
        return MISSING_CREDENTIALS_TEXT[backend]

    if disposition == Disposition.EMPTY_RESPONSE:
        return EMPTY_RESPONSE_TEXT

    if disposition == Disposition.CONNECTION_FAILED:
        description = getattr(exc, "message", None) or str(exc or "")
        return CONNECTION_FAILED_TEMPLATE.format(description=description)

    if disposition == Disposition.RATE_LIMITED:
        return RATE_LIMITED_TEMPLATE.format(service=backend.display_name, url=BILLING_URLS[backend])

    return UNCLASSIFIED_TEXT
