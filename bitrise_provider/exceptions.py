"""Exception classes raised by the provider, its client and its adapters."""

from typing import Optional


class ProviderError(Exception):
    """Base exception for everything surfaced as a diagnostic."""

    summary = "Provider Error"

    def __init__(self, message: str, attribute: Optional[str] = None) -> None:
        """Initialize provider error.

        Args:
            message: Error message, used as the diagnostic detail
            attribute: Attribute the error is attached to, if any
        """
        super().__init__(message)
        self.message = message
        self.attribute = attribute


class ConfigurationError(ProviderError):
    """Raised when the provider has not been configured or is misconfigured."""

    summary = "Provider Configuration Error"


class PlanValidationError(ProviderError):
    """Raised when a plan is missing required attributes or carries invalid values."""

    summary = "Invalid Plan"


class PayloadError(ProviderError):
    """Raised when a request payload or response body cannot be (un)marshaled."""

    summary = "Payload Error"


class RequestBuildError(ProviderError):
    """Raised when an HTTP request cannot be constructed."""

    summary = "Request Error"


class NetworkError(ProviderError):
    """Raised for transport-level failures (DNS, connection, timeout)."""

    summary = "Network Error"


class APIError(ProviderError):
    """Raised when the API answers with a status outside the accepted set."""

    summary = "API Error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code if available
            response_text: Response body text if available
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.response_text:
            # Truncate response text for readability
            response_preview = self.response_text[:500]
            if len(self.response_text) > 500:
                response_preview += "..."
            parts.append(f"Response: {response_preview}")
        return " | ".join(parts)


class ResourceNotFoundError(APIError):
    """Raised when a data source target does not exist (404)."""

    summary = "Not Found"


class ImportIdError(ProviderError):
    """Raised when an import identifier does not match the resource's format."""

    summary = "Invalid Import ID"


class ReplacementRequiredError(ProviderError):
    """Raised when an update would change an attribute that forces replacement."""

    summary = "Replacement Required"
