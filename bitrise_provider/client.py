"""HTTP client for the Bitrise API with auth headers and lifecycle logging."""

from collections.abc import Callable, Collection
from typing import Any, Optional

import httpx
import structlog

from bitrise_provider import __version__
from bitrise_provider.config import ProviderConfig
from bitrise_provider.exceptions import (
    APIError,
    NetworkError,
    PayloadError,
    RequestBuildError,
)

logger = structlog.get_logger(__name__)


class BitriseClient:
    """Thin wrapper around ``httpx.AsyncClient`` bound to one endpoint and token.

    Every request carries the ``Authorization`` header (when a token is
    configured) and ``Content-Type: application/json``. The client reports
    three lifecycle points to its logger: request built, response received and
    error detected. It never retries.
    """

    def __init__(
        self,
        endpoint: str,
        token: str = "",
        timeout_seconds: float = 30.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Base URL of the API
            token: API token, sent verbatim in the Authorization header
            timeout_seconds: Request timeout in seconds
            user_agent: Custom user agent string
            transport: Optional transport, used to fake the API in tests
            log: Structured logger receiving lifecycle events
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout_seconds = timeout_seconds

        headers = {
            "User-Agent": user_agent or f"bitrise-provider/{__version__}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = token

        self._client = httpx.AsyncClient(
            base_url=self.endpoint,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )
        self._request_count = 0
        self._logger = (log or logger).bind(base_url=self.endpoint)

    async def __aenter__(self) -> "BitriseClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
        self._logger.debug("Client closed", request_count=self._request_count)

    @property
    def has_auth(self) -> bool:
        """Whether requests carry an Authorization header."""
        return "Authorization" in self._client.headers

    async def send(
        self,
        method: str,
        path: str,
        json_data: Any = None,
    ) -> httpx.Response:
        """Build and send one request, returning the raw response.

        Status codes are not interpreted here; see :meth:`call`.

        Raises:
            PayloadError: If the JSON body cannot be serialized
            RequestBuildError: If the request cannot be constructed
            NetworkError: On transport failures and timeouts
        """
        self._request_count += 1
        request_id = f"req_{self._request_count}"

        try:
            request = self._client.build_request(method, path, json=json_data)
        except (TypeError, ValueError) as e:
            self._logger.error(
                "Error detected", stage="marshal", method=method, path=path, error=str(e)
            )
            raise PayloadError(f"Unable to marshal request payload: {e}") from e
        except httpx.InvalidURL as e:
            self._logger.error(
                "Error detected", stage="build", method=method, path=path, error=str(e)
            )
            raise RequestBuildError(f"Unable to create request: {e}") from e

        self._logger.debug(
            "Request built",
            request_id=request_id,
            method=method,
            url=str(request.url),
            has_json_data=json_data is not None,
            has_auth=self.has_auth,
        )

        try:
            response = await self._client.send(request)
        except httpx.TimeoutException as e:
            self._logger.error(
                "Error detected", stage="transport", request_id=request_id, error=str(e)
            )
            raise NetworkError(f"Request to {request.url} timed out: {e}") from e
        except httpx.RequestError as e:
            self._logger.error(
                "Error detected", stage="transport", request_id=request_id, error=str(e)
            )
            raise NetworkError(f"Error sending request to {request.url}: {e}") from e

        self._logger.debug(
            "Response received",
            request_id=request_id,
            status_code=response.status_code,
            response_size=len(response.content),
        )
        return response

    async def call(
        self,
        method: str,
        path: str,
        *,
        expected: Collection[int],
        action: str,
        json_data: Any = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """Send a request and enforce the endpoint's success-code set.

        Args:
            method: HTTP method
            path: API path relative to the endpoint
            expected: Status codes that count as success
            action: Human readable action for error messages ("create secret")
            json_data: JSON request body
            allow_not_found: Return None on 404 instead of raising

        Returns:
            The response, or None when the entity is absent and allowed to be.

        Raises:
            APIError: If the status code is outside ``expected``
        """
        response = await self.send(method, path, json_data=json_data)

        if response.status_code in expected:
            return response

        if allow_not_found and response.status_code == httpx.codes.NOT_FOUND:
            self._logger.info(
                "Remote entity not found", method=method, path=path, action=action
            )
            return None

        self._logger.error(
            "Error detected",
            stage="status",
            method=method,
            path=path,
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise APIError(
            f"Failed to {action}: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            response_text=response.text,
        )

ClientFactory = Callable[[], BitriseClient]


def make_client_factory(
    config: ProviderConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    log: Any = None,
) -> ClientFactory:
    """Create the factory handed to every adapter.

    Each call returns a fresh client bound to the configured endpoint and
    token; adapters open one per operation and close it when done.
    """

    def factory() -> BitriseClient:
        return BitriseClient(
            endpoint=config.endpoint,
            token=config.token.get_secret_value(),
            timeout_seconds=config.timeout_seconds,
            user_agent=config.user_agent,
            transport=transport,
            log=log,
        )

    return factory
