"""
Authenticated HTTP access to ESI.

Provides:
- TokenProvider: Abstract source of bearer tokens per character
- StaticTokenProvider: Fixed token(s), for scripts and tests
- AuthenticatedFetcher: Abstract network collaborator used by ResourceClient
- HttpFetcher: httpx implementation with retries (tenacity) and structured
  classification of end-of-pagination errors

Retries live here and only here; the cache layer never retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from esi.exceptions import (
    ConfigurationError,
    HttpError,
    InvalidRequestError,
    InvalidResponseError,
    PageOutOfRangeError,
)
from esi.logging import get_logger

logger = get_logger(__name__)

SUCCESS_STATUSES = frozenset({200, 201, 204, 304})
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})

# ESI error budget header; warn when it gets low
ERROR_LIMIT_HEADER = "X-ESI-Error-Limit-Remain"
ERROR_LIMIT_WARNING = 20


class TokenProvider(ABC):
    """Source of access tokens. Refreshing tokens is the provider's job."""

    @abstractmethod
    async def get_access_token(self, identity: int) -> str:
        """Return a valid bearer token for the character."""
        ...


class StaticTokenProvider(TokenProvider):
    """Serves a fixed token, optionally one per character."""

    def __init__(
        self,
        token: str | None = None,
        tokens: Mapping[int, str] | None = None,
    ) -> None:
        self._default = token
        self._tokens = dict(tokens or {})

    async def get_access_token(self, identity: int) -> str:
        token = self._tokens.get(identity, self._default)
        if not token:
            raise ConfigurationError(
                "No access token configured for character",
                context={"character_id": identity},
            )
        return token


class AuthenticatedFetcher(ABC):
    """Network collaborator: fetch a URL on behalf of a character."""

    @abstractmethod
    async def fetch(
        self,
        url: str,
        identity: int,
        headers: Mapping[str, str] | None = None,
        end_signatures: Sequence[str] = (),
    ) -> bytes:
        """Fetch the raw response body.

        Raises:
            InvalidRequestError: If the URL is malformed.
            InvalidResponseError: On timeouts and connection failures.
            PageOutOfRangeError: If the error body matches an end signature.
            HttpError: On any other non-success status.
        """
        ...

    async def close(self) -> None:
        """Close any open connections."""


def _should_retry(error: BaseException) -> bool:
    if isinstance(error, PageOutOfRangeError):
        return False
    if isinstance(error, HttpError):
        return error.status in RETRY_STATUSES
    return isinstance(error, InvalidResponseError)


class HttpFetcher(AuthenticatedFetcher):
    """httpx-based fetcher with bearer authentication and retries."""

    def __init__(
        self,
        token_provider: TokenProvider,
        user_agent: str = "esi-resource-clients",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token_provider: Source of bearer tokens.
            user_agent: User-Agent header value.
            timeout: Per-request timeout in seconds.
            max_retries: Attempts per request, including the first.
            backoff: Multiplier for exponential backoff between attempts.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.token_provider = token_provider
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        identity: int,
        headers: Mapping[str, str] | None = None,
        end_signatures: Sequence[str] = (),
    ) -> bytes:
        try:
            request_url = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise InvalidRequestError("Malformed URL", context={"url": url}) from e
        if request_url.scheme not in ("http", "https") or not request_url.host:
            raise InvalidRequestError("Malformed URL", context={"url": url})

        token = await self.token_provider.get_access_token(identity)
        request_headers = {"Authorization": f"Bearer {token}", **(headers or {})}

        retrying = AsyncRetrying(
            retry=retry_if_exception(_should_retry),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying ESI request",
                        url=str(request_url),
                        attempt=attempt.retry_state.attempt_number,
                    )
                content = await self._get(request_url, request_headers, end_signatures)
        return content

    async def _get(
        self,
        url: httpx.URL,
        headers: Mapping[str, str],
        end_signatures: Sequence[str],
    ) -> bytes:
        client = await self._get_client()

        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise InvalidResponseError(
                "ESI request timed out", context={"url": str(url)}
            ) from e
        except httpx.RequestError as e:
            raise InvalidResponseError(
                f"ESI request failed: {e}", context={"url": str(url)}
            ) from e

        self._check_error_limit(response)

        if response.status_code not in SUCCESS_STATUSES:
            body = response.text[:500] if response.text else ""
            if any(signature in body for signature in end_signatures):
                raise PageOutOfRangeError(response.status_code, body, context={"url": str(url)})
            logger.warning(
                "ESI request failed",
                url=str(url),
                status_code=response.status_code,
                body=body,
            )
            raise HttpError(response.status_code, body, context={"url": str(url)})

        return response.content

    @staticmethod
    def _check_error_limit(response: httpx.Response) -> None:
        remaining = response.headers.get(ERROR_LIMIT_HEADER)
        if remaining is None:
            return
        try:
            value = int(remaining)
        except ValueError:
            return
        if value <= ERROR_LIMIT_WARNING:
            logger.warning(
                "ESI error budget running low",
                remaining=value,
                reset=response.headers.get("X-ESI-Error-Limit-Reset"),
            )
