"""
Integration client foundations.

Every integration exposes one capability interface with two implementations:
- Live: real HTTP calls via requests
- Simulated: deterministic synthetic responses, no network

The choice is made once, when the client is built (see `create_*_client`
factories). A live client built outside production also gets a simulated
fallback: a failed live call is logged and answered by the simulation
instead of raising. In production the typed error propagates.

Rate-limited calls are retried with exponential backoff; nothing else is.
"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


# =============================================================================
# Errors
# =============================================================================


class IntegrationError(Exception):
    """Failure talking to an external system."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"[{service}] {message}")
        self.service = service
        self.status_code = status_code


class RateLimitError(IntegrationError):
    """Remote side asked us to slow down (retryable)."""


class IntegrationAuthError(IntegrationError):
    """Credentials rejected."""


class IntegrationNotFoundError(IntegrationError):
    """Remote resource does not exist."""


class CredentialsMissingError(IntegrationError):
    """Live call attempted without credentials."""


# =============================================================================
# Retry
# =============================================================================


def retry_with_backoff(
    fn: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn`, retrying only on RateLimitError.

    Delay before retry n (0-based attempt that failed) is base_delay * 2**n.
    The last failure, or any non rate-limit error, is raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except RateLimitError as e:
            if attempt >= max_attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"{e} (attempt {attempt + 1}/{max_attempts}), retrying in {delay:.1f}s")
            sleep(delay)
            attempt += 1


# =============================================================================
# Live client base
# =============================================================================


class LiveHttpClient:
    """
    Shared plumbing for live clients: a requests.Session, status-code
    classification and the simulated fallback outside production.
    """

    service = "integration"

    def __init__(
        self,
        base_url: str,
        fallback: Optional[Any] = None,
        timeout: float = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.fallback = fallback
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _is_rate_limited(self, resp: requests.Response) -> bool:
        return resp.status_code == 429

    def _error_message(self, resp: requests.Response) -> str:
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if isinstance(data, dict):
            for key in ("message", "err", "description", "error"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
                if isinstance(value, dict) and value.get("message"):
                    return str(value["message"])
        return f"HTTP {resp.status_code} {resp.reason}"

    def _raise_for_status(self, resp: requests.Response) -> None:
        if resp.ok:
            return
        message = self._error_message(resp)
        if self._is_rate_limited(resp):
            raise RateLimitError(self.service, f"rate limit exceeded: {message}", resp.status_code)
        if resp.status_code == 401:
            raise IntegrationAuthError(self.service, f"authentication failed: {message}", resp.status_code)
        if resp.status_code == 404:
            raise IntegrationNotFoundError(self.service, f"resource not found: {message}", resp.status_code)
        raise IntegrationError(self.service, message, resp.status_code)

    def _request_once(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            raise IntegrationError(self.service, f"request failed: {e}") from e
        self._raise_for_status(resp)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise IntegrationError(self.service, f"invalid JSON response: {e}", resp.status_code) from e

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """HTTP call with rate-limit backoff."""
        return retry_with_backoff(
            lambda: self._request_once(method, path, **kwargs),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            sleep=self._sleep,
        )

    def _with_fallback(self, operation: str, call: Callable[[], T], *args, **kwargs) -> T:
        """
        Run a live call; outside production answer failures from the simulation.

        Args:
            operation: Method name on the fallback client
            call: Zero-argument live call
            *args, **kwargs: Arguments forwarded to the fallback method
        """
        try:
            return call()
        except IntegrationError as e:
            if self.fallback is None:
                raise
            logger.error(f"[{self.service}] {operation} failed: {e}")
            logger.warning(f"[{self.service}] Falling back to simulated data")
            return getattr(self.fallback, operation)(*args, **kwargs)
