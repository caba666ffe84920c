"""
HTTP helpers for talking to the planner API with retries.

Transient failures (network errors, timeouts, 5xx and 429) are retried with
exponential backoff; other 4xx responses are returned to the caller as-is.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from permaculture_planner.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """Error returned by the API (or raised for a failed request)."""
    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(self.message)


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    timeout: float = DEFAULT_TIMEOUT,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **request_kwargs,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    Args:
        client: httpx client used to send the request
        method: HTTP method
        url: Request URL (absolute, or relative to the client's base_url)
        max_retries: Retries after the first attempt
        retry_delay: Base delay in seconds, doubled after each attempt
        timeout: Per-attempt timeout in seconds
        on_retry: Called with (attempt number, error) before each retry

    Returns:
        The last response received

    Raises:
        ApiError: If every attempt failed without a response
    """
    last_error: Optional[Exception] = None

    for attempt in range(max_retries + 1):
        try:
            response = await client.request(method, url, timeout=timeout, **request_kwargs)
        except httpx.TimeoutException:
            last_error = ApiError("Request timeout - please check your connection")
        except httpx.TransportError as e:
            last_error = ApiError(f"Network error: {str(e)}")
        else:
            if not is_retryable_status(response.status_code) or attempt == max_retries:
                return response
            last_error = ApiError(f"HTTP {response.status_code}", status_code=response.status_code)

        if attempt == max_retries:
            break

        delay = retry_delay * (2 ** attempt)
        logger.warning("Retrying %s %s in %.1fs (attempt %d): %s", method, url, delay, attempt + 1, last_error)
        if on_retry is not None:
            on_retry(attempt + 1, last_error)
        await sleep(delay)

    raise last_error or ApiError("Request failed after retries")


def parse_api_response(response: httpx.Response) -> Any:
    """Return the decoded body of a successful response, raise ApiError otherwise."""
    is_json = "application/json" in response.headers.get("content-type", "")

    if response.is_success:
        return response.json() if is_json else response.text

    message = f"Request failed with status {response.status_code}"
    code = None
    details = None
    if is_json:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            detail = data.get("detail")
            message = data.get("error") or data.get("message") or (detail if isinstance(detail, str) else None) or message
            code = data.get("code")
            details = data.get("details", detail if not isinstance(detail, str) else None)
    elif response.text:
        message = response.text

    raise ApiError(message, status_code=response.status_code, code=code, details=details)


async def api_fetch(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Any:
    response = await fetch_with_retry(client, method, url, **kwargs)
    return parse_api_response(response)
