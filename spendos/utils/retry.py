"""
Exponential backoff for RPC and gateway calls
Only transient failures are retried; everything else propagates immediately
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from web3.exceptions import TimeExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

# JSON-RPC codes for rate limiting / overloaded nodes
RATE_LIMIT_CODES = {-32005, -32007, 429}


def _rpc_error_code(error: Exception):
    response = getattr(error, "rpc_response", None)
    if isinstance(response, dict):
        return (response.get("error") or {}).get("code")
    return None


def is_rate_limit_error(error: Exception) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code == 429
    return _rpc_error_code(error) in RATE_LIMIT_CODES


def is_transient_error(error: Exception) -> bool:
    """Network-level failures worth retrying"""
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError, TimeExhausted)):
        return True
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code >= 500:
        return True
    return is_rate_limit_error(error)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    label: str = "call"
) -> T:
    """
    Await fn() until it succeeds, retrying transient errors

    Args:
        fn: zero-arg coroutine factory
        max_retries: retries after the first attempt
        base_delay: seconds before the first retry, doubled each time
        max_delay: cap on a single wait
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as error:
            if not is_transient_error(error) or attempt >= max_retries:
                if attempt:
                    logger.error(f"❌ {label} failed after {attempt + 1} attempts: {error}")
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            kind = "Rate limit hit" if is_rate_limit_error(error) else f"Transient error ({type(error).__name__})"
            logger.warning(
                f"⚠️ {kind} on {label}. Retrying in {delay:.1f}s "
                f"(attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(delay)
            attempt += 1
