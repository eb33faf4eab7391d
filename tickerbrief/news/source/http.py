from typing import Any, Dict, Optional, Tuple
import asyncio

import aiohttp


class SourceUnavailableError(Exception):
    """Raised when an external news source cannot be reached or answers with a server error."""
    pass


BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


async def fetch_text(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = 15.0,
) -> Tuple[int, str]:
    """
    GET a url and return (status, body).

    Statuses below 500 are returned for the caller to inspect; timeouts,
    connection failures and server errors raise SourceUnavailableError.
    """
    try:
        async with aiohttp.ClientSession(
            headers=headers or BROWSER_HEADERS,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as session:
            async with session.get(url, params=params) as response:
                if response.status >= 500:
                    raise SourceUnavailableError(f"HTTP {response.status} when fetching {url}")
                return response.status, await response.text()
    except asyncio.TimeoutError as e:
        raise SourceUnavailableError(f"Timed out after {timeout}s fetching {url}") from e
    except aiohttp.ClientError as e:
        raise SourceUnavailableError(f"Connection error fetching {url}: {e}") from e


async def fetch_json(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = 10.0,
) -> Tuple[int, Any]:
    """GET a JSON resource; the body is None when it is not valid JSON."""
    try:
        async with aiohttp.ClientSession(
            headers=headers or {"Accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as session:
            async with session.get(url, params=params) as response:
                if response.status >= 500:
                    raise SourceUnavailableError(f"HTTP {response.status} when fetching {url}")
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = None
                return response.status, payload
    except asyncio.TimeoutError as e:
        raise SourceUnavailableError(f"Timed out after {timeout}s fetching {url}") from e
    except aiohttp.ClientError as e:
        raise SourceUnavailableError(f"Connection error fetching {url}: {e}") from e
