"""
HTTP Transport

The executor reaches the network only through the ``Transport`` contract.
``AiohttpTransport`` is the shipped implementation.
"""

import asyncio
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import HTTPConfig, get_config
from ..core.exceptions import TransportError
from ..core.logging import get_logger

logger = get_logger(__name__)


class TransportResponse(BaseModel):
    """What a transport hands back for one completed call."""

    url: str = Field(description="Final URL after redirects")
    status: int = Field(description="HTTP status code")
    ok: bool = Field(description="True for 2xx statuses")
    headers: Dict[str, str] = Field(default_factory=dict)
    raw_headers: Dict[str, List[str]] = Field(default_factory=dict)
    data: str = Field(default="", description="Decoded response body")

    model_config = ConfigDict(frozen=True)


class Transport(Protocol):
    """Outbound HTTP capability used by the request executor."""

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Optional[int],
    ) -> TransportResponse:
        """
        Perform one HTTP call.

        Raises:
            TransportError: On network, TLS or timeout failure
        """
        ...


def split_headers(
    pairs: Iterable[Tuple[str, str]],
) -> Tuple[Dict[str, str], Dict[str, List[str]]]:
    """Group header pairs by lower-cased name; the flat view keeps the last value."""
    raw: Dict[str, List[str]] = {}
    for key, value in pairs:
        raw.setdefault(key.lower(), []).append(value)
    return {key: values[-1] for key, values in raw.items()}, raw


class AiohttpTransport:
    """Transport backed by ``aiohttp.ClientSession``."""

    def __init__(self, config: Optional[HTTPConfig] = None):
        self.config = config or get_config().http

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Optional[int],
    ) -> TransportResponse:
        request_headers = dict(headers)
        if not any(key.lower() == "user-agent" for key in request_headers):
            request_headers["User-Agent"] = self.config.user_agent

        try:
            client_timeout = aiohttp.ClientTimeout(total=timeout)

            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.request(
                    method=method,
                    url=url,
                    headers=request_headers,
                    data=body,
                    allow_redirects=self.config.allow_redirects,
                    # False skips certificate verification, None keeps the default checks
                    ssl=None if self.config.verify_ssl else False,
                ) as response:
                    data = await response.text(errors="replace")
                    flat_headers, raw_headers = split_headers(response.headers.items())

                    return TransportResponse(
                        url=str(response.url),
                        status=response.status,
                        ok=200 <= response.status < 300,
                        headers=flat_headers,
                        raw_headers=raw_headers,
                        data=data,
                    )

        except asyncio.TimeoutError:
            logger.warning(f"{method} {url} timed out after {timeout}s")
            raise TransportError(f"Request timed out after {timeout}s", {"url": url})
        except aiohttp.ClientError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(f"Failed to send request: {e}", {"url": url})
        except ValueError as e:
            # Raised client-side for header values with control or non-latin-1 characters
            logger.warning(f"{method} {url} rejected before sending: {e}")
            raise TransportError(f"Invalid request: {e}", {"url": url})
