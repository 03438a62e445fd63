import httpx
import logging
from typing import Any, Dict, Optional

from onemail.config import settings

logger = logging.getLogger(__name__)

class HTTPRuntime:
    """
    Handles network requests for the workflow engine.

    Bound to a node package's request defaults: relative URLs are joined to
    `base_url` and default headers are sent with every request. Errors are
    not wrapped: non-2xx responses raise httpx.HTTPStatusError, transport
    failures raise httpx.TransportError and undecodable JSON raises ValueError.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.headers = dict(headers or {})
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.transport = transport

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        """Performs an asynchronous HTTP request and returns the decoded JSON body."""
        method = method.upper()
        merged_headers = {**self.headers, **(headers or {})}

        async with httpx.AsyncClient(
            base_url=base_url if base_url is not None else self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.request(
                method=method,
                url=url,
                headers=merged_headers,
                json=body if body is not None and method != "GET" else None,
                params=params or None,
            )

        logger.debug(f"{method} {response.request.url} -> {response.status_code}")
        response.raise_for_status()

        if not response.content:
            return None
        return response.json()
