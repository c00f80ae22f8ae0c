"""
HTTP transport used by the AllPlayers clients.

The clients only depend on ``perform_request``; any object providing it can
be injected in place of RequestsTransport.
"""

import logging
from typing import Dict, NamedTuple, Optional, Union

import requests

from .constants import DEFAULT_CONFIG
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class Response(NamedTuple):
    """Raw HTTP response: status code, headers and undecoded body."""
    status: int
    headers: Dict[str, str]
    body: bytes


class RequestsTransport:
    """Transport backed by a requests.Session."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_CONFIG['timeout']):
        self.session = session or requests.Session()
        self.timeout = timeout

    def perform_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Union[str, bytes]] = None,
        allow_redirects: bool = True,
    ) -> Response:
        """
        Send a single HTTP request.

        Raises:
            TransportError: If the request could not be completed
        """
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                data=body,
                timeout=self.timeout,
                allow_redirects=allow_redirects,
            )
        except requests.RequestException as e:
            raise TransportError(f"HTTP request failed: {e}")

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return Response(response.status_code, dict(response.headers), response.content)

    def close(self):
        """Close HTTP session."""
        if self.session:
            self.session.close()
