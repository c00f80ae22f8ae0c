"""
Generic resource client for the AllPlayers REST API.

HttpClient maps (verb, path, params) onto one signed HTTP request and
decodes the JSON answer. Client adds the core www endpoints on top of it.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlencode, urljoin

from .constants import (
    ALL_PAGES,
    ANONYMOUS_USER,
    DEFAULT_CONFIG,
    DEFAULT_PAGESIZE,
    SIGN_BODY,
    SIGN_HEADER,
    SIGN_MODES,
)
from .exceptions import BadResponseError, ConfigurationError
from .models import positional_list
from .signer import Credentials, RequestSigner
from .transport import RequestsTransport, Response

logger = logging.getLogger(__name__)


def compact(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty values (None, False, 0, '' and empty collections)."""
    return {key: value for key, value in params.items() if value}


def flatten_query(params: Any, prefix: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    Flatten nested params into bracketed query pairs.

    {'filters': {'status': [1, 0]}} becomes
    [('filters[status][0]', '1'), ('filters[status][1]', '0')].
    Booleans are sent as 1/0 and None values are skipped.
    """
    if isinstance(params, dict):
        items = params.items()
    else:
        items = enumerate(params)

    pairs = []
    for key, value in items:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            pairs.extend(flatten_query(value, name))
        elif isinstance(value, bool):
            pairs.append((name, '1' if value else '0'))
        else:
            pairs.append((name, str(value)))
    return pairs


class HttpClient:
    """
    Client for a REST endpoint tree signed with agent credentials.

    Requests are sent anonymously until set_credentials() is called with
    a complete agent/key/user triple.
    """

    # Per-class overrides of DEFAULT_CONFIG
    config_defaults: Dict[str, Any] = {}

    def __init__(self, base_url: str, transport=None, **config):
        """
        Initialize client.

        Args:
            base_url: Base URL of the site, e.g. https://www.allplayers.com
            transport: Object providing perform_request(); defaults to a
                requests based transport
            **config: Configuration options (timeout, endpoint, post_sign_mode)
        """
        self.base_url = (base_url or '').rstrip('/')

        # Merge default config with user overrides
        self.config = {**DEFAULT_CONFIG, **self.config_defaults, **config}

        # Validate configuration
        self._validate_config()

        self.transport = transport or RequestsTransport(timeout=self.config['timeout'])
        self.signer = RequestSigner(Credentials('', '', ''))

    def _validate_config(self):
        """Validate client configuration."""
        if not self.base_url:
            raise ConfigurationError("base_url cannot be empty")

        if self.config['timeout'] <= 0:
            raise ConfigurationError("timeout must be positive")

        if not self.config['endpoint'].startswith('/'):
            raise ConfigurationError("endpoint must start with '/'")

        if self.config['post_sign_mode'] not in SIGN_MODES:
            raise ConfigurationError(f"post_sign_mode must be one of {SIGN_MODES}")

    @property
    def url_prefix(self) -> str:
        return self.base_url + self.config['endpoint']

    def set_credentials(self, agent: str, private_key: Union[str, bytes], user: str = ANONYMOUS_USER):
        """
        Set authentication settings for this client.

        Args:
            agent: Name of the key issued by AllPlayers
            private_key: PEM encoded RSA private key
            user: UUID of the user to act as, or a special user (anonymous)
        """
        self.signer = RequestSigner(Credentials(agent, private_key, user))

    def clear_credentials(self):
        """Go back to sending anonymous requests."""
        self.signer = RequestSigner(Credentials('', '', ''))

    @property
    def credentials(self) -> Credentials:
        return self.signer.credentials

    def build_url(self, path: str, query: Optional[Dict[str, Any]] = None) -> str:
        url = urljoin(self.url_prefix + '/', path.lstrip('/'))
        pairs = flatten_query(query or {})
        if pairs:
            url = f"{url}?{urlencode(pairs)}"
        return url

    def _make_request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        params: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        sign_mode: str = SIGN_HEADER,
        allow_redirects: bool = True,
    ) -> Any:
        """
        Make a signed HTTP request and decode the response.

        Args:
            method: HTTP method
            path: Resource path relative to the endpoint
            query: Query string parameters
            params: Body parameters, JSON encoded
            headers: Extra headers, these win over generated auth headers
            sign_mode: SIGN_HEADER or SIGN_BODY (POST only)
            allow_redirects: Whether the transport follows redirects

        Returns:
            Decoded response: dict, list, text or None for an empty body

        Raises:
            ConfigurationError: If signing was attempted and failed
            TransportError: If the request could not be sent
            BadResponseError: If the response status is not 2xx
        """
        url = self.build_url(path, query)

        if sign_mode == SIGN_BODY and method == 'POST':
            headers = dict(headers or {})
            envelope = self.signer.sign_body(params)
            if envelope is not None:
                params = envelope
        else:
            headers = self.signer.sign_headers(headers)

        headers.setdefault('Accept', 'application/json')

        body = None
        if params is not None:
            body = json.dumps(params, separators=(',', ':')).encode('utf-8')
            headers.setdefault('Content-Type', 'application/json')

        logger.debug("%s %s (%s signing)", method, url, sign_mode)
        response = self.transport.perform_request(
            method,
            url,
            headers=headers,
            body=body,
            allow_redirects=allow_redirects,
        )
        return self._decode_response(method, url, response)

    def _decode_response(self, method: str, url: str, response: Response) -> Any:
        """Decode a JSON body, raising on non-2xx statuses."""
        raw = response.body or b''
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8', errors='replace')

        if not raw.strip():
            payload = None
        else:
            try:
                payload = json.loads(raw)
            except ValueError:
                payload = raw

        if not 200 <= response.status < 300:
            logger.warning("%s %s failed with status %s", method, url, response.status)
            raise BadResponseError(
                f"{method} {url} returned HTTP {response.status}",
                response.status,
                payload,
            )

        return payload

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> Any:
        """Make signed GET request, params go in the query string."""
        return self._make_request('GET', path, query=params, headers=headers, **kwargs)

    def post(self, path: str, params: Optional[Any] = None, headers: Optional[Dict[str, str]] = None, sign_mode: Optional[str] = None, **kwargs) -> Any:
        """Make signed POST request, params go in the JSON body."""
        sign_mode = sign_mode or self.config['post_sign_mode']
        return self._make_request('POST', path, params=params, headers=headers, sign_mode=sign_mode, **kwargs)

    def put(self, path: str, params: Optional[Any] = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> Any:
        """Make signed PUT request, params go in the JSON body."""
        return self._make_request('PUT', path, params=params, headers=headers, **kwargs)

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> Any:
        """Make signed DELETE request, params go in the query string."""
        return self._make_request('DELETE', path, query=params, headers=headers, **kwargs)

    def index(
        self,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        fields: Optional[Iterable[str]] = None,
        page: Union[int, str] = 0,
        pagesize: int = DEFAULT_PAGESIZE,
    ) -> List[Any]:
        """
        Fetch a paginated listing.

        Args:
            path: Resource path of the listing
            query: Filter parameters
            fields: Properties the server should return for each item
            page: Page number (0 is the first page) or ALL_PAGES ('*') to
                fetch every page. With '*' a high pagesize means fewer requests.
            pagesize: Items per page, does not limit the overall result when
                fetching all pages. 0 leaves it to the server.

        Returns:
            List of items
        """
        if page == ALL_PAGES:
            return self._index_all(path, query, fields, pagesize)

        if isinstance(page, bool) or not isinstance(page, int) or page < 0:
            raise ValueError(f"page must be a non-negative integer or {ALL_PAGES!r}, got {page!r}")

        return self._index_page(path, query, fields, page, pagesize)

    def _index_page(self, path, query, fields, page, pagesize):
        params = dict(query or {})
        if fields:
            params['fields'] = ','.join(fields)
        params['page'] = page
        if pagesize and pagesize > 0:
            params['pagesize'] = pagesize
        return self.get(path, params)

    def _index_all(self, path, query, fields, pagesize):
        results = []
        page = 0
        while True:
            items = self._index_page(path, query, fields, page, pagesize)
            if items is None:
                items = []
            if not isinstance(items, list):
                raise BadResponseError(f"Expected a list from {path} page {page}", 200, items)

            results.extend(items)
            logger.debug("Fetched page %s of %s: %s items", page, path, len(items))

            # A short page is the last one.
            if not items or (pagesize and len(items) < pagesize):
                break
            page += 1

        return results

    def batch(self, calls: List[Dict[str, Any]]) -> List[Any]:
        """
        Send several calls to the API in one request.

        Args:
            calls: Call descriptors, executed independently by the server

        Returns:
            Results in the same order as the calls
        """
        calls = list(calls)
        results = self.post('batch', {'batch': calls})
        if results is None:
            return []
        if isinstance(results, dict):
            # Arrays with gaps come back as objects keyed by position.
            return positional_list(results, len(calls))
        return results

    def close(self):
        """Close the underlying transport."""
        close = getattr(self.transport, 'close', None)
        if close:
            close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class Client(HttpClient):
    """Client for the core AllPlayers API (users and groups)."""

    config_defaults = {'post_sign_mode': SIGN_BODY}

    def user_login(self, username: str, password: str) -> Any:
        return self.post('users/login', {'username': username, 'password': password})

    def user_logout(self) -> Any:
        return self.post('users/logout')

    def user_create_user(
        self,
        firstname: str,
        lastname: str,
        email: str,
        gender: str,
        birthday: str,
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a new user; gender is 'M' or 'F', birthday YYYY-MM-DD."""
        params = {
            'firstname': firstname,
            'lastname': lastname,
            'email': email,
            'gender': gender,
            'birthday': birthday,
            'password': password,
        }
        return self.post('users', compact(params))

    def user_get_user(self, uuid: str) -> Dict[str, Any]:
        return self.get(f"users/{uuid}")

    def users_index(
        self,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Iterable[str]] = None,
        page: Union[int, str] = 0,
        pagesize: int = DEFAULT_PAGESIZE,
    ) -> List[Dict[str, Any]]:
        return self.index('users', filters, fields, page, pagesize)

    def group_create(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self.post('groups', params)

    def group_get(self, uuid: str) -> Dict[str, Any]:
        return self.get(f"groups/{uuid}")

    def groups_index(
        self,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Iterable[str]] = None,
        page: Union[int, str] = 0,
        pagesize: int = DEFAULT_PAGESIZE,
    ) -> List[Dict[str, Any]]:
        return self.index('groups', filters, fields, page, pagesize)

    def group_products(
        self,
        group_uuid: str,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Iterable[str]] = None,
        page: Union[int, str] = 0,
        pagesize: int = DEFAULT_PAGESIZE,
    ) -> List[Dict[str, Any]]:
        """
        List the products available for a group.

        Args:
            group_uuid: UUID of the group
            filters: status (1 active, 0 disabled), type, or title (a
                "contains" match); status and type may be lists
            fields: Fields to return per product, all when empty
            page: Page number or '*' for every page
            pagesize: Products per page
        """
        return self.index(
            f"group/{group_uuid}/products",
            {'filters': filters or {}},
            fields,
            page,
            pagesize,
        )
