"""
Factory functions building an AllPlayers Client with a given auth scheme.

Session, OAuth and basic auth are attached to the requests session of the
client's transport; agent signing is handled by the client itself.
"""

from typing import Any, Dict, Optional, Union

import requests
from requests.auth import HTTPBasicAuth
from requests.cookies import RequestsCookieJar
from requests_oauthlib import OAuth1

from .client import Client
from .constants import ANONYMOUS_USER
from .exceptions import ConfigurationError


def _session(client: Client) -> requests.Session:
    session = getattr(client.transport, 'session', None)
    if not isinstance(session, requests.Session):
        raise ConfigurationError("Client transport does not expose a requests session")
    return session


def session_factory(base_url: str, cookies: Optional[RequestsCookieJar] = None, client: Optional[Client] = None, **config) -> Client:
    """
    Create a Client authenticating with a session cookie.

    Args:
        base_url: e.g. https://www.allplayers.com
        cookies: Cookie jar to use, a new one by default
        client: Existing client to configure instead of a new one
    """
    client = client or Client(base_url, **config)
    _session(client).cookies = cookies if cookies is not None else RequestsCookieJar()
    return client


def oauth_factory(base_url: str, oauth_config: Dict[str, Any], client: Optional[Client] = None, **config) -> Client:
    """
    Create a Client authenticating with OAuth 1.

    Args:
        base_url: e.g. https://www.allplayers.com
        oauth_config: consumer_key and consumer_secret (required), token
            and token_secret
        client: Existing client to configure instead of a new one
    """
    for key in ('consumer_key', 'consumer_secret'):
        if not oauth_config.get(key):
            raise ConfigurationError(f"oauth_config requires {key}")

    client = client or Client(base_url, **config)
    _session(client).auth = OAuth1(
        oauth_config['consumer_key'],
        client_secret=oauth_config['consumer_secret'],
        resource_owner_key=oauth_config.get('token'),
        resource_owner_secret=oauth_config.get('token_secret'),
    )
    return client


def basic_auth_factory(base_url: str, username: str, password: str, client: Optional[Client] = None, **config) -> Client:
    """Create a Client authenticating with HTTP basic auth."""
    client = client or Client(base_url, **config)
    _session(client).auth = HTTPBasicAuth(username, password)
    return client


def hmac_factory(
    base_url: str,
    agent: str,
    private_key: Union[str, bytes],
    user: str = ANONYMOUS_USER,
    client: Optional[Client] = None,
    **config
) -> Client:
    """Create a Client signing its requests with an agent key."""
    client = client or Client(base_url, **config)
    client.set_credentials(agent, private_key, user)
    return client
