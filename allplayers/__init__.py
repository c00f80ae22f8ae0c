"""
AllPlayers API client library

A Python client for the AllPlayers REST API and its Store API, with
requests signed by an agent's RSA key.

Example usage:
    from allplayers import Client

    client = Client("https://www.allplayers.com")
    client.set_credentials("my-agent", open("agent.pem").read(), user_uuid)
    groups = client.groups_index(page="*")
"""

from . import services
from .client import Client, HttpClient
from .store import StoreClient
from .signer import Credentials, RequestSigner, verify_signature
from .transport import RequestsTransport, Response
from .factory import (
    session_factory,
    oauth_factory,
    basic_auth_factory,
    hmac_factory
)
from .models import (
    User,
    Group,
    Product,
    Installment,
    LineItem,
    Order,
    Payment,
    GroupStore,
    PaymentMethod
)
from .exceptions import (
    AllPlayersError,
    ConfigurationError,
    TransportError,
    BadResponseError,
    NotFoundError
)
from .constants import (
    ALL_PAGES,
    ANONYMOUS_USER,
    DEFAULT_CONFIG,
    SIGN_HEADER,
    SIGN_BODY
)

__version__ = "1.0.0"
__author__ = "AllPlayers"
__all__ = [
    "Client",
    "HttpClient",
    "StoreClient",
    "Credentials",
    "RequestSigner",
    "verify_signature",
    "RequestsTransport",
    "Response",
    "session_factory",
    "oauth_factory",
    "basic_auth_factory",
    "hmac_factory",
    "User",
    "Group",
    "Product",
    "Installment",
    "LineItem",
    "Order",
    "Payment",
    "GroupStore",
    "PaymentMethod",
    "AllPlayersError",
    "ConfigurationError",
    "TransportError",
    "BadResponseError",
    "NotFoundError",
    "ALL_PAGES",
    "ANONYMOUS_USER",
    "DEFAULT_CONFIG",
    "SIGN_HEADER",
    "SIGN_BODY",
    "services"
]
