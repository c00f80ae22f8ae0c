"""
Custom exceptions for the AllPlayers client library.
"""


class AllPlayersError(Exception):
    """Base exception for AllPlayers client errors."""
    pass


class ConfigurationError(AllPlayersError):
    """Raised when client configuration or credential material is invalid."""
    pass


class TransportError(AllPlayersError):
    """Raised when the HTTP request itself fails (network, timeout)."""
    pass


class BadResponseError(AllPlayersError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, message, status_code, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NotFoundError(AllPlayersError):
    """Raised when a typed lookup finds no matching object."""
    pass
