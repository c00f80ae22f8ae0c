"""
Request signing for the AllPlayers API.

The API authenticates agents with an RSA key pair. Despite the header being
called ``hmac``, the value is not a shared-secret HMAC: it is the hex SHA-256
digest of the signed payload, encrypted with the agent's private key using
PKCS#1 v1.5 type 1 padding (the OpenSSL ``private_encrypt`` primitive). The
server recovers the digest with the agent's public key and compares it.
"""

import base64
import hashlib
import json
import logging
import time
from typing import Any, Dict, NamedTuple, Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .constants import (
    ANONYMOUS_USER,
    BODY_DATA,
    HEADER_AGENT,
    HEADER_HMAC,
    HEADER_TIME,
    HEADER_USER,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# PKCS#1 v1.5 needs at least 8 padding bytes plus 3 marker bytes.
PADDING_OVERHEAD = 11


class Credentials(NamedTuple):
    """Agent identity, its private key and the user to act as."""
    agent: str
    private_key: Union[str, bytes]
    user: str = ANONYMOUS_USER


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode('utf-8')).hexdigest().encode('ascii')


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode('utf-8') if isinstance(value, str) else value


class RequestSigner:
    """
    Signs requests on behalf of an agent.

    Signing only happens when agent, user and private key are all set;
    otherwise requests go out anonymously and no error is raised.
    """

    def __init__(self, credentials: Credentials):
        self.credentials = credentials
        self._key = None

    @property
    def is_complete(self) -> bool:
        """True when every part of the credential triple is non-empty."""
        agent, private_key, user = self.credentials
        return all(
            isinstance(value, (str, bytes)) and len(value) > 0
            for value in (agent, private_key, user)
        )

    def _load_key(self) -> rsa.RSAPrivateKey:
        if self._key is not None:
            return self._key

        try:
            key = serialization.load_pem_private_key(
                _as_bytes(self.credentials.private_key),
                password=None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"Unable to load private key for agent {self.credentials.agent!r}: {e}")

        if not isinstance(key, rsa.RSAPrivateKey):
            raise ConfigurationError("Private key must be an RSA key")

        self._key = key
        return key

    def sign(self, payload: bytes) -> bytes:
        """
        Encrypt payload with the private key (PKCS#1 v1.5, block type 1).

        Args:
            payload: Bytes to sign, at most key size minus 11 bytes

        Returns:
            Raw signature, as long as the key modulus

        Raises:
            ConfigurationError: If the key is unusable or too small
        """
        key = self._load_key()
        modulus = key.public_key().public_numbers().n
        size = (modulus.bit_length() + 7) // 8

        if len(payload) > size - PADDING_OVERHEAD:
            raise ConfigurationError(
                f"Payload of {len(payload)} bytes is too long for a {size * 8} bit key"
            )

        block = b'\x00\x01' + b'\xff' * (size - 3 - len(payload)) + b'\x00' + payload
        signature = pow(int.from_bytes(block, 'big'), key.private_numbers().d, modulus)
        return signature.to_bytes(size, 'big')

    def sign_headers(self, headers: Optional[Dict[str, str]] = None, now: Optional[int] = None) -> Dict[str, str]:
        """
        Build request headers carrying the signed current time.

        Headers already supplied by the caller take precedence over the
        generated ones.

        Args:
            headers: Caller supplied headers
            now: Unix timestamp to sign, defaults to the current time

        Returns:
            Merged headers
        """
        headers = dict(headers or {})
        if not self.is_complete:
            logger.debug("Credentials incomplete, sending anonymous request")
            return headers

        timestamp = str(int(time.time()) if now is None else int(now))
        signature = self.sign(_digest(timestamp))

        return {
            HEADER_HMAC: base64.b64encode(signature).decode('ascii'),
            HEADER_TIME: timestamp,
            HEADER_USER: self.credentials.user,
            HEADER_AGENT: self.credentials.agent,
            **headers,
        }

    def sign_body(self, data: Optional[Dict[str, Any]] = None, now: Optional[int] = None) -> Optional[Dict[str, str]]:
        """
        Wrap a POST payload into a signed envelope.

        The payload plus the current time is JSON encoded and base64'd; the
        signature covers the SHA-256 digest of that base64 blob.

        Returns:
            {data, hmac, user, agent}, or None if credentials are incomplete
        """
        if not self.is_complete:
            logger.debug("Credentials incomplete, sending unsigned body")
            return None

        payload = dict(data or {})
        payload[HEADER_TIME] = int(time.time()) if now is None else int(now)
        blob = base64.b64encode(json.dumps(payload).encode('utf-8')).decode('ascii')
        signature = self.sign(_digest(blob))

        return {
            BODY_DATA: blob,
            HEADER_HMAC: base64.b64encode(signature).decode('ascii'),
            HEADER_USER: self.credentials.user,
            HEADER_AGENT: self.credentials.agent,
        }


def verify_signature(public_key: Union[str, bytes], payload: bytes, signature: bytes) -> bool:
    """
    Recover the signed payload with the public key and compare it.

    Mirrors what the server does on receipt of a signed request
    (openssl_public_decrypt).
    """
    try:
        key = serialization.load_pem_public_key(_as_bytes(public_key))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"Unable to load public key: {e}")

    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigurationError("Public key must be an RSA key")

    if len(signature) != (key.key_size + 7) // 8:
        return False

    try:
        recovered = key.recover_data_from_signature(signature, padding.PKCS1v15(), None)
    except InvalidSignature:
        return False

    return recovered == payload
