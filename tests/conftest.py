"""
Shared fixtures: RSA key material and a recording fake transport.
"""

import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from allplayers.transport import Response


class FakeTransport:
    """Transport returning queued responses and recording every request."""

    def __init__(self):
        self.responses = []
        self.calls = []
        self.closed = False

    def queue(self, payload=None, status=200, body=None):
        if body is None:
            body = b"" if payload is None else json.dumps(payload).encode('utf-8')
        self.responses.append(Response(status, {'Content-Type': 'application/json'}, body))
        return self

    def perform_request(self, method, url, headers=None, body=None, allow_redirects=True):
        self.calls.append({
            'method': method,
            'url': url,
            'headers': headers or {},
            'body': body,
            'allow_redirects': allow_redirects,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return self.responses.pop(0)

    @property
    def last(self):
        return self.calls[-1]

    def last_json(self):
        return json.loads(self.last['body'])

    def close(self):
        self.closed = True


@pytest.fixture(scope="session")
def rsa_key():
    """Generate an RSA key once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_pem(rsa_key):
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode('ascii')


@pytest.fixture(scope="session")
def public_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode('ascii')


@pytest.fixture
def transport():
    return FakeTransport()
