"""
Unit tests for the generic resource client and the core API client.
"""

import base64
import json
from urllib.parse import parse_qs, urlsplit

import pytest

from allplayers import (
    BadResponseError,
    Client,
    ConfigurationError,
    HttpClient,
    TransportError,
)
from allplayers.client import compact, flatten_query
from allplayers.constants import HEADER_AGENT, HEADER_HMAC, HEADER_TIME, HEADER_USER


def query_of(call):
    """Parse the query string of a recorded call."""
    return parse_qs(urlsplit(call['url']).query)


def path_of(call):
    return urlsplit(call['url']).path


class TestHttpClient:
    """Test generic dispatch, decoding and pagination."""

    @pytest.fixture
    def client(self, transport):
        """Create test client."""
        return HttpClient("https://www.allplayers.com/", transport=transport)

    @pytest.fixture
    def signed_client(self, client, private_pem):
        client.set_credentials("test-agent", private_pem, "user-uuid")
        return client

    def test_init_default_config(self, transport):
        """Test client initialization with default config."""
        client = HttpClient("https://www.allplayers.com", transport=transport)

        assert client.base_url == "https://www.allplayers.com"
        assert client.config['timeout'] == 30
        assert client.config['endpoint'] == "/api/v1/rest"
        assert client.config['post_sign_mode'] == "header"
        assert client.url_prefix == "https://www.allplayers.com/api/v1/rest"

    def test_init_custom_config(self, transport):
        """Test client initialization with custom config."""
        client = HttpClient(
            "https://example.com/",
            transport=transport,
            timeout=60,
            endpoint="/api/v2",
            post_sign_mode="body",
        )

        assert client.base_url == "https://example.com"
        assert client.config['timeout'] == 60
        assert client.url_prefix == "https://example.com/api/v2"
        assert client.config['post_sign_mode'] == "body"

    def test_init_invalid_config(self, transport):
        """Test client initialization with invalid config."""
        with pytest.raises(ConfigurationError):
            HttpClient("", transport=transport)

        with pytest.raises(ConfigurationError):
            HttpClient("https://example.com", transport=transport, timeout=0)

        with pytest.raises(ConfigurationError):
            HttpClient("https://example.com", transport=transport, endpoint="api")

        with pytest.raises(ConfigurationError):
            HttpClient("https://example.com", transport=transport, post_sign_mode="cookie")

    def test_default_transport_uses_timeout(self):
        """Test that the default transport gets the configured timeout."""
        client = HttpClient("https://example.com", timeout=12)

        assert client.transport.timeout == 12
        client.close()

    def test_flatten_query(self):
        """Test nested params are flattened with bracket keys."""
        pairs = flatten_query({
            'filters': {'status': [1, 0], 'title': 'Cup'},
            'show_disabled': False,
            'skip': None,
            'page': 2,
        })

        assert pairs == [
            ('filters[status][0]', '1'),
            ('filters[status][1]', '0'),
            ('filters[title]', 'Cup'),
            ('show_disabled', '0'),
            ('page', '2'),
        ]

    def test_compact(self):
        """Test empty values are dropped."""
        assert compact({'a': 1, 'b': None, 'c': False, 'd': 0, 'e': '', 'f': [], 'g': 'x'}) == {'a': 1, 'g': 'x'}

    def test_build_url(self, client):
        """Test URL building from path and query."""
        url = client.build_url("/groups/abc", {'fields': 'title'})

        assert url == "https://www.allplayers.com/api/v1/rest/groups/abc?fields=title"

    def test_get_anonymous(self, client, transport):
        """Test GET without credentials sends no auth headers."""
        transport.queue({'uuid': 'abc'})

        result = client.get('groups/abc', {'fields': 'title'})

        assert result == {'uuid': 'abc'}
        call = transport.last
        assert call['method'] == 'GET'
        assert path_of(call) == "/api/v1/rest/groups/abc"
        assert query_of(call) == {'fields': ['title']}
        assert call['body'] is None
        for header in (HEADER_HMAC, HEADER_TIME, HEADER_USER, HEADER_AGENT):
            assert header not in call['headers']

    def test_get_signed_headers(self, signed_client, transport):
        """Test GET with credentials carries the signed headers."""
        transport.queue([])

        signed_client.get('groups')

        headers = transport.last['headers']
        assert headers[HEADER_USER] == "user-uuid"
        assert headers[HEADER_AGENT] == "test-agent"
        assert headers[HEADER_TIME].isdigit()
        assert headers[HEADER_HMAC]

    def test_caller_headers_override_auth(self, signed_client, transport):
        """Test that explicitly passed headers win."""
        transport.queue([])

        signed_client.get('groups', headers={'user': 'other-user'})

        assert transport.last['headers'][HEADER_USER] == "other-user"

    def test_clear_credentials(self, signed_client, transport):
        """Test going back to anonymous requests."""
        transport.queue([])

        signed_client.clear_credentials()
        signed_client.get('groups')

        assert HEADER_HMAC not in transport.last['headers']

    def test_bad_key_fails_before_sending(self, client, transport):
        """Test a broken key surfaces at call time without sending anything."""
        client.set_credentials("test-agent", "broken", "user-uuid")

        with pytest.raises(ConfigurationError):
            client.get('groups')

        assert transport.calls == []

    def test_post_json_body_header_signed(self, signed_client, transport):
        """Test POST in header mode sends params as JSON."""
        transport.queue({'uuid': 'new'})

        result = signed_client.post('groups', {'title': 'Team'})

        assert result == {'uuid': 'new'}
        call = transport.last
        assert call['method'] == 'POST'
        assert call['headers']['Content-Type'] == 'application/json'
        assert HEADER_HMAC in call['headers']
        assert json.loads(call['body']) == {'title': 'Team'}

    def test_post_body_mode(self, signed_client, transport):
        """Test POST in body mode sends only the signed envelope."""
        transport.queue({'uuid': 'new'})

        signed_client.post('groups', {'title': 'Team'}, sign_mode='body')

        call = transport.last
        body = json.loads(call['body'])
        assert set(body) == {'data', 'hmac', 'user', 'agent'}
        payload = json.loads(base64.b64decode(body['data']))
        assert payload['title'] == 'Team'
        assert isinstance(payload['time'], int)
        assert HEADER_HMAC not in call['headers']

    def test_put_and_delete(self, client, transport):
        """Test PUT sends a body and DELETE a query string."""
        transport.queue({'uuid': 'abc'}).queue(None)

        client.put('groups/abc', {'title': 'New'})
        client.delete('groups/abc', {'force': True})

        put_call, delete_call = transport.calls
        assert put_call['method'] == 'PUT'
        assert json.loads(put_call['body']) == {'title': 'New'}
        assert delete_call['method'] == 'DELETE'
        assert query_of(delete_call) == {'force': ['1']}
        assert delete_call['body'] is None

    def test_allow_redirects_passed_through(self, client, transport):
        """Test the redirect flag reaches the transport."""
        transport.queue(None)

        client.get('groups', allow_redirects=False)

        assert transport.last['allow_redirects'] is False

    def test_empty_response_is_none(self, client, transport):
        transport.queue(None)

        assert client.get('groups') is None

    def test_non_json_response_is_text(self, client, transport):
        transport.queue(body=b"OK")

        assert client.get('ping') == "OK"

    def test_not_found_raises_bad_response(self, client, transport):
        """Test a 404 carries the status and JSON error body."""
        transport.queue({'error': 'Group not found'}, status=404)

        with pytest.raises(BadResponseError) as info:
            client.get('groups/missing')

        assert info.value.status_code == 404
        assert info.value.payload == {'error': 'Group not found'}

    def test_server_error_with_text_body(self, client, transport):
        """Test a non-JSON error body is attached as text."""
        transport.queue(status=500, body=b"Internal Server Error")

        with pytest.raises(BadResponseError) as info:
            client.post('groups', {})

        assert info.value.status_code == 500
        assert info.value.payload == "Internal Server Error"

    def test_transport_error_propagates(self, client):
        """Test transport failures reach the caller unmodified."""
        class BrokenTransport:
            def perform_request(self, *args, **kwargs):
                raise TransportError("connection refused")

        client.transport = BrokenTransport()

        with pytest.raises(TransportError):
            client.get('groups')

    def test_index_single_page(self, client, transport):
        """Test a numeric page issues exactly one call."""
        transport.queue([{'uuid': str(i)} for i in range(10)])

        items = client.index('groups', {'title': 'Cup'}, page=2, pagesize=10)

        assert len(items) == 10
        assert len(transport.calls) == 1
        assert query_of(transport.last) == {'title': ['Cup'], 'page': ['2'], 'pagesize': ['10']}

    def test_index_first_page_default(self, client, transport):
        transport.queue([])

        client.index('groups')

        assert query_of(transport.last) == {'page': ['0'], 'pagesize': ['10']}

    def test_index_fields(self, client, transport):
        """Test fields are passed to the server as a parameter."""
        transport.queue([])

        client.index('groups', fields=['uuid', 'title'])

        assert query_of(transport.last)['fields'] == ['uuid,title']

    def test_index_all_pages(self, client, transport):
        """Test '*' concatenates pages until a short page."""
        transport.queue([{'n': i} for i in range(10)])
        transport.queue([{'n': i} for i in range(10, 20)])
        transport.queue([{'n': i} for i in range(20, 27)])

        items = client.index('groups', page='*', pagesize=10)

        assert [item['n'] for item in items] == list(range(27))
        assert len(transport.calls) == 3
        assert [query_of(call)['page'] for call in transport.calls] == [['0'], ['1'], ['2']]

    def test_index_all_pages_stops_on_empty(self, client, transport):
        """Test an exact multiple of pagesize ends with an empty page."""
        transport.queue([{'n': i} for i in range(5)]).queue([])

        items = client.index('groups', page='*', pagesize=5)

        assert len(items) == 5
        assert len(transport.calls) == 2

    def test_index_all_pages_without_pagesize(self, client, transport):
        """Test pagesize 0 leaves the page size to the server."""
        transport.queue([{'n': 1}, {'n': 2}]).queue([])

        items = client.index('groups', page='*', pagesize=0)

        assert len(items) == 2
        assert 'pagesize' not in query_of(transport.calls[0])

    def test_index_all_pages_rejects_objects(self, client, transport):
        transport.queue({'error': 'unexpected'})

        with pytest.raises(BadResponseError):
            client.index('groups', page='*')

    @pytest.mark.parametrize("page", [-1, "2", 1.5, True, None])
    def test_index_invalid_page(self, client, page):
        with pytest.raises(ValueError):
            client.index('groups', page=page)

    def test_batch(self, client, transport):
        """Test batch submits every call in one request."""
        calls = [{'method': 'GET', 'path': 'groups/a'}, {'method': 'GET', 'path': 'groups/b'}]
        transport.queue([{'uuid': 'a'}, {'uuid': 'b'}])

        results = client.batch(calls)

        assert results == [{'uuid': 'a'}, {'uuid': 'b'}]
        assert len(transport.calls) == 1
        assert path_of(transport.last) == "/api/v1/rest/batch"
        assert transport.last_json() == {'batch': calls}

    def test_batch_keyed_results(self, client, transport):
        transport.queue({'0': {'uuid': 'a'}, '1': {'uuid': 'b'}})

        assert client.batch([{}, {}]) == [{'uuid': 'a'}, {'uuid': 'b'}]

    def test_batch_keyed_results_out_of_order(self, client, transport):
        """Test position keys are ordered numerically, not by arrival."""
        transport.queue({'10': {'uuid': 'k'}, '1': {'uuid': 'b'}, '0': {'uuid': 'a'}, '2': {'uuid': 'c'}})

        results = client.batch([{}] * 11)

        assert results[:3] == [{'uuid': 'a'}, {'uuid': 'b'}, {'uuid': 'c'}]
        assert results[10] == {'uuid': 'k'}
        assert results[3:10] == [None] * 7

    def test_batch_keyed_results_with_gap(self, client, transport):
        """Test missing positions stay aligned with their calls."""
        transport.queue({'0': {'uuid': 'a'}, '2': {'uuid': 'c'}})

        results = client.batch([{}, {}, {}])

        assert results == [{'uuid': 'a'}, None, {'uuid': 'c'}]

    def test_batch_missing_trailing_result(self, client, transport):
        transport.queue({'0': {'uuid': 'a'}})

        assert client.batch([{}, {}]) == [{'uuid': 'a'}, None]

    def test_batch_rejects_named_keys(self, client, transport):
        transport.queue({'error': 'oops'})

        with pytest.raises(BadResponseError):
            client.batch([{}])

    def test_batch_failure(self, client, transport):
        """Test a failed batch request is a single error."""
        transport.queue({'error': 'denied'}, status=403)

        with pytest.raises(BadResponseError) as info:
            client.batch([{'method': 'GET', 'path': 'groups/a'}])

        assert info.value.status_code == 403

    def test_context_manager(self, transport):
        """Test client as context manager."""
        with HttpClient("https://www.allplayers.com", transport=transport) as client:
            assert client.transport is transport

        assert transport.closed is True


class TestClient:
    """Test the core API endpoints."""

    @pytest.fixture
    def client(self, transport):
        return Client("https://www.allplayers.com", transport=transport)

    def test_posts_use_body_signing(self, client, transport, private_pem):
        """Test the core client signs POST bodies."""
        client.set_credentials("test-agent", private_pem, "user-uuid")
        transport.queue({'uuid': 'g1'})

        client.group_create({'title': 'Team'})

        body = transport.last_json()
        assert body['agent'] == "test-agent"
        assert json.loads(base64.b64decode(body['data']))['title'] == 'Team'

    def test_anonymous_post_is_plain_json(self, client, transport):
        """Test body signing falls back to a plain body without credentials."""
        transport.queue({'uuid': 'g1'})

        client.group_create({'title': 'Team'})

        assert transport.last_json() == {'title': 'Team'}

    def test_user_login(self, client, transport):
        transport.queue({'sessid': 'abc'})

        client.user_login("jane@example.com", "secret")

        assert path_of(transport.last) == "/api/v1/rest/users/login"
        assert transport.last_json() == {'username': "jane@example.com", 'password': "secret"}

    def test_user_create_user_drops_missing_password(self, client, transport):
        transport.queue({'uuid': 'u1'})

        client.user_create_user("Jane", "Doe", "jane@example.com", "F", "1990-01-02")

        assert transport.last_json() == {
            'firstname': "Jane",
            'lastname': "Doe",
            'email': "jane@example.com",
            'gender': "F",
            'birthday': "1990-01-02",
        }

    def test_users_index(self, client, transport):
        transport.queue([])

        client.users_index({'email': "jane@example.com"})

        assert path_of(transport.last) == "/api/v1/rest/users"
        assert query_of(transport.last)['email'] == ["jane@example.com"]

    def test_group_products(self, client, transport):
        """Test group products are listed with nested filters."""
        transport.queue([])

        client.group_products("g1", {'status': 1, 'type': ['product', 'donation']}, ['title'], page=3)

        query = query_of(transport.last)
        assert path_of(transport.last) == "/api/v1/rest/group/g1/products"
        assert query['filters[status]'] == ['1']
        assert query['filters[type][0]'] == ['product']
        assert query['filters[type][1]'] == ['donation']
        assert query['fields'] == ['title']
        assert query['page'] == ['3']
        assert query['pagesize'] == ['10']
