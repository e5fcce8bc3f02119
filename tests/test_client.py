# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the SkyWalking GraphQL client."""

import httpx
import json
import pytest
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from unittest.mock import AsyncMock, MagicMock, Mock, PropertyMock, patch


def _mock_http(response=None, side_effect=None):
    mock_client = AsyncMock()
    post = mock_client.__aenter__.return_value.post
    if side_effect is not None:
        post.side_effect = side_effect
    else:
        post.return_value = response
    return mock_client


def _response(status_code=200, body=None, text=''):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestResolveUrl:
    """Tests for picking the OAP URL of a request."""

    def test_configured_url_without_context(self):
        """Test that the configured URL is used outside of a request."""
        client = SkyWalkingClient(base_url='http://oap:12800')
        assert client.resolve_url(None) == 'http://oap:12800/graphql'

    def test_configured_url_without_request(self, ctx):
        """Test that the configured URL is used over stdio."""
        client = SkyWalkingClient(base_url='http://oap:12800/')
        assert client.resolve_url(ctx) == 'http://oap:12800/graphql'

    def test_header_overrides_configured_url(self):
        """Test that the SW-URL header wins over the configured URL."""
        ctx = Mock()
        ctx.request_context.request.headers = {'SW-URL': 'http://other-oap:12800'}
        client = SkyWalkingClient(base_url='http://oap:12800')
        assert client.resolve_url(ctx) == 'http://other-oap:12800/graphql'

    def test_empty_header_is_ignored(self):
        """Test that an empty SW-URL header falls back to the configured URL."""
        ctx = Mock()
        ctx.request_context.request.headers = {'SW-URL': ''}
        client = SkyWalkingClient(base_url='http://oap:12800')
        assert client.resolve_url(ctx) == 'http://oap:12800/graphql'

    def test_context_outside_request(self):
        """Test that a context without an active request is tolerated."""
        ctx = Mock()
        type(ctx).request_context = PropertyMock(side_effect=ValueError('outside of a request'))
        client = SkyWalkingClient(base_url='http://oap:12800')
        assert client.resolve_url(ctx) == 'http://oap:12800/graphql'


@pytest.mark.asyncio
class TestQuery:
    """Tests for executing GraphQL queries."""

    async def test_query_success(self, ctx):
        """Test that the data member is returned."""
        mock_client = _mock_http(_response(body={'data': {'trace': {'spans': []}}}))
        with patch('httpx.AsyncClient', return_value=mock_client) as mock_async_client:
            client = SkyWalkingClient(base_url='http://oap:12800', timeout=5.0)
            result = await client.query(ctx, 'query { x }', {'traceId': 'abc'})

        assert result == {'trace': {'spans': []}}
        mock_async_client.assert_called_once_with(timeout=5.0)
        post = mock_client.__aenter__.return_value.post
        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == 'http://oap:12800/graphql'
        assert kwargs['json'] == {'query': 'query { x }', 'variables': {'traceId': 'abc'}}
        assert kwargs['headers']['Content-Type'] == 'application/json'
        assert kwargs['headers']['User-Agent'].startswith('skywalking-mcp-server/')

    async def test_query_without_variables(self, ctx):
        """Test that missing variables are sent as an empty object."""
        mock_client = _mock_http(_response(body={'data': {}}))
        with patch('httpx.AsyncClient', return_value=mock_client):
            await SkyWalkingClient().query(ctx, 'query { x }')

        kwargs = mock_client.__aenter__.return_value.post.call_args[1]
        assert kwargs['json']['variables'] == {}

    async def test_query_null_data(self, ctx):
        """Test that a null data member becomes an empty dict."""
        mock_client = _mock_http(_response(body={'data': None}))
        with patch('httpx.AsyncClient', return_value=mock_client):
            assert await SkyWalkingClient().query(ctx, 'query { x }') == {}

    async def test_transport_error(self, ctx):
        """Test that transport failures are wrapped."""
        mock_client = _mock_http(side_effect=httpx.ConnectError('connection refused'))
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert 'failed to execute HTTP request: connection refused' in str(exc_info.value)

    async def test_non_200_status(self, ctx):
        """Test that non-200 responses report the status and body."""
        mock_client = _mock_http(_response(status_code=500, text='internal error'))
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert str(exc_info.value) == 'HTTP request failed with status: 500, body: internal error'

    async def test_undecodable_body(self, ctx):
        """Test that invalid JSON is reported."""
        mock_client = _mock_http(
            _response(body=json.JSONDecodeError('Expecting value', 'oops', 0))
        )
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert str(exc_info.value).startswith('failed to decode GraphQL response:')

    async def test_non_object_body(self, ctx):
        """Test that a JSON body that is not an object is reported."""
        mock_client = _mock_http(_response(body=['not', 'an', 'object']))
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert 'expected a JSON object' in str(exc_info.value)

    async def test_graphql_errors(self, ctx):
        """Test that GraphQL errors are joined into one message."""
        body = {
            'data': None,
            'errors': [{'message': 'first problem'}, {'message': 'second problem'}],
        }
        mock_client = _mock_http(_response(body=body))
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert str(exc_info.value) == 'GraphQL errors: first problem, second problem'

    async def test_graphql_string_errors(self, ctx):
        """Test that plain string error entries are reported as query errors."""
        body = {'data': None, 'errors': ['plain failure', {'message': 'object failure'}]}
        mock_client = _mock_http(_response(body=body))
        with patch('httpx.AsyncClient', return_value=mock_client):
            with pytest.raises(SkyWalkingQueryError) as exc_info:
                await SkyWalkingClient().query(ctx, 'query { x }')

        assert str(exc_info.value) == 'GraphQL errors: plain failure, object failure'

    async def test_query_uses_sw_url_header(self):
        """Test that the SW-URL header of the request selects the OAP."""
        ctx = Mock()
        ctx.request_context.request.headers = {'SW-URL': 'http://tenant-oap:12800'}
        mock_client = _mock_http(_response(body={'data': {'ok': True}}))
        with patch('httpx.AsyncClient', return_value=mock_client):
            await SkyWalkingClient(base_url='http://oap:12800').query(ctx, 'query { x }')

        args = mock_client.__aenter__.return_value.post.call_args[0]
        assert args[0] == 'http://tenant-oap:12800/graphql'
