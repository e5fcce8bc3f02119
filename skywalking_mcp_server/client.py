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

"""GraphQL client for the SkyWalking OAP query protocol."""

import httpx
import json
from loguru import logger
from mcp.server.fastmcp import Context
from skywalking_mcp_server import MCP_SERVER_VERSION
from skywalking_mcp_server.common import finalize_url
from skywalking_mcp_server.consts import DEFAULT_SW_URL, DEFAULT_TIMEOUT, SW_URL_HEADER
from typing import Any, Dict, Optional


class SkyWalkingQueryError(Exception):
    """Raised when OAP cannot answer a GraphQL query."""


class NotFoundError(Exception):
    """Raised when a query succeeds but yields nothing to report."""


class SkyWalkingClient:
    """Sends GraphQL queries to SkyWalking OAP.

    The base URL is resolved per request: an ``SW-URL`` header on the incoming HTTP
    request wins over the configured URL, so one HTTP server can front several OAP
    clusters. Over stdio there is no request, and the configured URL is used.
    """

    def __init__(self, base_url: str = DEFAULT_SW_URL, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the client with a base URL and a request timeout."""
        self.base_url = base_url
        self.timeout = timeout

    def resolve_url(self, ctx: Optional[Context] = None) -> str:
        """Return the GraphQL endpoint to use for the current request."""
        url = self.base_url
        request = None
        if ctx is not None:
            try:
                request = ctx.request_context.request
            except (AttributeError, ValueError):
                # No active request, e.g. when called outside of a tool invocation
                request = None
        if request is not None:
            header_url = request.headers.get(SW_URL_HEADER)
            if header_url:
                url = header_url
        return finalize_url(url)

    async def query(
        self,
        ctx: Optional[Context],
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` member.

        Args:
            ctx: MCP context of the current tool call, used to pick up the SW-URL header.
            query: GraphQL document.
            variables: Variables of the document.

        Returns:
            The ``data`` object of the response, or an empty dict when it is null.

        Raises:
            SkyWalkingQueryError: On transport failures, non-200 responses, undecodable
                bodies or GraphQL errors.
        """
        url = self.resolve_url(ctx)
        payload = {'query': query, 'variables': variables or {}}
        headers = {
            'Content-Type': 'application/json',
            'User-Agent': f'skywalking-mcp-server/{MCP_SERVER_VERSION}',
        }

        logger.debug(f'Sending GraphQL request to {url}')
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise SkyWalkingQueryError(f'failed to execute HTTP request: {str(e)}') from e

        if response.status_code != 200:
            raise SkyWalkingQueryError(
                f'HTTP request failed with status: {response.status_code}, body: {response.text}'
            )

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise SkyWalkingQueryError(f'failed to decode GraphQL response: {str(e)}') from e
        if not isinstance(body, dict):
            raise SkyWalkingQueryError('failed to decode GraphQL response: expected a JSON object')

        errors = body.get('errors') or []
        if errors:
            messages = [
                error.get('message', '') if isinstance(error, dict) else str(error)
                for error in errors
            ]
            raise SkyWalkingQueryError(f'GraphQL errors: {", ".join(messages)}')

        return body.get('data') or {}
