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

"""Configuration for pytest."""

import pytest
from datetime import datetime
from skywalking_mcp_server.client import SkyWalkingClient
from unittest.mock import AsyncMock, Mock


@pytest.fixture
def ctx():
    """Fixture to provide a mock MCP context without an HTTP request."""
    context = Mock()
    context.info = AsyncMock()
    context.warning = AsyncMock()
    context.error = AsyncMock()
    context.request_context.request = None
    return context


@pytest.fixture
def fixed_now():
    """A fixed reference time for duration calculations."""
    return datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def client():
    """SkyWalking client whose query method is mocked."""
    sw_client = SkyWalkingClient(base_url='http://oap:12800')
    sw_client.query = AsyncMock(return_value={})
    return sw_client
