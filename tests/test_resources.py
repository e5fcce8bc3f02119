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

"""Tests for the MQE resources."""

import json
import pytest
from skywalking_mcp_server.client import SkyWalkingQueryError
from skywalking_mcp_server.mqe.tools import QUERY_LIST_METRICS, MQETools
from skywalking_mcp_server.resources.mqe_docs import MQEResources
from skywalking_mcp_server.static import MQE_AI_PROMPT, MQE_EXAMPLES, MQE_SYNTAX
from unittest.mock import MagicMock


def test_static_documents_are_loaded():
    """Test that the packaged documents are read."""
    assert MQE_SYNTAX.strip()
    assert MQE_AI_PROMPT.strip()
    examples = json.loads(MQE_EXAMPLES)['examples']
    assert examples
    assert all('expression' in example for example in examples)


def test_register():
    """Test that the four resources are registered."""
    mcp = MagicMock()
    MQEResources(MQETools(MagicMock())).register(mcp)
    uris = [call.kwargs['uri'] for call in mcp.resource.call_args_list]
    assert uris == [
        'mqe://docs/syntax',
        'mqe://docs/examples',
        'mqe://metrics/available',
        'mqe://docs/ai_prompt',
    ]


@pytest.mark.asyncio
class TestMQEResources:
    """Tests for reading the resources."""

    async def test_documents(self, client):
        """Test that the documents are served as packaged."""
        resources = MQEResources(MQETools(client))
        assert await resources.mqe_syntax() == MQE_SYNTAX
        assert await resources.mqe_examples() == MQE_EXAMPLES
        assert await resources.mqe_ai_prompt() == MQE_AI_PROMPT

    async def test_available_metrics(self, ctx, client):
        """Test that the live metric list is rendered as JSON."""
        metrics = {'listMetrics': [{'name': 'service_cpm', 'type': 'REGULAR_VALUE'}]}
        client.query.return_value = metrics
        mcp = MagicMock()
        mcp.get_context.return_value = ctx
        resources = MQEResources(MQETools(client))
        resources.register(mcp)

        result = await resources.available_metrics()

        assert json.loads(result) == metrics
        client.query.assert_awaited_once_with(ctx, QUERY_LIST_METRICS, {})

    async def test_available_metrics_error(self, client):
        """Test that OAP failures are raised."""
        client.query.side_effect = SkyWalkingQueryError('boom')
        resources = MQEResources(MQETools(client))
        with pytest.raises(SkyWalkingQueryError) as exc_info:
            await resources.available_metrics()
        assert str(exc_info.value) == 'failed to list metrics: boom'
