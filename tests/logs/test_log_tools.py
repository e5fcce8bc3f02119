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

"""Tests for the log tools."""

import pytest
from skywalking_mcp_server.client import SkyWalkingQueryError
from skywalking_mcp_server.logs.tools import QUERY_LOGS, LogTools, build_log_query_condition
from skywalking_mcp_server.models import KeyValue


class TestBuildLogQueryCondition:
    """Tests for building the log query condition."""

    def test_defaults(self):
        """Test the default window and paging."""
        condition = build_log_query_condition()

        assert 'relatedTrace' not in condition
        assert 'tags' not in condition
        assert 'serviceId' not in condition
        assert condition['paging'] == {'pageNum': 1, 'pageSize': 15}
        assert condition['queryDuration']['step'] == 'SECOND'

    def test_all_filters(self):
        """Test that every filter is forwarded."""
        condition = build_log_query_condition(
            service_id='svc',
            service_instance_id='inst',
            endpoint_id='ep',
            trace_id='t1',
            tags=[KeyValue(key='level', value='ERROR')],
            start='-2h',
            end='now',
            step='MINUTE',
            cold=True,
            page_num=2,
            page_size=50,
        )

        assert condition['serviceId'] == 'svc'
        assert condition['serviceInstanceId'] == 'inst'
        assert condition['endpointId'] == 'ep'
        assert condition['relatedTrace'] == {'traceId': 't1'}
        assert condition['tags'] == [{'key': 'level', 'value': 'ERROR'}]
        assert condition['queryDuration']['step'] == 'MINUTE'
        assert condition['queryDuration']['coldStage'] is True
        assert condition['paging'] == {'pageNum': 2, 'pageSize': 50}


@pytest.mark.asyncio
class TestQueryLogs:
    """Tests for query_logs."""

    async def test_query_logs(self, ctx, client):
        """Test that the queryLogs result is returned."""
        logs = {'logs': [{'serviceName': 'frontend', 'content': 'boom', 'traceId': 't1'}]}
        client.query.return_value = {'queryLogs': logs}

        result = await LogTools(client).query_logs(ctx, service_id='svc', trace_id='t1')

        assert result == logs
        args = client.query.call_args[0]
        assert args[1] == QUERY_LOGS
        assert args[2]['condition']['serviceId'] == 'svc'
        assert args[2]['condition']['relatedTrace'] == {'traceId': 't1'}

    async def test_empty_result(self, ctx, client):
        """Test that a null result becomes an empty log list."""
        client.query.return_value = {'queryLogs': None}
        assert await LogTools(client).query_logs(ctx) == {'logs': []}

    async def test_backend_error(self, ctx, client):
        """Test that backend failures are wrapped."""
        client.query.side_effect = SkyWalkingQueryError('HTTP request failed with status: 500')
        with pytest.raises(SkyWalkingQueryError) as exc_info:
            await LogTools(client).query_logs(ctx, service_id='svc')
        assert str(exc_info.value) == 'failed to query logs: HTTP request failed with status: 500'
        ctx.error.assert_awaited_once()
