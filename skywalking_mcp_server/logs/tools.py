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

"""SkyWalking log tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import build_duration, build_pagination, remove_null_values
from skywalking_mcp_server.consts import DEFAULT_DURATION_MINUTES, ERR_FAILED_TO_QUERY_LOGS
from skywalking_mcp_server.models import KeyValue
from typing import Annotated, Any, Dict, List, Optional


QUERY_LOGS = """
query queryLogs($condition: LogQueryCondition) {
  queryLogs(condition: $condition) {
    logs {
      serviceName
      serviceId
      serviceInstanceName
      serviceInstanceId
      endpointName
      endpointId
      traceId
      timestamp
      contentType
      content
      tags { key value }
    }
  }
}
"""


def build_log_query_condition(
    service_id: Optional[str] = None,
    service_instance_id: Optional[str] = None,
    endpoint_id: Optional[str] = None,
    trace_id: Optional[str] = None,
    tags: Optional[List[KeyValue]] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    step: Optional[str] = None,
    cold: bool = False,
    page_num: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Dict[str, Any]:
    """Build a ``LogQueryCondition`` input object, defaulting to the last 30 minutes."""
    condition = remove_null_values(
        {
            'serviceId': service_id,
            'serviceInstanceId': service_instance_id,
            'endpointId': endpoint_id,
        }
    )
    if trace_id:
        condition['relatedTrace'] = {'traceId': trace_id}
    condition['queryDuration'] = build_duration(
        start, end, step, cold, DEFAULT_DURATION_MINUTES
    ).to_variables()
    condition['paging'] = build_pagination(page_num, page_size).to_variables()
    if tags:
        condition['tags'] = [{'key': tag.key, 'value': tag.value} for tag in tags]
    return condition


class LogTools:
    """SkyWalking log tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the log tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all log tools with the MCP server."""
        mcp.tool(
            name='query_logs',
            annotations=ToolAnnotations(title='Query logs from SkyWalking OAP', readOnlyHint=True),
        )(self.query_logs)

    async def query_logs(
        self,
        ctx: Context,
        service_id: Annotated[Optional[str], Field(description='Service ID to filter logs.')] = None,
        service_instance_id: Annotated[
            Optional[str], Field(description='Service instance ID to filter logs.')
        ] = None,
        endpoint_id: Annotated[
            Optional[str], Field(description='Endpoint ID to filter logs.')
        ] = None,
        trace_id: Annotated[
            Optional[str], Field(description='Only return logs related to this trace.')
        ] = None,
        tags: Annotated[
            Optional[List[KeyValue]],
            Field(description='Log tags to filter by, e.g. [{"key": "level", "value": "ERROR"}].'),
        ] = None,
        start: Annotated[
            Optional[str],
            Field(description='Start time: "now", a relative offset like "-1h" or an absolute time.'),
        ] = None,
        end: Annotated[Optional[str], Field(description='End time, same formats as start.')] = None,
        step: Annotated[
            Optional[str], Field(description='SECOND, MINUTE, HOUR or DAY.')
        ] = None,
        cold: Annotated[bool, Field(description='Whether to query cold-stage storage.')] = False,
        page_num: Annotated[Optional[int], Field(description='Page number, default 1.')] = None,
        page_size: Annotated[
            Optional[int], Field(description='Logs per page, default 15.')
        ] = None,
    ) -> Dict[str, Any]:
        """Query logs collected by SkyWalking OAP.

        Usage: Filter by service, instance, endpoint, related trace or tags. Without
        start and end the last 30 minutes are searched. Combine trace_id with
        get_trace_details to correlate logs with spans.

        Returns:
            Dict[str, Any]: The ``queryLogs`` result, a ``logs`` list with service,
            endpoint, trace ID, timestamp, content and tags of every entry.
        """
        try:
            condition = build_log_query_condition(
                service_id=service_id,
                service_instance_id=service_instance_id,
                endpoint_id=endpoint_id,
                trace_id=trace_id,
                tags=tags,
                start=start,
                end=end,
                step=step,
                cold=cold,
                page_num=page_num,
                page_size=page_size,
            )

            logger.info(f'Querying logs with condition {condition}')
            try:
                data = await self.client.query(ctx, QUERY_LOGS, {'condition': condition})
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_LOGS.format(e)) from e

            return data.get('queryLogs') or {'logs': []}
        except Exception as e:
            logger.error(f'Error in query_logs: {str(e)}')
            await ctx.error(f'Error querying logs: {str(e)}')
            raise
