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

"""SkyWalking alarm tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import build_pagination, resolve_duration
from skywalking_mcp_server.consts import (
    DEFAULT_LIST_PAGE_SIZE,
    ERR_FAILED_TO_QUERY_ALARMS,
    ERR_NEGATIVE_PAGE_SIZE,
)
from skywalking_mcp_server.models import Scope
from typing import Annotated, Any, Dict, Optional


QUERY_ALARMS = """
query queryAlarms($scope: Scope, $keyword: String, $duration: Duration!, $paging: Pagination!) {
  alarms: queryAlarms(scope: $scope, keyword: $keyword, duration: $duration, paging: $paging) {
    id
    keyword
    scope
    startTime
    endTime
    alarmMessage
    tags { key value }
  }
}
"""


def build_alarm_variables(
    scope: Optional[str] = None,
    keyword: Optional[str] = None,
    duration: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    page_size: Optional[int] = None,
    page_num: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the variables of the ``queryAlarms`` query.

    Raises:
        ValueError: If page_size is negative.
    """
    if page_size is None or page_size == 0:
        page_size = DEFAULT_LIST_PAGE_SIZE
    if page_size < 0:
        raise ValueError(ERR_NEGATIVE_PAGE_SIZE)

    variables: Dict[str, Any] = {
        'duration': resolve_duration(duration, start, end, None).to_variables(),
        'paging': build_pagination(page_num, page_size).to_variables(),
    }
    if scope:
        if Scope.is_valid(scope):
            variables['scope'] = scope
        else:
            logger.warning(f'Ignoring unknown alarm scope {scope}')
    if keyword:
        variables['keyword'] = keyword
    return variables


class AlarmTools:
    """SkyWalking alarm tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the alarm tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all alarm tools with the MCP server."""
        mcp.tool(
            name='query_alarms',
            annotations=ToolAnnotations(title='Query alarms', readOnlyHint=True),
        )(self.query_alarms)

    async def query_alarms(
        self,
        ctx: Context,
        scope: Annotated[
            Optional[str],
            Field(
                description=(
                    'Scope of the alarmed entity: All, Service, ServiceInstance, Endpoint, '
                    'Process, ServiceRelation, ServiceInstanceRelation, EndpointRelation or '
                    'ProcessRelation. Unknown scopes are ignored.'
                )
            ),
        ] = None,
        keyword: Annotated[
            Optional[str], Field(description='Keyword to search for in alarm messages.')
        ] = None,
        duration: Annotated[
            Optional[str],
            Field(description='Window relative to now, e.g. "-1h" or "-7d".'),
        ] = None,
        start: Annotated[Optional[str], Field(description='Start time, used without duration.')] = None,
        end: Annotated[Optional[str], Field(description='End time, used without duration.')] = None,
        page_size: Annotated[
            Optional[int], Field(description='Alarms per page. Default is 20.')
        ] = DEFAULT_LIST_PAGE_SIZE,
        page_num: Annotated[Optional[int], Field(description='Page number, default 1.')] = None,
    ) -> Dict[str, Any]:
        """Query alarms fired by the SkyWalking alarm rules.

        Usage: Use this tool to see which services, instances or endpoints breached an
        alarm rule. Without a duration or start/end the last 30 minutes are searched.

        Example:
            {"scope": "Service", "keyword": "response time", "duration": "-1h"}

        Returns:
            Dict[str, Any]: The GraphQL ``data`` object holding the ``alarms`` result.
        """
        try:
            variables = build_alarm_variables(
                scope, keyword, duration, start, end, page_size, page_num
            )

            logger.info(f'Querying alarms with {variables}')
            try:
                return await self.client.query(ctx, QUERY_ALARMS, variables)
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_ALARMS.format(e)) from e
        except Exception as e:
            logger.error(f'Error in query_alarms: {str(e)}')
            await ctx.error(f'Error querying alarms: {str(e)}')
            raise
