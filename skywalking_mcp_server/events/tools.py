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

"""SkyWalking event tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import build_pagination, resolve_duration
from skywalking_mcp_server.consts import (
    DEFAULT_LIST_PAGE_SIZE,
    ERR_FAILED_TO_QUERY_EVENTS,
    ERR_NEGATIVE_PAGE_SIZE,
    EVENT_LEVELS,
)
from typing import Annotated, Any, Dict, Optional


QUERY_EVENTS = """
query queryEvents($source: String, $level: EventLevel, $type: String, $duration: Duration!, $paging: Pagination!) {
  events: queryEvents(source: $source, level: $level, type: $type, duration: $duration, paging: $paging) {
    uuid
    event
    message
    level
    startTime
    endTime
    type
    source
    parameters { key value }
  }
}
"""


def build_event_variables(
    source: Optional[str] = None,
    level: Optional[str] = None,
    event_type: Optional[str] = None,
    duration: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    page_size: Optional[int] = None,
    page_num: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the variables of the ``queryEvents`` query.

    Levels other than Normal, Warning and Critical are dropped.
    """
    if page_size is None or page_size == 0:
        page_size = DEFAULT_LIST_PAGE_SIZE
    if page_size < 0:
        raise ValueError(ERR_NEGATIVE_PAGE_SIZE)

    variables: Dict[str, Any] = {
        'duration': resolve_duration(duration, start, end, None).to_variables(),
        'paging': build_pagination(page_num, page_size).to_variables(),
    }
    if source:
        variables['source'] = source
    if level:
        if level in EVENT_LEVELS:
            variables['level'] = level
        else:
            logger.warning(f'Ignoring unknown event level {level}')
    if event_type:
        variables['type'] = event_type
    return variables


class EventTools:
    """SkyWalking event tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the event tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all event tools with the MCP server."""
        mcp.tool(
            name='query_events',
            annotations=ToolAnnotations(title='Query events', readOnlyHint=True),
        )(self.query_events)

    async def query_events(
        self,
        ctx: Context,
        source: Annotated[
            Optional[str], Field(description='Event source, e.g. a service name.')
        ] = None,
        level: Annotated[
            Optional[str], Field(description="Event level: 'Normal', 'Warning' or 'Critical'.")
        ] = None,
        type: Annotated[
            Optional[str], Field(description='Event type, e.g. Start, Upgrade or Shutdown.')
        ] = None,
        duration: Annotated[
            Optional[str], Field(description='Window relative to now, e.g. "-1h".')
        ] = None,
        start: Annotated[Optional[str], Field(description='Start time, used without duration.')] = None,
        end: Annotated[Optional[str], Field(description='End time, used without duration.')] = None,
        page_size: Annotated[
            Optional[int], Field(description='Events per page. Default is 20.')
        ] = DEFAULT_LIST_PAGE_SIZE,
        page_num: Annotated[Optional[int], Field(description='Page number, default 1.')] = None,
    ) -> Dict[str, Any]:
        """Query events such as deployments, restarts and scaling reported to SkyWalking.

        Usage: Correlate events with alarms or metric changes to find what changed
        around an incident. Without a duration or start/end the last 30 minutes are
        searched.

        Returns:
            Dict[str, Any]: The GraphQL ``data`` object holding the ``events`` result.
        """
        try:
            variables = build_event_variables(
                source, level, type, duration, start, end, page_size, page_num
            )

            logger.info(f'Querying events with {variables}')
            try:
                return await self.client.query(ctx, QUERY_EVENTS, variables)
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_EVENTS.format(e)) from e
        except Exception as e:
            logger.error(f'Error in query_events: {str(e)}')
            await ctx.error(f'Error querying events: {str(e)}')
            raise
