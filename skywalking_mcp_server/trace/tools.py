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

"""SkyWalking trace tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import build_pagination, parse_duration, remove_null_values
from skywalking_mcp_server.consts import (
    DEFAULT_TRACE_DURATION,
    DEFAULT_TRACE_PAGE_SIZE,
    ERR_FAILED_TO_QUERY_COLD_TRACE,
    ERR_FAILED_TO_QUERY_TRACE,
    ERR_FAILED_TO_QUERY_TRACES,
    ERR_INVALID_DURATION_RANGE,
    ERR_INVALID_QUERY_ORDER,
    ERR_INVALID_TRACE_STATE,
    ERR_MISSING_DURATION,
    ERR_MISSING_TRACE_ID,
    ERR_NEGATIVE_PAGE_NUM,
    ERR_NEGATIVE_PAGE_SIZE,
    ERR_NO_FILTER_CONDITION,
    QUERY_ORDER_DURATION,
    QUERY_ORDER_START_TIME,
    TRACE_STATE_ALL,
    TRACE_STATE_ERROR,
    TRACE_STATE_SUCCESS,
    VIEW_FULL,
)
from skywalking_mcp_server.models import KeyValue
from skywalking_mcp_server.trace.models import BasicTraceSummary, TraceSummary, TracesSummary
from skywalking_mcp_server.trace.views import process_trace_result, process_traces_result
from typing import Annotated, Any, Dict, List, Optional, Union


SPAN_FIELDS = """
      spans {
        traceId
        segmentId
        spanId
        parentSpanId
        refs { traceId parentSegmentId parentSpanId type }
        serviceCode
        serviceInstanceName
        startTime
        endTime
        endpointName
        type
        peer
        component
        isError
        layer
        tags { key value }
        logs { time data { key value } }
        attachedEvents {
          startTime { seconds nanos }
          event
          endTime { seconds nanos }
          tags { key value }
          summary { key value }
        }
      }
"""

QUERY_TRACE = (
    """
query queryTrace($traceId: ID!) {
  trace: queryTrace(traceId: $traceId) {"""
    + SPAN_FIELDS
    + """  }
}
"""
)

QUERY_COLD_TRACE = (
    """
query queryTraceFromColdStage($traceId: ID!, $duration: Duration!) {
  trace: queryTraceFromColdStage(traceId: $traceId, duration: $duration) {"""
    + SPAN_FIELDS
    + """  }
}
"""
)

QUERY_BASIC_TRACES = """
query queryTraces($condition: TraceQueryCondition!) {
  traces: queryBasicTraces(condition: $condition) {
    traces {
      segmentId
      endpointNames
      duration
      start
      isError
      traceIds
    }
  }
}
"""

_TRACE_STATES = {
    TRACE_STATE_SUCCESS: 'SUCCESS',
    TRACE_STATE_ERROR: 'ERROR',
    TRACE_STATE_ALL: 'ALL',
}
_QUERY_ORDERS = {
    QUERY_ORDER_START_TIME: 'BY_START_TIME',
    QUERY_ORDER_DURATION: 'BY_DURATION',
}

TraceResult = Union[TraceSummary, List[Dict[str, Any]], Dict[str, Any]]
TracesResult = Union[TracesSummary, List[BasicTraceSummary], Dict[str, Any]]


def validate_traces_query(
    service_id: Optional[str],
    service_instance_id: Optional[str],
    trace_id: Optional[str],
    endpoint_id: Optional[str],
    duration: Optional[str],
    min_trace_duration: Optional[int],
    max_trace_duration: Optional[int],
    page_size: Optional[int],
    page_num: Optional[int],
) -> None:
    """Reject trace list queries that OAP cannot answer meaningfully."""
    if not any(
        [
            service_id,
            service_instance_id,
            trace_id,
            endpoint_id,
            duration,
            min_trace_duration,
            max_trace_duration,
        ]
    ):
        raise ValueError(ERR_NO_FILTER_CONDITION)

    if min_trace_duration and max_trace_duration and min_trace_duration > max_trace_duration:
        raise ValueError(ERR_INVALID_DURATION_RANGE.format(min_trace_duration, max_trace_duration))

    if page_size is not None and page_size < 0:
        raise ValueError(ERR_NEGATIVE_PAGE_SIZE)
    if page_num is not None and page_num < 0:
        raise ValueError(ERR_NEGATIVE_PAGE_NUM)


def build_trace_query_condition(
    service_id: Optional[str] = None,
    service_instance_id: Optional[str] = None,
    trace_id: Optional[str] = None,
    endpoint_id: Optional[str] = None,
    duration: Optional[str] = None,
    min_trace_duration: Optional[int] = None,
    max_trace_duration: Optional[int] = None,
    trace_state: Optional[str] = None,
    query_order: Optional[str] = None,
    page_size: Optional[int] = None,
    page_num: Optional[int] = None,
    tags: Optional[List[KeyValue]] = None,
    cold: bool = False,
) -> Dict[str, Any]:
    """Translate tool parameters into a ``TraceQueryCondition`` input object.

    OAP needs either a query duration or a trace ID, so a one hour window is used
    when neither is given.
    """
    state = _TRACE_STATES.get(trace_state or TRACE_STATE_ALL)
    if state is None:
        raise ValueError(
            ERR_INVALID_TRACE_STATE.format(
                trace_state, TRACE_STATE_SUCCESS, TRACE_STATE_ERROR, TRACE_STATE_ALL
            )
        )
    order = _QUERY_ORDERS.get(query_order or QUERY_ORDER_START_TIME)
    if order is None:
        raise ValueError(
            ERR_INVALID_QUERY_ORDER.format(query_order, QUERY_ORDER_START_TIME, QUERY_ORDER_DURATION)
        )

    condition = remove_null_values(
        {
            'serviceId': service_id,
            'serviceInstanceId': service_instance_id,
            'traceId': trace_id,
            'endpointId': endpoint_id,
            'minTraceDuration': min_trace_duration if min_trace_duration and min_trace_duration > 0 else None,
            'maxTraceDuration': max_trace_duration if max_trace_duration and max_trace_duration > 0 else None,
        }
    )
    if tags:
        condition['tags'] = [{'key': tag.key, 'value': tag.value} for tag in tags]

    if duration:
        condition['queryDuration'] = parse_duration(duration, cold).to_variables()
    elif not trace_id:
        condition['queryDuration'] = parse_duration(DEFAULT_TRACE_DURATION, cold).to_variables()

    condition['traceState'] = state
    condition['queryOrder'] = order
    condition['paging'] = build_pagination(
        page_num, page_size or DEFAULT_TRACE_PAGE_SIZE
    ).to_variables()
    return condition


class TraceTools:
    """SkyWalking trace tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the trace tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all trace tools with the MCP server."""
        mcp.tool(
            name='get_trace_details',
            annotations=ToolAnnotations(title='Search a trace by TraceId', readOnlyHint=True),
        )(self.get_trace_details)

        mcp.tool(
            name='get_cold_trace_details',
            annotations=ToolAnnotations(title='Search a cold trace by TraceId', readOnlyHint=True),
        )(self.get_cold_trace_details)

        mcp.tool(
            name='query_traces',
            annotations=ToolAnnotations(
                title='Query traces with intelligent analysis', readOnlyHint=True
            ),
        )(self.query_traces)

    async def get_trace_details(
        self,
        ctx: Context,
        trace_id: Annotated[
            str,
            Field(description='The unique identifier of the trace to retrieve.'),
        ],
        view: Annotated[
            str,
            Field(
                description=(
                    "Level of detail: 'full' (default) returns every span, 'summary' returns "
                    "services, duration and error count, 'errors_only' returns only error spans."
                )
            ),
        ] = VIEW_FULL,
    ) -> TraceResult:
        """Get detailed information about a distributed trace from SkyWalking OAP.

        Usage: Use this tool when you need to analyze a specific trace by its trace ID.
        Trace IDs are typically found in logs, error messages or the results of
        query_traces. Start with the 'summary' view, switch to 'errors_only' when the
        summary shows errors, and use 'full' for span-by-span debugging.

        Args:
            ctx: The MCP context object for error handling and logging.
            trace_id: The trace ID to retrieve.
            view: One of 'full', 'summary' or 'errors_only'.

        Returns:
            The raw trace for 'full', a TraceSummary for 'summary', or the list of error
            spans for 'errors_only'.

        Example:
            result = await get_trace_details(ctx, trace_id="abc123", view="summary")
            print(result.services, result.total_duration_ms)
        """
        try:
            if not trace_id:
                raise ValueError(ERR_MISSING_TRACE_ID)
            view = view or VIEW_FULL

            logger.info(f'Querying trace {trace_id} with view {view}')
            try:
                data = await self.client.query(ctx, QUERY_TRACE, {'traceId': trace_id})
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_TRACE.format(trace_id, e)) from e

            return process_trace_result(trace_id, data.get('trace'), view)
        except Exception as e:
            logger.error(f'Error in get_trace_details: {str(e)}')
            await ctx.error(f'Error getting trace details: {str(e)}')
            raise

    async def get_cold_trace_details(
        self,
        ctx: Context,
        trace_id: Annotated[
            str,
            Field(description='The trace ID to retrieve from cold storage.'),
        ],
        duration: Annotated[
            str,
            Field(
                description=(
                    'Time window to search. Examples: "7d" (last 7 days), "-30m" (last 30 '
                    'minutes), "2h30m" (now until 2.5 hours from now).'
                )
            ),
        ],
        view: Annotated[
            str,
            Field(description="Level of detail: 'full' (default), 'summary' or 'errors_only'."),
        ] = VIEW_FULL,
    ) -> TraceResult:
        """Query BanyanDB cold storage for a trace that is no longer in hot storage.

        Only works with the BanyanDB storage backend and may be slower than hot storage
        queries. Use it for historical incident investigation or when get_trace_details
        reports that the trace was not found.

        Args:
            ctx: The MCP context object for error handling and logging.
            trace_id: The trace ID to retrieve.
            duration: Window to search, as a signed duration or legacy token.
            view: One of 'full', 'summary' or 'errors_only'.

        Returns:
            The trace rendered in the requested view.
        """
        try:
            if not trace_id:
                raise ValueError(ERR_MISSING_TRACE_ID)
            if not duration:
                raise ValueError(ERR_MISSING_DURATION)
            view = view or VIEW_FULL

            query_duration = parse_duration(duration, cold=True)
            logger.info(
                f'Querying cold trace {trace_id} between {query_duration.start} and {query_duration.end}'
            )
            try:
                data = await self.client.query(
                    ctx,
                    QUERY_COLD_TRACE,
                    {'traceId': trace_id, 'duration': query_duration.to_variables()},
                )
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(
                    ERR_FAILED_TO_QUERY_COLD_TRACE.format(trace_id, e)
                ) from e

            return process_trace_result(trace_id, data.get('trace'), view)
        except Exception as e:
            logger.error(f'Error in get_cold_trace_details: {str(e)}')
            await ctx.error(f'Error getting cold trace details: {str(e)}')
            raise

    async def query_traces(
        self,
        ctx: Context,
        service_id: Annotated[
            Optional[str], Field(description='Service ID to filter traces.')
        ] = None,
        service_instance_id: Annotated[
            Optional[str], Field(description='Service instance ID to filter traces.')
        ] = None,
        trace_id: Annotated[
            Optional[str], Field(description='Specific trace ID to search for.')
        ] = None,
        endpoint_id: Annotated[
            Optional[str], Field(description='Endpoint ID to filter traces.')
        ] = None,
        duration: Annotated[
            Optional[str],
            Field(
                description=(
                    'Time window. Examples: "-1h" (last hour), "7d" (last 7 days), "-30m". '
                    'Defaults to the last hour when no trace_id is given.'
                )
            ),
        ] = None,
        min_trace_duration: Annotated[
            Optional[int], Field(description='Minimum trace duration in milliseconds.')
        ] = None,
        max_trace_duration: Annotated[
            Optional[int], Field(description='Maximum trace duration in milliseconds.')
        ] = None,
        trace_state: Annotated[
            Optional[str],
            Field(description="Trace state filter: 'success', 'error' or 'all' (default)."),
        ] = None,
        query_order: Annotated[
            Optional[str],
            Field(description="Sort order: 'start_time' (default) or 'duration'."),
        ] = None,
        page_size: Annotated[
            Optional[int], Field(description='Number of traces per page. Default is 20.')
        ] = None,
        page_num: Annotated[
            Optional[int], Field(description='Page number, starting at 1.')
        ] = None,
        view: Annotated[
            str,
            Field(
                description=(
                    "Presentation: 'full' (default) raw data, 'summary' aggregated statistics, "
                    "'errors_only' error traces sorted by duration."
                )
            ),
        ] = VIEW_FULL,
        slow_trace_threshold: Annotated[
            Optional[int],
            Field(
                description=(
                    'Optional threshold in milliseconds. Only when set are traces slower '
                    'than it listed in slow_traces of the summary view.'
                )
            ),
        ] = None,
        tags: Annotated[
            Optional[List[KeyValue]],
            Field(description='Span tags to filter by, e.g. [{"key": "http.method", "value": "POST"}].'),
        ] = None,
        cold: Annotated[
            bool, Field(description='Whether to query cold-stage storage.')
        ] = False,
    ) -> TracesResult:
        """Query traces from SkyWalking OAP by service, instance, endpoint, duration or tags.

        Usage: Use this tool to find traces matching specific criteria. At least one of
        service_id, service_instance_id, trace_id, endpoint_id, duration,
        min_trace_duration or max_trace_duration must be provided. When neither
        duration nor trace_id is given the last hour is searched.

        Start with view='summary' for success and error counts, latency statistics and
        the slowest error traces. Use view='errors_only' for a focused list of failures.

        Args:
            ctx: The MCP context object for error handling and logging.
            service_id: Service ID filter.
            service_instance_id: Service instance ID filter.
            trace_id: Trace ID filter.
            endpoint_id: Endpoint ID filter.
            duration: Time window of the search.
            min_trace_duration: Minimum trace duration in milliseconds.
            max_trace_duration: Maximum trace duration in milliseconds.
            trace_state: 'success', 'error' or 'all'.
            query_order: 'start_time' or 'duration'.
            page_size: Traces per page.
            page_num: Page number.
            view: 'full', 'summary' or 'errors_only'.
            slow_trace_threshold: Threshold for the slow trace list, in milliseconds.
            tags: Span tags to filter by.
            cold: Whether to query cold-stage storage.

        Returns:
            The raw trace list, a TracesSummary, or a list of BasicTraceSummary entries.

        Example:
            result = await query_traces(ctx, service_id="c2hvcA==.1", duration="-1h", view="summary")
            print(result.error_count, result.avg_duration_ms)
        """
        try:
            validate_traces_query(
                service_id,
                service_instance_id,
                trace_id,
                endpoint_id,
                duration,
                min_trace_duration,
                max_trace_duration,
                page_size,
                page_num,
            )
            view = view or VIEW_FULL

            condition = build_trace_query_condition(
                service_id=service_id,
                service_instance_id=service_instance_id,
                trace_id=trace_id,
                endpoint_id=endpoint_id,
                duration=duration,
                min_trace_duration=min_trace_duration,
                max_trace_duration=max_trace_duration,
                trace_state=trace_state,
                query_order=query_order,
                page_size=page_size,
                page_num=page_num,
                tags=tags,
                cold=cold,
            )

            logger.info(f'Querying traces with condition {condition}')
            try:
                data = await self.client.query(ctx, QUERY_BASIC_TRACES, {'condition': condition})
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_TRACES.format(e)) from e

            return process_traces_result(data.get('traces'), view, slow_trace_threshold)
        except Exception as e:
            logger.error(f'Error in query_traces: {str(e)}')
            await ctx.error(f'Error querying traces: {str(e)}')
            raise
