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

"""SkyWalking OAL metrics tools for MCP server."""

import base64
import binascii
from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import build_duration, parse_duration, remove_null_values
from skywalking_mcp_server.consts import (
    DEFAULT_TOP_N,
    DEFAULT_TOP_N_DURATION,
    ERR_FAILED_TO_QUERY_METRICS,
    ERR_INVALID_TOP_N,
    ERR_MISSING_METRICS_NAME,
)
from skywalking_mcp_server.metrics.models import MetricsValue, SelectedRecord
from skywalking_mcp_server.models import Duration, Scope
from typing import Annotated, Any, Dict, List, Optional, Tuple


QUERY_READ_METRICS_VALUE = """
query readMetricsValue($condition: MetricsCondition!, $duration: Duration!) {
  result: readMetricsValue(condition: $condition, duration: $duration)
}
"""

QUERY_SORT_METRICS = """
query sortMetrics($condition: TopNCondition!, $duration: Duration!) {
  result: sortMetrics(condition: $condition, duration: $duration) {
    name
    id
    value
    refId
  }
}
"""

ORDER_ASC = 'ASC'
ORDER_DES = 'DES'


def parse_service_id(service_id: str) -> Tuple[str, bool]:
    """Decode an OAP service ID into its service name and normal flag.

    Service IDs have the form ``base64(name).1`` for normal services and
    ``base64(name).0`` for conjectured ones.

    Raises:
        ValueError: If the ID does not have two parts or the name is not valid base64.
    """
    parts = service_id.split('.')
    if len(parts) != 2:
        raise ValueError(f'invalid service id, cannot be split into 2 parts: {service_id}')
    try:
        name = base64.b64decode(parts[0], validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f'invalid service id {service_id}: {e}') from e
    return name, parts[1] == '1'


def infer_top_n_scope(metrics_name: str) -> str:
    """Guess the entity scope of a top-N metric from its name prefix."""
    if metrics_name.startswith('service_instance'):
        return Scope.SERVICE_INSTANCE.value
    if metrics_name.startswith('endpoint'):
        return Scope.ENDPOINT.value
    return Scope.SERVICE.value


def build_metrics_entity(scope: Optional[str] = None, **names: Optional[str]) -> Dict[str, Any]:
    """Build an ``Entity`` input object carrying only the names that were given.

    Keyword arguments use snake_case names and are sent in camelCase,
    e.g. ``service_instance_name`` becomes ``serviceInstanceName``.
    """
    entity = {'scope': scope}
    for key, value in names.items():
        head, *rest = key.split('_')
        entity[head + ''.join(part.capitalize() for part in rest)] = value
    return remove_null_values(entity)


def build_top_n_condition(
    metrics_name: str,
    top_n: int,
    order: Optional[str] = None,
    scope: Optional[str] = None,
    service_id: Optional[str] = None,
    service_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a ``TopNCondition`` input object.

    ``service_id`` wins over ``service_name`` as the parent service. An ID that
    cannot be decoded leaves the parent service unset.
    """
    parent_service = ''
    normal = False
    if service_id:
        try:
            parent_service, normal = parse_service_id(service_id)
        except ValueError as e:
            logger.warning(f'Ignoring service_id for top-N query: {str(e)}')
            parent_service, normal = '', False
    elif service_name:
        parent_service = service_name

    condition: Dict[str, Any] = {
        'name': metrics_name,
        'normal': normal,
        'topN': top_n,
        'order': order if order in (ORDER_ASC, ORDER_DES) else ORDER_DES,
        'scope': scope or infer_top_n_scope(metrics_name),
    }
    if parent_service:
        condition['parentService'] = parent_service
    return condition


def _metrics_duration(
    duration: Optional[str],
    start: Optional[str],
    end: Optional[str],
    step: Optional[str],
    cold: bool,
) -> Duration:
    if duration:
        return parse_duration(duration, cold)
    return build_duration(start, end, step, cold, 0)


class MetricsTools:
    """SkyWalking metrics tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the metrics tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all metrics tools with the MCP server."""
        mcp.tool(
            name='query_single_metrics',
            annotations=ToolAnnotations(title='Query single-value metrics', readOnlyHint=True),
        )(self.query_single_metrics)

        mcp.tool(
            name='query_top_n_metrics',
            annotations=ToolAnnotations(title='Query top N metrics', readOnlyHint=True),
        )(self.query_top_n_metrics)

    async def query_single_metrics(
        self,
        ctx: Context,
        metrics_name: Annotated[
            str,
            Field(
                description=(
                    'The name of the OAL metrics to query, e.g. service_sla, service_cpm, '
                    'service_resp_time, service_apdex, endpoint_cpm.'
                )
            ),
        ],
        scope: Annotated[
            Optional[str],
            Field(
                description=(
                    'Entity scope: Service, ServiceInstance, Endpoint, Process, ServiceRelation, '
                    'ServiceInstanceRelation, EndpointRelation or ProcessRelation.'
                )
            ),
        ] = None,
        service_name: Annotated[Optional[str], Field(description='Service name.')] = None,
        service_instance_name: Annotated[
            Optional[str], Field(description='Service instance name.')
        ] = None,
        endpoint_name: Annotated[Optional[str], Field(description='Endpoint name.')] = None,
        process_name: Annotated[Optional[str], Field(description='Process name.')] = None,
        dest_service_name: Annotated[
            Optional[str], Field(description='Destination service name for relation scopes.')
        ] = None,
        dest_service_instance_name: Annotated[
            Optional[str],
            Field(description='Destination service instance name for relation scopes.'),
        ] = None,
        dest_endpoint_name: Annotated[
            Optional[str], Field(description='Destination endpoint name for relation scopes.')
        ] = None,
        dest_process_name: Annotated[
            Optional[str], Field(description='Destination process name for relation scopes.')
        ] = None,
        duration: Annotated[
            Optional[str],
            Field(
                description=(
                    'Window relative to now. Negative values look back ("-1h", "-30m"), '
                    'positive values look ahead ("1h").'
                )
            ),
        ] = None,
        start: Annotated[
            Optional[str],
            Field(description='Start time: "now", a relative offset like "-1h" or "2025-01-01 12:00:00".'),
        ] = None,
        end: Annotated[
            Optional[str], Field(description='End time, same formats as start.')
        ] = None,
        step: Annotated[
            Optional[str],
            Field(description='SECOND, MINUTE, HOUR or DAY. Picked from the window when omitted.'),
        ] = None,
        cold: Annotated[bool, Field(description='Whether to query cold-stage storage.')] = False,
    ) -> MetricsValue:
        """Query a single-value metric defined in OAL from SkyWalking OAP.

        Usage: Use this tool to read one aggregated value, such as the calls per minute
        of a service or the SLA of an endpoint, for the given entity and window.

        Examples:
            - {"metrics_name": "service_cpm", "service_name": "business-zone::projectC", "duration": "-1h"}
            - {"metrics_name": "service_resp_time", "service_name": "web", "start": "-1h", "end": "now", "step": "MINUTE"}

        Returns:
            MetricsValue: The metric value as an integer.
        """
        try:
            if not metrics_name:
                raise ValueError(ERR_MISSING_METRICS_NAME)

            condition = {
                'name': metrics_name,
                'entity': build_metrics_entity(
                    scope,
                    service_name=service_name,
                    service_instance_name=service_instance_name,
                    endpoint_name=endpoint_name,
                    process_name=process_name,
                    dest_service_name=dest_service_name,
                    dest_service_instance_name=dest_service_instance_name,
                    dest_endpoint_name=dest_endpoint_name,
                    dest_process_name=dest_process_name,
                ),
            }
            query_duration = _metrics_duration(duration, start, end, step, cold)

            logger.info(f'Reading metrics value {metrics_name} for {condition["entity"]}')
            try:
                data = await self.client.query(
                    ctx,
                    QUERY_READ_METRICS_VALUE,
                    {'condition': condition, 'duration': query_duration.to_variables()},
                )
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_METRICS.format(e)) from e

            return MetricsValue(value=int(data.get('result') or 0))
        except Exception as e:
            logger.error(f'Error in query_single_metrics: {str(e)}')
            await ctx.error(f'Error querying metrics: {str(e)}')
            raise

    async def query_top_n_metrics(
        self,
        ctx: Context,
        metrics_name: Annotated[
            str,
            Field(description='The OAL metrics to rank by, e.g. service_sla, endpoint_cpm.'),
        ],
        top_n: Annotated[
            int, Field(description='Number of entries to return. Default is 5.')
        ] = DEFAULT_TOP_N,
        order: Annotated[
            Optional[str],
            Field(description="'DES' (highest first, default) or 'ASC' (lowest first)."),
        ] = None,
        scope: Annotated[
            Optional[str],
            Field(
                description=(
                    'Entity scope to rank. Inferred from the metrics name when omitted: '
                    'service_instance_* gives ServiceInstance, endpoint_* gives Endpoint, '
                    'anything else Service.'
                )
            ),
        ] = None,
        service_id: Annotated[
            Optional[str],
            Field(description='ID of the parent service, used to rank its instances or endpoints.'),
        ] = None,
        service_name: Annotated[
            Optional[str],
            Field(description='Name of the parent service, used when service_id is not given.'),
        ] = None,
        duration: Annotated[
            Optional[str],
            Field(description='Window relative to now, e.g. "-1h". Defaults to 30 minutes.'),
        ] = None,
        start: Annotated[Optional[str], Field(description='Start time.')] = None,
        end: Annotated[Optional[str], Field(description='End time.')] = None,
        step: Annotated[Optional[str], Field(description='SECOND, MINUTE, HOUR or DAY.')] = None,
        cold: Annotated[bool, Field(description='Whether to query cold-stage storage.')] = False,
    ) -> List[SelectedRecord]:
        """Rank entities by an OAL metric, e.g. the slowest endpoints of a service.

        Examples:
            - {"metrics_name": "service_sla", "top_n": 5, "order": "ASC"}: least available services
            - {"metrics_name": "endpoint_resp_time", "service_name": "web", "top_n": 10}: slowest endpoints

        Returns:
            List[SelectedRecord]: The ranked entries.
        """
        try:
            if not metrics_name:
                raise ValueError(ERR_MISSING_METRICS_NAME)
            if top_n == 0:
                top_n = DEFAULT_TOP_N
            if top_n < 0:
                raise ValueError(ERR_INVALID_TOP_N)

            condition = build_top_n_condition(
                metrics_name, top_n, order, scope, service_id, service_name
            )
            if not (duration or start or end):
                duration = DEFAULT_TOP_N_DURATION
            query_duration = _metrics_duration(duration, start, end, step, cold)

            logger.info(f'Sorting metrics with condition {condition}')
            try:
                data = await self.client.query(
                    ctx,
                    QUERY_SORT_METRICS,
                    {'condition': condition, 'duration': query_duration.to_variables()},
                )
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_QUERY_METRICS.format(e)) from e

            return [SelectedRecord.model_validate(record) for record in data.get('result') or []]
        except Exception as e:
            logger.error(f'Error in query_top_n_metrics: {str(e)}')
            await ctx.error(f'Error querying top N metrics: {str(e)}')
            raise
