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

"""Metrics Query Expression (MQE) tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import resolve_duration
from skywalking_mcp_server.consts import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_LAYER,
    ERR_FAILED_TO_EXECUTE_MQE,
    ERR_FAILED_TO_GET_METRIC_TYPE,
    ERR_FAILED_TO_LIST_METRICS,
    ERR_MISSING_EXPRESSION,
    ERR_MISSING_METRIC_NAME,
)
from typing import Annotated, Any, Dict, Optional


QUERY_EXEC_EXPRESSION = """
query execExpression($expression: String!, $entity: Entity!, $duration: Duration!, $debug: Boolean, $dumpDBRsp: Boolean) {
  execExpression(expression: $expression, entity: $entity, duration: $duration, debug: $debug, dumpDBRsp: $dumpDBRsp) {
    type
    error
    results {
      metric {
        labels { key value }
      }
      values {
        id
        value
        traceID
        owner {
          scope
          serviceID
          serviceName
          normal
          serviceInstanceID
          serviceInstanceName
          endpointID
          endpointName
        }
      }
    }
    debuggingTrace {
      traceId
      condition
      duration
      spans {
        spanId
        operation
        msg
        startTime
        endTime
        duration
      }
    }
  }
}
"""

QUERY_LIST_METRICS = """
query listMetrics($regex: String) {
  listMetrics(regex: $regex) {
    name
    type
    catalog
  }
}
"""

QUERY_TYPE_OF_METRICS = """
query typeOfMetrics($name: String!) {
  typeOfMetrics(name: $name)
}
"""

QUERY_LIST_SERVICES = """
query getServices($layer: String!) {
  services: listServices(layer: $layer) {
    id
    name
  }
}
"""

QUERY_GET_SERVICE = """
query getService($serviceId: String!) {
  service: getService(serviceId: $serviceId) {
    id
    name
    normal
    layers
  }
}
"""


class MQETools:
    """MQE tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the MQE tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all MQE tools with the MCP server."""
        mcp.tool(
            name='execute_mqe_expression',
            annotations=ToolAnnotations(title='Execute MQE expression', readOnlyHint=True),
        )(self.execute_mqe_expression)

        mcp.tool(
            name='list_mqe_metrics',
            annotations=ToolAnnotations(title='List available metrics', readOnlyHint=True),
        )(self.list_mqe_metrics)

        mcp.tool(
            name='get_mqe_metric_type',
            annotations=ToolAnnotations(title='Get metric type', readOnlyHint=True),
        )(self.get_mqe_metric_type)

    async def detect_service_normal(
        self, ctx: Optional[Context], service_name: str, layer: Optional[str] = None
    ) -> bool:
        """Look up whether a service is a normal (instrumented) service.

        Services that cannot be found, or whose lookup fails, are treated as normal.
        """
        layer = layer or DEFAULT_LAYER
        try:
            data = await self.client.query(ctx, QUERY_LIST_SERVICES, {'layer': layer})
            service_id = next(
                (
                    service.get('id')
                    for service in data.get('services') or []
                    if service and service.get('name') == service_name
                ),
                None,
            )
            if not service_id:
                logger.debug(f'Service {service_name} not found in layer {layer}')
                return True

            data = await self.client.query(ctx, QUERY_GET_SERVICE, {'serviceId': service_id})
        except SkyWalkingQueryError as e:
            logger.warning(f'Failed to look up service {service_name}: {str(e)}')
            return True

        normal = (data.get('service') or {}).get('normal')
        return normal if isinstance(normal, bool) else True

    async def build_entity(
        self,
        ctx: Optional[Context],
        service_name: Optional[str] = None,
        service_instance_name: Optional[str] = None,
        endpoint_name: Optional[str] = None,
        process_name: Optional[str] = None,
        dest_service_name: Optional[str] = None,
        dest_service_instance_name: Optional[str] = None,
        dest_endpoint_name: Optional[str] = None,
        dest_process_name: Optional[str] = None,
        layer: Optional[str] = None,
        normal: Optional[bool] = None,
        dest_normal: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Build the ``Entity`` input of an MQE query from the non-empty names."""
        names = {
            'serviceName': service_name,
            'serviceInstanceName': service_instance_name,
            'endpointName': endpoint_name,
            'processName': process_name,
            'destServiceName': dest_service_name,
            'destServiceInstanceName': dest_service_instance_name,
            'destEndpointName': dest_endpoint_name,
            'destProcessName': dest_process_name,
        }
        entity: Dict[str, Any] = {key: value for key, value in names.items() if value}

        if service_name and normal is None:
            entity['normal'] = await self.detect_service_normal(ctx, service_name, layer)
        elif normal is not None:
            entity['normal'] = normal
        if dest_normal is not None:
            entity['destNormal'] = dest_normal
        return entity

    async def fetch_metrics(self, ctx: Optional[Context], regex: Optional[str] = None) -> Dict[str, Any]:
        """Return the ``listMetrics`` result, optionally filtered by a regex."""
        variables = {'regex': regex} if regex else {}
        try:
            return await self.client.query(ctx, QUERY_LIST_METRICS, variables)
        except SkyWalkingQueryError as e:
            raise SkyWalkingQueryError(ERR_FAILED_TO_LIST_METRICS.format(e)) from e

    async def execute_mqe_expression(
        self,
        ctx: Context,
        expression: Annotated[
            str,
            Field(
                description=(
                    'MQE expression, e.g. "service_sla * 100", "avg(service_cpm)", '
                    '"top_n(service_resp_time, 10, des)" or '
                    '"service_percentile{p=\'50,75,90,95,99\'}".'
                )
            ),
        ],
        service_name: Annotated[Optional[str], Field(description='Service name of the entity.')] = None,
        layer: Annotated[
            Optional[str],
            Field(description='Layer of the service, used to detect its normal flag. Default GENERAL.'),
        ] = None,
        service_instance_name: Annotated[
            Optional[str], Field(description='Service instance name of the entity.')
        ] = None,
        endpoint_name: Annotated[Optional[str], Field(description='Endpoint name of the entity.')] = None,
        process_name: Annotated[Optional[str], Field(description='Process name of the entity.')] = None,
        normal: Annotated[
            Optional[bool],
            Field(description='Whether the service is normal. Detected from OAP when omitted.'),
        ] = None,
        dest_service_name: Annotated[
            Optional[str], Field(description='Destination service name for relation metrics.')
        ] = None,
        dest_layer: Annotated[
            Optional[str], Field(description='Layer of the destination service.')
        ] = None,
        dest_service_instance_name: Annotated[
            Optional[str], Field(description='Destination service instance name.')
        ] = None,
        dest_endpoint_name: Annotated[
            Optional[str], Field(description='Destination endpoint name.')
        ] = None,
        dest_process_name: Annotated[
            Optional[str], Field(description='Destination process name.')
        ] = None,
        dest_normal: Annotated[
            Optional[bool], Field(description='Whether the destination service is normal.')
        ] = None,
        duration: Annotated[
            Optional[str], Field(description='Window relative to now, e.g. "-1h" or "-7d".')
        ] = None,
        start: Annotated[Optional[str], Field(description='Start time, used without duration.')] = None,
        end: Annotated[Optional[str], Field(description='End time, used without duration.')] = None,
        step: Annotated[
            Optional[str], Field(description='SECOND, MINUTE, HOUR, DAY or MONTH.')
        ] = None,
        cold: Annotated[bool, Field(description='Whether to query cold-stage storage.')] = False,
        debug: Annotated[bool, Field(description='Return a debugging trace of the execution.')] = False,
        dump_db_rsp: Annotated[
            bool, Field(description='Include the raw storage responses in the debugging trace.')
        ] = False,
    ) -> Dict[str, Any]:
        """Execute a Metrics Query Expression against SkyWalking OAP.

        Usage: MQE can calculate, aggregate, compare and sort metrics in one expression.
        Read the mqe://docs/syntax and mqe://docs/examples resources first, and use
        list_mqe_metrics to discover metric names. Without a duration or start/end the
        last 30 minutes are queried.

        Examples:
            - {"expression": "service_sla * 100", "service_name": "agent::songs", "duration": "-1h"}
            - {"expression": "sort_values(top_n(service_cpm, 5, des), 5, des)", "duration": "-30m"}
            - {"expression": "service_resp_time > 1000", "service_name": "web", "layer": "GENERAL"}

        Returns:
            Dict[str, Any]: The ``execExpression`` result with the result type, any error,
            labelled value series and an optional debugging trace.
        """
        try:
            if not expression:
                raise ValueError(ERR_MISSING_EXPRESSION)

            entity = await self.build_entity(
                ctx,
                service_name=service_name,
                service_instance_name=service_instance_name,
                endpoint_name=endpoint_name,
                process_name=process_name,
                dest_service_name=dest_service_name,
                dest_service_instance_name=dest_service_instance_name,
                dest_endpoint_name=dest_endpoint_name,
                dest_process_name=dest_process_name,
                layer=layer,
                normal=normal,
                dest_normal=dest_normal,
            )
            query_duration = resolve_duration(
                duration, start, end, step, cold, DEFAULT_DURATION_MINUTES, allow_month=True
            )
            variables = {
                'expression': expression,
                'entity': entity,
                'duration': query_duration.to_variables(),
                'debug': debug,
                'dumpDBRsp': dump_db_rsp,
            }

            logger.info(f'Executing MQE expression {expression} for {entity}')
            try:
                return await self.client.query(ctx, QUERY_EXEC_EXPRESSION, variables)
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_EXECUTE_MQE.format(e)) from e
        except Exception as e:
            logger.error(f'Error in execute_mqe_expression: {str(e)}')
            await ctx.error(f'Error executing MQE expression: {str(e)}')
            raise

    async def list_mqe_metrics(
        self,
        ctx: Context,
        regex: Annotated[
            Optional[str],
            Field(description='Regular expression to filter metric names, e.g. "service_.*".'),
        ] = None,
    ) -> Dict[str, Any]:
        """List the metrics OAP can evaluate in MQE expressions.

        Each entry carries the metric name, its value type and its catalog (service,
        instance, endpoint and so on).
        """
        try:
            logger.info(f'Listing metrics matching {regex or "all"}')
            return await self.fetch_metrics(ctx, regex)
        except Exception as e:
            logger.error(f'Error in list_mqe_metrics: {str(e)}')
            await ctx.error(f'Error listing metrics: {str(e)}')
            raise

    async def get_mqe_metric_type(
        self,
        ctx: Context,
        metric_name: Annotated[str, Field(description='Name of the metric, e.g. service_cpm.')],
    ) -> Dict[str, Any]:
        """Get the value type of a metric.

        REGULAR_VALUE metrics are used directly in expressions, LABELED_VALUE metrics
        need label selectors, e.g. ``service_percentile{p='50,99'}``.
        """
        try:
            if not metric_name:
                raise ValueError(ERR_MISSING_METRIC_NAME)

            logger.info(f'Getting type of metric {metric_name}')
            try:
                return await self.client.query(ctx, QUERY_TYPE_OF_METRICS, {'name': metric_name})
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(ERR_FAILED_TO_GET_METRIC_TYPE.format(e)) from e
        except Exception as e:
            logger.error(f'Error in get_mqe_metric_type: {str(e)}')
            await ctx.error(f'Error getting metric type: {str(e)}')
            raise
