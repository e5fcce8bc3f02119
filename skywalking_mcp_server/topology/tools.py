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

"""SkyWalking topology tools for MCP server."""

from loguru import logger
from mcp.server.fastmcp import Context
from mcp.types import ToolAnnotations
from pydantic import Field
from skywalking_mcp_server.client import SkyWalkingClient, SkyWalkingQueryError
from skywalking_mcp_server.common import resolve_duration
from skywalking_mcp_server.consts import ERR_FAILED_TO_QUERY_TOPOLOGY, ERR_MISSING_SERVICE
from typing import Annotated, Any, Dict, Optional


QUERY_SERVICE_TOPOLOGY = """
query getServiceTopology($serviceId: ID!, $duration: Duration!) {
  serviceTopology: getServiceTopology(serviceId: $serviceId, duration: $duration) {
    nodes { id name type isReal }
    calls { id source target isDetectPoint type component }
  }
}
"""

QUERY_INSTANCE_TOPOLOGY = """
query getServiceInstanceTopology($serviceId: ID!, $duration: Duration!) {
  instanceTopology: getServiceInstanceTopology(serviceId: $serviceId, duration: $duration) {
    nodes { id name serviceId serviceName }
    calls { id source target type component }
  }
}
"""

QUERY_ENDPOINT_TOPOLOGY = """
query getEndpointTopology($serviceId: ID!, $duration: Duration!) {
  endpointTopology: getEndpointTopology(serviceId: $serviceId, duration: $duration) {
    nodes { id name serviceId serviceName }
    calls { id source target type component }
  }
}
"""

TOPOLOGY_QUERIES = {
    'Service': QUERY_SERVICE_TOPOLOGY,
    'Instance': QUERY_INSTANCE_TOPOLOGY,
    'Endpoint': QUERY_ENDPOINT_TOPOLOGY,
}

ServiceIdParam = Annotated[
    Optional[str],
    Field(description='ID of the service. Either service_id or service_name is required.'),
]
ServiceNameParam = Annotated[
    Optional[str],
    Field(description='Name of the service, used as the ID when service_id is omitted.'),
]
DurationParam = Annotated[
    Optional[str],
    Field(description='Window relative to now, e.g. "-1h". Defaults to the last 30 minutes.'),
]


class TopologyTools:
    """SkyWalking topology tools for MCP server."""

    def __init__(self, client: SkyWalkingClient):
        """Initialize the topology tools with a shared OAP client."""
        self.client = client

    def register(self, mcp):
        """Register all topology tools with the MCP server."""
        mcp.tool(
            name='get_service_topology',
            annotations=ToolAnnotations(title='Get service topology', readOnlyHint=True),
        )(self.get_service_topology)

        mcp.tool(
            name='get_instance_topology',
            annotations=ToolAnnotations(title='Get service instance topology', readOnlyHint=True),
        )(self.get_instance_topology)

        mcp.tool(
            name='get_endpoint_topology',
            annotations=ToolAnnotations(title='Get endpoint topology', readOnlyHint=True),
        )(self.get_endpoint_topology)

    async def _query_topology(
        self,
        ctx: Context,
        topology_type: str,
        service_id: Optional[str],
        service_name: Optional[str],
        duration: Optional[str],
    ) -> Dict[str, Any]:
        try:
            if not service_id and not service_name:
                raise ValueError(ERR_MISSING_SERVICE)

            variables = {
                'serviceId': service_id or service_name,
                'duration': resolve_duration(duration, None, None, None).to_variables(),
            }

            logger.info(f'Querying {topology_type} topology for {variables["serviceId"]}')
            try:
                return await self.client.query(ctx, TOPOLOGY_QUERIES[topology_type], variables)
            except SkyWalkingQueryError as e:
                raise SkyWalkingQueryError(
                    ERR_FAILED_TO_QUERY_TOPOLOGY.format(topology_type, e)
                ) from e
        except Exception as e:
            logger.error(f'Error querying {topology_type} topology: {str(e)}')
            await ctx.error(f'Error querying {topology_type} topology: {str(e)}')
            raise

    async def get_service_topology(
        self,
        ctx: Context,
        service_id: ServiceIdParam = None,
        service_name: ServiceNameParam = None,
        duration: DurationParam = None,
    ) -> Dict[str, Any]:
        """Get the service-level call graph around a service.

        Returns nodes (services, including conjectured peers such as databases) and the
        calls between them, with the component and detect point of each call.
        """
        return await self._query_topology(ctx, 'Service', service_id, service_name, duration)

    async def get_instance_topology(
        self,
        ctx: Context,
        service_id: ServiceIdParam = None,
        service_name: ServiceNameParam = None,
        duration: DurationParam = None,
    ) -> Dict[str, Any]:
        """Get the instance-level call graph of a service."""
        return await self._query_topology(ctx, 'Instance', service_id, service_name, duration)

    async def get_endpoint_topology(
        self,
        ctx: Context,
        service_id: ServiceIdParam = None,
        service_name: ServiceNameParam = None,
        duration: DurationParam = None,
    ) -> Dict[str, Any]:
        """Get the endpoint-level dependency graph of a service."""
        return await self._query_topology(ctx, 'Endpoint', service_id, service_name, duration)
