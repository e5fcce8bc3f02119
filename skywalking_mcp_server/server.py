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

"""Apache SkyWalking MCP Server implementation."""

import os
import sys
from loguru import logger
from mcp.server.fastmcp import FastMCP
from skywalking_mcp_server.alarms.tools import AlarmTools
from skywalking_mcp_server.client import SkyWalkingClient
from skywalking_mcp_server.config import configure_logging, load_config, parse_arguments
from skywalking_mcp_server.consts import (
    DEFAULT_LOG_LEVEL,
    ENV_LOG_LEVEL,
    SERVER_INSTRUCTIONS,
    SERVER_NAME,
)
from skywalking_mcp_server.events.tools import EventTools
from skywalking_mcp_server.logs.tools import LogTools
from skywalking_mcp_server.metrics.tools import MetricsTools
from skywalking_mcp_server.models import SkyWalkingConfig
from skywalking_mcp_server.mqe.tools import MQETools
from skywalking_mcp_server.prompts import ALL_PROMPTS
from skywalking_mcp_server.resources.mqe_docs import MQEResources
from skywalking_mcp_server.topology.tools import TopologyTools
from skywalking_mcp_server.trace.tools import TraceTools
from typing import Optional


# Configure loguru
logger.remove()
logger.add(sys.stderr, level=os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper())


def create_mcp_server(config: Optional[SkyWalkingConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Args:
        config: Server configuration. Defaults are used when omitted.

    Returns:
        Configured FastMCP instance with all tools, prompts and resources registered
    """
    config = config or SkyWalkingConfig()
    mcp = FastMCP(
        SERVER_NAME,
        instructions=SERVER_INSTRUCTIONS,
        dependencies=[
            'pydantic',
            'loguru',
            'httpx',
            'python-dotenv',
        ],
        host=config.host,
        port=config.port,
        streamable_http_path=config.endpoint_path,
        stateless_http=True,
    )

    client = SkyWalkingClient(base_url=config.url, timeout=config.timeout)
    logger.info(f'Using SkyWalking OAP at {config.url}')

    try:
        TraceTools(client).register(mcp)
        logger.info('Trace tools registered successfully')
        MetricsTools(client).register(mcp)
        logger.info('Metrics tools registered successfully')
        LogTools(client).register(mcp)
        logger.info('Log tools registered successfully')
        AlarmTools(client).register(mcp)
        logger.info('Alarm tools registered successfully')
        EventTools(client).register(mcp)
        logger.info('Event tools registered successfully')
        TopologyTools(client).register(mcp)
        logger.info('Topology tools registered successfully')
        mqe_tools = MQETools(client)
        mqe_tools.register(mcp)
        logger.info('MQE tools registered successfully')
    except Exception as e:
        logger.error(f'Error initializing SkyWalking tools: {str(e)}')
        raise

    for prompt in ALL_PROMPTS:
        mcp.add_prompt(prompt)
    logger.info(f'{len(ALL_PROMPTS)} prompts registered successfully')

    MQEResources(mqe_tools).register(mcp)
    logger.info('MQE resources registered successfully')

    logger.info('MCP server created and tools registered')
    return mcp


def main():
    """Run the MCP server with CLI argument support."""
    args = parse_arguments()

    try:
        config = load_config(args)
    except ValueError as e:
        logger.error(f'Invalid configuration: {str(e)}')
        sys.exit(1)

    configure_logging(config.log_level, config.log_file)
    logger.info(f'Starting Apache SkyWalking MCP Server with {config.transport} transport')

    try:
        mcp = create_mcp_server(config)
        if config.transport != 'stdio':
            logger.info(f'Listening on {config.host}:{config.port}')
        mcp.run(transport=config.transport)
    except Exception as e:
        logger.error(f'Error running server with {config.transport} transport: {str(e)}')
        sys.exit(1)


if __name__ == '__main__':
    main()
