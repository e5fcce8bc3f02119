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

"""Command line, environment and .env configuration of the SkyWalking MCP server."""

import argparse
import os
import sys
from dotenv import load_dotenv
from loguru import logger
from skywalking_mcp_server.consts import (
    ENV_ENDPOINT_PATH,
    ENV_HOST,
    ENV_LOG_FILE,
    ENV_LOG_LEVEL,
    ENV_PORT,
    ENV_SW_URL,
    ENV_TRANSPORT,
    TRANSPORTS,
)
from skywalking_mcp_server.models import SkyWalkingConfig
from typing import Optional


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Apache SkyWalking MCP Server')
    parser.add_argument('--url', type=str, help='SkyWalking OAP URL, e.g. http://localhost:12800')
    parser.add_argument(
        '--transport', type=str, choices=TRANSPORTS, help='MCP transport (default: stdio)'
    )
    parser.add_argument('--host', type=str, help='Host to bind to for HTTP transports')
    parser.add_argument('--port', type=int, help='Port to bind to for HTTP transports')
    parser.add_argument(
        '--endpoint-path', type=str, help='Path of the streamable HTTP endpoint (default: /mcp)'
    )
    parser.add_argument('--log-level', type=str, help='Log level (default: INFO)')
    parser.add_argument('--log-file', type=str, help='Also write DEBUG logs to this file')
    return parser.parse_args(argv)


def load_config(args: Optional[argparse.Namespace] = None) -> SkyWalkingConfig:
    """Load configuration from defaults, .env, environment variables and arguments.

    Later sources win over earlier ones.

    Raises:
        ValueError: If the port from the environment is not an integer or the
            transport or log level is unknown.
    """
    # Load .env file if it exists
    load_dotenv()

    config_data = SkyWalkingConfig().model_dump()

    # Override with environment variables
    if os.getenv(ENV_SW_URL):
        config_data['url'] = os.getenv(ENV_SW_URL)
    if os.getenv(ENV_TRANSPORT):
        config_data['transport'] = os.getenv(ENV_TRANSPORT)
    if os.getenv(ENV_HOST):
        config_data['host'] = os.getenv(ENV_HOST)
    if os.getenv(ENV_PORT):
        try:
            config_data['port'] = int(os.getenv(ENV_PORT, ''))
        except ValueError as e:
            raise ValueError(f'Invalid {ENV_PORT} value: {os.getenv(ENV_PORT)}') from e
    if os.getenv(ENV_ENDPOINT_PATH):
        config_data['endpoint_path'] = os.getenv(ENV_ENDPOINT_PATH)
    if os.getenv(ENV_LOG_LEVEL):
        config_data['log_level'] = os.getenv(ENV_LOG_LEVEL)
    if os.getenv(ENV_LOG_FILE):
        config_data['log_file'] = os.getenv(ENV_LOG_FILE)

    # Override with command line arguments
    if args is not None:
        if args.url:
            config_data['url'] = args.url
        if args.transport:
            config_data['transport'] = args.transport
        if args.host:
            config_data['host'] = args.host
        if args.port:
            config_data['port'] = args.port
        if args.endpoint_path:
            config_data['endpoint_path'] = args.endpoint_path
        if args.log_level:
            config_data['log_level'] = args.log_level
        if args.log_file:
            config_data['log_file'] = args.log_file

    if config_data['transport'] not in TRANSPORTS:
        raise ValueError(
            f'Invalid transport {config_data["transport"]}, expected one of {", ".join(TRANSPORTS)}'
        )
    config_data['log_level'] = config_data['log_level'].upper()
    try:
        logger.level(config_data['log_level'])
    except ValueError as e:
        raise ValueError(f'Invalid log level {config_data["log_level"]}') from e

    return SkyWalkingConfig(**config_data)


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """Replace the loguru sinks: stderr at the given level, plus an optional DEBUG file."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file:
        logger.add(log_file, level='DEBUG')
        logger.debug(f'Writing debug logs to {log_file}')
