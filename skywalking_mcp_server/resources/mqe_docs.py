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

"""MQE documentation and metric catalog resources."""

import json
from loguru import logger
from skywalking_mcp_server.mqe.tools import MQETools
from skywalking_mcp_server.static import MQE_AI_PROMPT, MQE_EXAMPLES, MQE_SYNTAX


class MQEResources:
    """Exposes the MQE reference documents and the live metric list as resources."""

    def __init__(self, mqe_tools: MQETools):
        """Initialize the resources with the MQE tools used for the live metric list."""
        self.mqe_tools = mqe_tools
        self.mcp = None

    def register(self, mcp):
        """Register all MQE resources with the MCP server."""
        self.mcp = mcp
        mcp.resource(
            uri='mqe://docs/syntax',
            name='MQE Detailed Syntax Rules',
            description='Comprehensive syntax rules and grammar for MQE expressions',
            mime_type='text/markdown',
        )(self.mqe_syntax)

        mcp.resource(
            uri='mqe://docs/examples',
            name='MQE Examples',
            description='Common MQE expression examples with natural language descriptions',
            mime_type='application/json',
        )(self.mqe_examples)

        mcp.resource(
            uri='mqe://metrics/available',
            name='Available Metrics',
            description='List of all available metrics in the current SkyWalking instance',
            mime_type='application/json',
        )(self.available_metrics)

        mcp.resource(
            uri='mqe://docs/ai_prompt',
            name='MQE AI Understanding Guide',
            description='Guide for turning natural language questions into MQE expressions',
            mime_type='text/markdown',
        )(self.mqe_ai_prompt)

    async def mqe_syntax(self) -> str:
        """MQE syntax reference."""
        return MQE_SYNTAX

    async def mqe_examples(self) -> str:
        """MQE examples paired with natural language questions."""
        return MQE_EXAMPLES

    async def mqe_ai_prompt(self) -> str:
        """Guide for translating questions into MQE."""
        return MQE_AI_PROMPT

    async def available_metrics(self) -> str:
        """Live list of the metrics known to OAP, as indented JSON."""
        logger.info('Reading available metrics resource')
        # Resources have no Context parameter, the server context carries the SW-URL header
        ctx = self.mcp.get_context() if self.mcp is not None else None
        metrics = await self.mqe_tools.fetch_metrics(ctx)
        return json.dumps(metrics, indent=2)
