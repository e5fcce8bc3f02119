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

"""Analysis prompts for the SkyWalking MCP server."""

from skywalking_mcp_server.prompts.investigation import (
    analyze_logs_prompt,
    investigate_traces_prompt,
    trace_deep_dive_prompt,
)
from skywalking_mcp_server.prompts.mqe import build_mqe_query_prompt, explore_metrics_prompt
from skywalking_mcp_server.prompts.performance import (
    analyze_performance_prompt,
    compare_services_prompt,
    top_services_prompt,
)


ALL_PROMPTS = [
    analyze_performance_prompt,
    compare_services_prompt,
    top_services_prompt,
    investigate_traces_prompt,
    trace_deep_dive_prompt,
    analyze_logs_prompt,
    build_mqe_query_prompt,
    explore_metrics_prompt,
]
