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

"""MQE authoring prompts."""

from mcp.server.fastmcp.prompts import Prompt
from skywalking_mcp_server.prompts.workflows import generate_tool_instructions
from typing import Optional


def build_mqe_query(query_type: str, metrics: str, conditions: Optional[str] = None) -> str:
    """Generate a request for help writing an MQE expression.

    Args:
        query_type: performance, comparison, trend or alert
        metrics: Comma-separated list of metrics to query
        conditions: Additional conditions or filters

    Returns:
        Instructions for building and verifying the expression
    """
    tool_instructions = generate_tool_instructions('mqe_query_building')

    return f"""Help me build an MQE (Metrics Query Expression) for the following requirement:

Query Type: {query_type}
Metrics: {metrics}
Additional Conditions: {conditions or ''}

{tool_instructions}
**Building the expression:**
- Read the mqe://docs/syntax resource and explain the syntax this case needs
- Provide the complete MQE expression
- Show example calls of execute_mqe_expression with different parameters
- Explain each part of the expression
- Suggest variations for related scenarios

If there are several ways to express this, show the alternatives with their pros and cons."""


def explore_metrics(pattern: Optional[str] = None, show_examples: Optional[str] = None) -> str:
    """Generate a guided tour of the metrics available for MQE."""
    pattern = pattern or '.*'
    tool_instructions = generate_tool_instructions('metrics_exploration')

    return f"""Explore the available metrics matching pattern: "{pattern}".

{tool_instructions}
**Exploration Workflow:**

**Discover Metrics**
- Call list_mqe_metrics with regex="{pattern}"
- Review the metric names, types and catalogs

**Understand Metric Types**
- Call get_mqe_metric_type for each interesting metric
- REGULAR_VALUE: usable directly in arithmetic
- LABELED_VALUE: needs label selectors
- SAMPLED_RECORD: record based, used with top_n

**Usage Examples** (if show_examples is "{show_examples or ''}"):
- REGULAR_VALUE: service_cpm, service_sla * 100
- LABELED_VALUE: service_percentile{{p='50,75,90,95,99'}}
- Functions: avg(service_cpm), top_n(service_resp_time, 10, des)

**Metric Categories:**
- Service: service_sla, service_cpm, service_resp_time
- Instance: service_instance_*
- Endpoint: endpoint_*
- Relation: service_relation_*

**Best Practices:**
- Check the metric type before using a metric in an expression
- Use label selectors for LABELED_VALUE metrics
- Use aggregation functions for trend analysis

Provide a guide to the available metrics and how to use them."""


build_mqe_query_prompt = Prompt.from_function(
    build_mqe_query,
    name='build-mqe-query',
    description='Help build MQE (Metrics Query Expression) for complex queries',
)

explore_metrics_prompt = Prompt.from_function(
    explore_metrics,
    name='explore-metrics',
    description='Explore available metrics and their types',
)
