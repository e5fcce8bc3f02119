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

"""Service performance prompts."""

from mcp.server.fastmcp.prompts import Prompt
from skywalking_mcp_server.prompts.workflows import (
    DEFAULT_PROMPT_DURATION,
    generate_tool_instructions,
)
from typing import Optional


def analyze_performance(service_name: str, duration: Optional[str] = None) -> str:
    """Generate a performance analysis plan for one service.

    Args:
        service_name: The name of the service to analyze
        duration: Time window, e.g. -1h (past hour), -30m, -7d. Defaults to -1h

    Returns:
        Instructions that walk through latency, SLA, traffic, errors and bottlenecks
    """
    duration = duration or DEFAULT_PROMPT_DURATION
    tool_instructions = generate_tool_instructions('performance_analysis')

    return f"""Please analyze the performance of service '{service_name}' over the last {duration}.

{tool_instructions}
**Analysis Required:**

**Response Time**
- Use query_single_metrics with metrics_name="service_resp_time" for the average response time
- Use execute_mqe_expression with expression="service_percentile{{p='50,75,90,95,99'}}" for percentiles
- Point out trends and anomalies

**Success Rate and SLA**
- Use execute_mqe_expression with expression="service_sla * 100" for the success rate in percent
- Use query_single_metrics with metrics_name="service_apdex" for the user satisfaction score
- Track SLA compliance over the window

**Traffic**
- Use query_single_metrics with metrics_name="service_cpm" for calls per minute
- Identify traffic patterns and peaks

**Errors**
- Use query_traces with trace_state="error" and view="summary" to find failing requests
- Identify the most common errors and the affected endpoints

**Bottlenecks**
- Use query_top_n_metrics with metrics_name="endpoint_resp_time" and order="DES" for the slowest endpoints
- Use query_top_n_metrics with metrics_name="endpoint_cpm" for the busiest endpoints

Please provide actionable insights and specific recommendations based on the data."""


def compare_services(
    services: str, metrics: Optional[str] = None, time_range: Optional[str] = None
) -> str:
    """Generate a side-by-side comparison plan for several services."""
    metrics = metrics or 'all'
    time_range = time_range or DEFAULT_PROMPT_DURATION
    tool_instructions = generate_tool_instructions('service_comparison')

    return f"""Please compare the following services: {services}

Time Range: {time_range}
Metrics to Compare: {metrics}

{tool_instructions}
The comparison should include:

1. **Performance**
   - Average and percentile response times
   - Throughput (CPM)
   - Success rate (SLA)

2. **Resource Utilization**
   - CPU and memory usage where available
   - Connection pool usage

3. **Error Patterns**
   - Error rates
   - Error types per service

4. **Dependency Impact**
   - How each service affects the others
   - Risk of cascading failures

5. **Relative Performance**
   - Which service is the bottleneck
   - Performance ratios between the services

Present the comparison as a table where possible and highlight significant differences."""


def top_services(metric_name: str, top_n: Optional[str] = None, order: Optional[str] = None) -> str:
    """Generate a ranking plan based on query_top_n_metrics."""
    top_n = top_n or '10'
    order = order or 'DES'

    return f"""Find the top services with the query_top_n_metrics tool:

**Tool Configuration:**
- query_top_n_metrics with parameters:
  - metrics_name: "{metric_name}"
  - top_n: {top_n}
  - order: "{order}" (DES for highest, ASC for lowest)
  - duration: "-1h" (or a custom range)

**Analysis Focus:**

**Service Ranking**
- Get the top {top_n} services by {metric_name}
- Compare the values against a baseline
- Identify outliers

**Performance Insights**
- For CPM metrics: the busiest services
- For response time metrics: the slowest services
- For SLA metrics: the services with failures

**Recommendations**
- Services needing immediate attention
- Capacity planning hints
- Optimization targets

**Follow-up Analysis**
- Use query_single_metrics for a detailed look at one service
- Use query_traces to investigate errors
- Use execute_mqe_expression for derived calculations

Provide ranked results with specific recommendations."""


analyze_performance_prompt = Prompt.from_function(
    analyze_performance,
    name='analyze-performance',
    description='Analyze service performance using metrics tools',
)

compare_services_prompt = Prompt.from_function(
    compare_services,
    name='compare-services',
    description='Compare performance metrics between multiple services',
)

top_services_prompt = Prompt.from_function(
    top_services,
    name='top-services',
    description='Find top N services by various metrics',
)
