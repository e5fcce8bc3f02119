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

"""Trace and log investigation prompts."""

from mcp.server.fastmcp.prompts import Prompt
from skywalking_mcp_server.prompts.workflows import (
    DEFAULT_PROMPT_DURATION,
    generate_tool_instructions,
)
from typing import Optional


def investigate_traces(
    service_id: Optional[str] = None,
    trace_state: Optional[str] = None,
    duration: Optional[str] = None,
) -> str:
    """Generate a plan for finding and explaining problematic traces.

    Args:
        service_id: The service to investigate
        trace_state: success, error or all. Defaults to all
        duration: Time window to search. Defaults to -1h

    Returns:
        Step-by-step trace investigation instructions
    """
    service_id = service_id or ''
    trace_state = trace_state or 'all'
    duration = duration or DEFAULT_PROMPT_DURATION
    tool_instructions = generate_tool_instructions('trace_investigation')

    return f"""Investigate traces with filters: service_id="{service_id}", trace_state="{trace_state}", duration="{duration}".

{tool_instructions}
**Analysis Steps:**

**Find Problematic Traces**
- Call query_traces with view="summary" for an overview
- Look for error traces, slow traces and other anomalies
- Note the trace IDs worth a closer look

**Inspect Specific Traces**
- Call get_trace_details with each trace_id
- Start with view="summary", use view="errors_only" when the trace failed
- Use view="full" for span-by-span analysis

**Performance**
- Use min_trace_duration to focus on slow traces
- Find the spans that dominate the duration
- Look for cascading delays

**Error Patterns**
- Call query_traces with trace_state="error"
- Group errors by type and service
- Follow how errors propagate between services

**Historical Data**
- If recent data shows nothing, use get_cold_trace_details for older traces

Provide specific findings and actionable recommendations."""


def trace_deep_dive(
    trace_id: str, view: Optional[str] = None, check_cold_storage: Optional[str] = None
) -> str:
    """Generate a plan for analysing a single trace end to end."""
    view = view or 'summary'
    check_cold_storage = check_cold_storage or ''

    return f"""Perform a deep dive analysis of trace {trace_id}:

**Primary Analysis:**
- get_trace_details with trace_id: "{trace_id}" and view: "{view}"
- Start with the summary view for quick insights
- Use the errors_only view if the trace has errors
- Use the full view for complete span analysis

**Cold Storage:**
- If the trace is not found in hot storage and check_cold_storage is "{check_cold_storage}"
- Use get_cold_trace_details with the same trace_id and a duration such as "-7d"

**Trace Structure**
- Service call flow and dependencies
- Span duration breakdown and the critical path
- Parallel versus sequential operations

**Performance**
- Bottleneck spans
- Database query time
- Latency of external calls

**Errors** (if any)
- Where the error started and how it propagated
- Root cause and impact

**Optimization Opportunities**
- Redundant calls
- Caching candidates
- Work that could run in parallel

Provide a detailed trace analysis with specific optimization recommendations."""


def analyze_logs(
    service_id: Optional[str] = None,
    log_level: Optional[str] = None,
    duration: Optional[str] = None,
) -> str:
    """Generate a log analysis plan built around query_logs."""
    service_id = service_id or ''
    log_level = log_level or 'ERROR'
    duration = duration or DEFAULT_PROMPT_DURATION
    tool_instructions = generate_tool_instructions('log_analysis')

    return f"""Analyze service logs with the query_logs tool:

{tool_instructions}
**Tool Configuration:**
- query_logs with the following parameters:
  - service_id: "{service_id}" (if specified)
  - tags: [{{"key": "level", "value": "{log_level}"}}] to filter by log level
  - start: "{duration}" for the time range
  - cold: true if historical data is needed

**Analysis Steps:**

**Log Patterns**
- Fetch the recent logs of the service
- Filter by level (ERROR, WARN, INFO)
- Look for recurring messages and their frequency

**Errors**
- Focus on ERROR logs first
- Group similar messages
- Follow trace IDs into get_trace_details
- Look for timestamp patterns

**Performance Correlation**
- Compare log timestamps with performance issues
- Look for resource exhaustion, timeouts and connection errors

Provide specific log analysis findings and recommendations."""


investigate_traces_prompt = Prompt.from_function(
    investigate_traces,
    name='investigate-traces',
    description='Investigate traces for errors and performance issues',
)

trace_deep_dive_prompt = Prompt.from_function(
    trace_deep_dive,
    name='trace-deep-dive',
    description='Deep dive analysis of a specific trace',
)

analyze_logs_prompt = Prompt.from_function(
    analyze_logs,
    name='analyze-logs',
    description='Analyze service logs for errors and patterns',
)
