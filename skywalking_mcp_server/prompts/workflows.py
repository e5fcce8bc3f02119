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

"""Tool lists and recommended workflows shared by the analysis prompts."""

from typing import Dict, List, Tuple


DEFAULT_PROMPT_DURATION = '-1h'

TOOL_CAPABILITIES: Dict[str, List[str]] = {
    'performance_analysis': [
        'query_single_metrics',
        'query_top_n_metrics',
        'execute_mqe_expression',
    ],
    'trace_investigation': [
        'query_traces',
        'get_trace_details',
        'get_cold_trace_details',
    ],
    'log_analysis': ['query_logs'],
    'mqe_query_building': [
        'execute_mqe_expression',
        'list_mqe_metrics',
        'get_mqe_metric_type',
    ],
    'service_comparison': [
        'query_single_metrics',
        'query_top_n_metrics',
        'execute_mqe_expression',
    ],
    'metrics_exploration': ['list_mqe_metrics', 'get_mqe_metric_type'],
}

# (tool, purpose) in the order the tools should be called
ANALYSIS_CHAINS: Dict[str, List[Tuple[str, str]]] = {
    'performance_analysis': [
        ('query_single_metrics', 'Read basic metrics such as CPM, SLA and response time'),
        ('execute_mqe_expression', 'Derive values such as SLA percentage and percentiles'),
        ('query_top_n_metrics', 'Rank endpoints by response time or traffic'),
        ('query_traces', 'Find error traces for a closer look'),
    ],
    'trace_investigation': [
        ('query_traces', 'Search traces with filters'),
        ('get_trace_details', 'Inspect individual traces'),
        ('get_cold_trace_details', 'Look up historical traces missing from hot storage'),
    ],
    'log_analysis': [
        ('query_logs', 'Search and filter log entries'),
    ],
    'mqe_query_building': [
        ('list_mqe_metrics', 'Discover the available metrics'),
        ('get_mqe_metric_type', 'Check how each metric can be used'),
        ('execute_mqe_expression', 'Run and verify the expression'),
    ],
}


def generate_tool_instructions(analysis_type: str) -> str:
    """Render the tool list and workflow of an analysis type as markdown."""
    tools = TOOL_CAPABILITIES.get(analysis_type, [])
    if not tools:
        return 'No specific tools defined for this analysis type.'

    lines = ['**Available Tools:**']
    lines.extend(f'- {tool}' for tool in tools)

    chain = ANALYSIS_CHAINS.get(analysis_type, [])
    if chain:
        lines.append('')
        lines.append('**Recommended Analysis Workflow:**')
        lines.extend(
            f'{index}. {tool}: {purpose}' for index, (tool, purpose) in enumerate(chain, start=1)
        )
    return '\n'.join(lines) + '\n'
