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

"""Constants for the SkyWalking MCP server."""

SERVER_NAME = 'skywalking-mcp-server'

# Environment variable names
ENV_SW_URL = 'SW_URL'
ENV_TRANSPORT = 'MCP_TRANSPORT'
ENV_HOST = 'MCP_HOST'
ENV_PORT = 'MCP_PORT'
ENV_ENDPOINT_PATH = 'MCP_ENDPOINT_PATH'
ENV_LOG_LEVEL = 'SW_MCP_LOG_LEVEL'
ENV_LOG_FILE = 'SW_MCP_LOG_FILE'

# Header that lets HTTP clients point a single request at another OAP
SW_URL_HEADER = 'SW-URL'

# Server defaults
DEFAULT_SW_URL = 'http://localhost:12800'
DEFAULT_TRANSPORT = 'stdio'
DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 8000
DEFAULT_ENDPOINT_PATH = '/mcp'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_TIMEOUT = 30.0
TRANSPORTS = ('stdio', 'sse', 'streamable-http')
GRAPHQL_PATH = '/graphql'

# Query defaults
DEFAULT_PAGE_SIZE = 15
DEFAULT_PAGE_NUM = 1
DEFAULT_DURATION_MINUTES = 30
DEFAULT_TRACE_PAGE_SIZE = 20
DEFAULT_TRACE_DURATION = '1h'
DEFAULT_LIST_PAGE_SIZE = 20
DEFAULT_TOP_N = 5
DEFAULT_TOP_N_DURATION = '30m'
DEFAULT_LAYER = 'GENERAL'
NOW_KEYWORD = 'now'

# Timestamp layouts
TIME_FORMAT_FULL = '%Y-%m-%d %H:%M:%S'
# strptime backtracks, so "%H%M" would read "03" as 00:03; the hour layout goes first
ABSOLUTE_TIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d %H',
    '%Y-%m-%d %H%M',
    '%Y-%m-%d %H%M%S',
    '%Y-%m-%d',
)

# Trace views
VIEW_FULL = 'full'
VIEW_SUMMARY = 'summary'
VIEW_ERRORS_ONLY = 'errors_only'

# Trace states
TRACE_STATE_SUCCESS = 'success'
TRACE_STATE_ERROR = 'error'
TRACE_STATE_ALL = 'all'

# Trace query orders
QUERY_ORDER_START_TIME = 'start_time'
QUERY_ORDER_DURATION = 'duration'

EVENT_LEVELS = ('Normal', 'Warning', 'Critical')

# Error messages
ERR_MISSING_DURATION = 'missing required parameter: duration'
ERR_MISSING_TRACE_ID = 'missing required parameter: trace_id'
ERR_FAILED_TO_QUERY_TRACE = "failed to query trace '{}': {}"
ERR_FAILED_TO_QUERY_COLD_TRACE = "failed to query cold trace '{}': {}"
ERR_FAILED_TO_QUERY_TRACES = 'failed to query traces: {}'
ERR_NO_FILTER_CONDITION = 'at least one filter condition must be provided'
ERR_INVALID_DURATION_RANGE = 'invalid duration range: min_duration ({}) > max_duration ({})'
ERR_NEGATIVE_PAGE_SIZE = 'page_size cannot be negative'
ERR_NEGATIVE_PAGE_NUM = 'page_num cannot be negative'
ERR_INVALID_TRACE_STATE = "invalid trace_state '{}', available states: {}, {}, {}"
ERR_INVALID_QUERY_ORDER = "invalid query_order '{}', available orders: {}, {}"
ERR_TRACE_NOT_FOUND = "trace with ID '{}' not found"
ERR_INVALID_VIEW = "invalid view '{}', available views: {}, {}, {}"
ERR_NO_TRACES_FOUND = 'no traces found matching the query criteria'
ERR_MISSING_METRICS_NAME = 'missing required parameter: metrics_name'
ERR_INVALID_TOP_N = 'top_n must be a positive integer'
ERR_FAILED_TO_QUERY_METRICS = 'failed to query metrics: {}'
ERR_FAILED_TO_QUERY_LOGS = 'failed to query logs: {}'
ERR_FAILED_TO_QUERY_ALARMS = 'failed to query alarms: {}'
ERR_FAILED_TO_QUERY_EVENTS = 'failed to query events: {}'
ERR_MISSING_SERVICE = 'either service_id or service_name must be provided'
ERR_FAILED_TO_QUERY_TOPOLOGY = 'failed to query {} topology: {}'
ERR_MISSING_EXPRESSION = 'expression is required'
ERR_FAILED_TO_EXECUTE_MQE = 'failed to execute MQE expression: {}'
ERR_FAILED_TO_LIST_METRICS = 'failed to list metrics: {}'
ERR_MISSING_METRIC_NAME = 'metric_name must be provided'
ERR_FAILED_TO_GET_METRIC_TYPE = 'failed to get metric type: {}'

SERVER_INSTRUCTIONS = """
# SkyWalking MCP Server

This server lets you query an Apache SkyWalking OAP backend. All tools are read-only.

## Tool groups
- Traces: get_trace_details, get_cold_trace_details, query_traces
- Metrics: query_single_metrics, query_top_n_metrics
- MQE: execute_mqe_expression, list_mqe_metrics, get_mqe_metric_type
- Logs: query_logs
- Alarms and events: query_alarms, query_events
- Topology: get_service_topology, get_instance_topology, get_endpoint_topology

## Time ranges
- `duration` accepts signed durations such as "-1h", "-30m" or "2h30m" and legacy tokens such as "7d".
  Negative values look back from now, positive values look ahead.
- `start`/`end` accept "now", relative offsets ("-1h") or absolute times ("2025-01-01 12:00:00").
- When `step` is omitted it is picked from the window: SECOND (<1h), MINUTE (1h-24h), HOUR (1d-7d), DAY (>=7d).

## Tips
- Start trace analysis with view="summary", then use "errors_only" or "full".
- Read the mqe://docs/syntax and mqe://docs/examples resources before writing MQE expressions.
- Use list_mqe_metrics to discover metric names.
"""
