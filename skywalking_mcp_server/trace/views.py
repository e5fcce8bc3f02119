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

"""Projections of raw trace data for LLM consumption.

A single trace (``queryTrace``) and a trace list (``queryBasicTraces``) can each be
rendered in three views:

* ``full`` returns the raw GraphQL payload untouched.
* ``summary`` aggregates counts, services and timings.
* ``errors_only`` keeps only the entries flagged as errors.
"""

from datetime import datetime, timezone
from skywalking_mcp_server.client import NotFoundError
from skywalking_mcp_server.consts import (
    ERR_INVALID_VIEW,
    ERR_NO_TRACES_FOUND,
    ERR_TRACE_NOT_FOUND,
    TIME_FORMAT_FULL,
    VIEW_ERRORS_ONLY,
    VIEW_FULL,
    VIEW_SUMMARY,
)
from skywalking_mcp_server.trace.models import (
    BasicTraceSummary,
    TimeRange,
    TraceSummary,
    TracesSummary,
)
from typing import Any, Dict, List, Optional, Union


def invalid_view_error(view: str) -> ValueError:
    """Build the error raised for an unknown view."""
    return ValueError(ERR_INVALID_VIEW.format(view, VIEW_FULL, VIEW_SUMMARY, VIEW_ERRORS_ONLY))


def _is_error(item: Dict[str, Any]) -> bool:
    return item.get('isError') is True


def parse_start_time_ms(value: Any) -> Optional[int]:
    """Convert the ``start`` of a trace list entry to epoch milliseconds.

    OAP reports epoch milliseconds as a string; the ``%Y-%m-%d %H:%M:%S`` layout is
    also accepted and read as UTC. Returns None when neither form matches.
    """
    if value is None:
        return None
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    try:
        parsed = datetime.strptime(text, TIME_FORMAT_FULL).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


def generate_trace_summary(trace_id: str, spans: List[Dict[str, Any]]) -> TraceSummary:
    """Summarize a single trace.

    The root span is the one with span ID 0 and parent span ID -1; it supplies the
    root endpoint and the start, end and total duration of the trace.
    """
    summary = TraceSummary(trace_id=trace_id, total_spans=len(spans))
    services = set()

    for span in spans:
        if span is None:
            continue
        services.add(span.get('serviceCode') or '')
        if _is_error(span):
            summary.error_count += 1
        if span.get('spanId') == 0 and span.get('parentSpanId') == -1:
            summary.root_endpoint = span.get('endpointName') or ''
            summary.start_time_ms = span.get('startTime') or 0
            summary.end_time_ms = span.get('endTime') or 0
            if summary.start_time_ms > 0 and summary.end_time_ms > 0:
                summary.total_duration_ms = summary.end_time_ms - summary.start_time_ms

    summary.has_errors = summary.error_count > 0
    summary.services = sorted(services)
    return summary


def filter_error_spans(spans: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep only the spans flagged as errors."""
    return [span for span in spans if span is not None and _is_error(span)]


def process_trace_result(
    trace_id: str, trace_data: Optional[Dict[str, Any]], view: str
) -> Union[TraceSummary, List[Dict[str, Any]], Dict[str, Any]]:
    """Render a single trace in the requested view.

    Raises:
        NotFoundError: If the trace has no spans.
        ValueError: If the view is unknown.
    """
    spans = (trace_data or {}).get('spans') or []
    if not spans:
        raise NotFoundError(ERR_TRACE_NOT_FOUND.format(trace_id))

    if view == VIEW_SUMMARY:
        return generate_trace_summary(trace_id, spans)
    elif view == VIEW_ERRORS_ONLY:
        return filter_error_spans(spans)
    elif view == VIEW_FULL:
        return trace_data
    raise invalid_view_error(view)


def _basic_trace_summary(
    trace: Dict[str, Any], start_time_ms: int, duration: int, is_error: bool
) -> BasicTraceSummary:
    trace_ids = trace.get('traceIds') or ['']
    return BasicTraceSummary(
        trace_id=trace_ids[0],
        service_name=trace.get('segmentId') or '',
        endpoint_name=', '.join(trace.get('endpointNames') or []),
        start_time_ms=start_time_ms,
        duration_ms=duration,
        is_error=is_error,
        span_count=0,
    )


def _by_duration_desc(traces: List[BasicTraceSummary]) -> List[BasicTraceSummary]:
    return sorted(traces, key=lambda t: t.duration_ms, reverse=True)


def generate_traces_summary(
    traces: List[Dict[str, Any]], slow_trace_threshold: Optional[int] = None
) -> TracesSummary:
    """Aggregate a trace list into counts, timings and notable traces.

    Entries whose start time cannot be parsed are left out of every statistic except
    ``total_traces``. Slow traces are only collected when a positive threshold is set.
    """
    if not traces:
        return TracesSummary()

    summary = TracesSummary(total_traces=len(traces))
    services = set()
    endpoints = set()
    durations: List[int] = []
    error_traces: List[BasicTraceSummary] = []
    slow_traces: List[BasicTraceSummary] = []
    min_start = 0
    max_end = 0

    for trace in traces:
        if trace is None:
            continue
        start_ms = parse_start_time_ms(trace.get('start'))
        if start_ms is None:
            continue
        duration = int(trace.get('duration') or 0)
        end_ms = start_ms + duration

        if min_start == 0 or start_ms < min_start:
            min_start = start_ms
        if end_ms > max_end:
            max_end = end_ms
        durations.append(duration)

        is_error = _is_error(trace)
        if is_error:
            summary.error_count += 1
            error_traces.append(_basic_trace_summary(trace, start_ms, duration, True))
        else:
            summary.success_count += 1

        if slow_trace_threshold and slow_trace_threshold > 0 and duration > slow_trace_threshold:
            slow_traces.append(_basic_trace_summary(trace, start_ms, duration, is_error))

        services.add(trace.get('segmentId') or '')
        endpoints.update(name for name in trace.get('endpointNames') or [] if name)

    if durations:
        summary.avg_duration_ms = sum(durations) / len(durations)
        summary.min_duration_ms = min(durations)
        summary.max_duration_ms = max(durations)

    summary.time_range = TimeRange(
        start_time_ms=min_start, end_time_ms=max_end, duration_ms=max_end - min_start
    )
    summary.services = sorted(services)
    summary.endpoints = sorted(endpoints)
    summary.error_traces = _by_duration_desc(error_traces)
    summary.slow_traces = _by_duration_desc(slow_traces)
    return summary


def filter_error_traces(traces: List[Dict[str, Any]]) -> List[BasicTraceSummary]:
    """Keep only error traces, slowest first."""
    error_traces = []
    for trace in traces:
        if trace is None or not _is_error(trace):
            continue
        start_ms = parse_start_time_ms(trace.get('start'))
        if start_ms is None:
            continue
        error_traces.append(
            _basic_trace_summary(trace, start_ms, int(trace.get('duration') or 0), True)
        )
    return _by_duration_desc(error_traces)


def process_traces_result(
    trace_brief: Optional[Dict[str, Any]],
    view: str,
    slow_trace_threshold: Optional[int] = None,
) -> Union[TracesSummary, List[BasicTraceSummary], Dict[str, Any]]:
    """Render a trace list in the requested view.

    Raises:
        NotFoundError: If the list is empty.
        ValueError: If the view is unknown.
    """
    traces = (trace_brief or {}).get('traces') or []
    if not traces:
        raise NotFoundError(ERR_NO_TRACES_FOUND)

    if view == VIEW_SUMMARY:
        return generate_traces_summary(traces, slow_trace_threshold)
    elif view == VIEW_ERRORS_ONLY:
        return filter_error_traces(traces)
    elif view == VIEW_FULL:
        return trace_brief
    raise invalid_view_error(view)
