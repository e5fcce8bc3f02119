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

"""Tests for the trace and trace list views."""

import pytest
from skywalking_mcp_server.client import NotFoundError
from skywalking_mcp_server.trace.models import BasicTraceSummary, TraceSummary, TracesSummary
from skywalking_mcp_server.trace.views import (
    filter_error_spans,
    filter_error_traces,
    generate_trace_summary,
    generate_traces_summary,
    parse_start_time_ms,
    process_trace_result,
    process_traces_result,
)


def _span(span_id, parent_span_id, service, is_error=False, start=0, end=0, endpoint=''):
    return {
        'spanId': span_id,
        'parentSpanId': parent_span_id,
        'serviceCode': service,
        'isError': is_error,
        'startTime': start,
        'endTime': end,
        'endpointName': endpoint,
    }


def _trace(trace_id, duration, start, is_error=False, endpoints=None, segment='seg'):
    return {
        'segmentId': segment,
        'endpointNames': endpoints if endpoints is not None else ['/api'],
        'duration': duration,
        'start': start,
        'isError': is_error,
        'traceIds': [trace_id],
    }


@pytest.fixture
def spans():
    """Spans of a trace crossing two services with one error."""
    return [
        _span(0, -1, 'frontend', start=1000, end=1450, endpoint='GET:/songs'),
        _span(1, 0, 'frontend', start=1010, end=1400),
        _span(0, -1, 'songs', is_error=True, start=1020, end=1390, endpoint='/songs'),
    ]


@pytest.fixture
def traces():
    """A trace list with two errors."""
    return [
        _trace('t1', 120, '1700000000000', endpoints=['/a']),
        _trace('t2', 900, '1700000001000', is_error=True, endpoints=['/b', '/a'], segment='s2'),
        _trace('t3', 300, '1700000002000', is_error=True, endpoints=['/c']),
        _trace('t4', 50, '1700000000500'),
    ]


class TestTraceSummary:
    """Tests for single trace summaries."""

    def test_generate_trace_summary(self, spans):
        """Test counts, services and the root span timing."""
        summary = generate_trace_summary('trace-1', spans)

        assert summary.trace_id == 'trace-1'
        assert summary.total_spans == 3
        assert summary.services == ['frontend', 'songs']
        assert summary.error_count == 1
        assert summary.has_errors is True
        # The last root span encountered wins
        assert summary.root_endpoint == '/songs'
        assert summary.start_time_ms == 1020
        assert summary.end_time_ms == 1390
        assert summary.total_duration_ms == 370

    def test_summary_without_root(self):
        """Test that a trace without a root span has no timing."""
        summary = generate_trace_summary('trace-1', [_span(3, 2, 'svc', start=5, end=10)])
        assert summary.total_duration_ms == 0
        assert summary.root_endpoint == ''
        assert summary.has_errors is False

    def test_filter_error_spans(self, spans):
        """Test that only error spans are kept."""
        errors = filter_error_spans(spans)
        assert len(errors) == 1
        assert errors[0]['serviceCode'] == 'songs'


class TestProcessTraceResult:
    """Tests for rendering a single trace in a view."""

    @pytest.mark.parametrize('view', ['full', 'summary', 'errors_only', 'bogus'])
    @pytest.mark.parametrize('trace_data', [None, {}, {'spans': []}, {'spans': None}])
    def test_empty_trace_is_not_found(self, trace_data, view):
        """Test that a trace without spans is reported as not found in every view."""
        with pytest.raises(NotFoundError) as exc_info:
            process_trace_result('missing', trace_data, view)
        assert str(exc_info.value) == "trace with ID 'missing' not found"

    def test_full_view_returns_raw_data(self, spans):
        """Test that the full view is the untouched payload."""
        data = {'spans': spans}
        assert process_trace_result('t', data, 'full') is data

    def test_summary_view(self, spans):
        """Test the summary view."""
        result = process_trace_result('t', {'spans': spans}, 'summary')
        assert isinstance(result, TraceSummary)

    def test_errors_only_view(self, spans):
        """Test the errors_only view."""
        result = process_trace_result('t', {'spans': spans}, 'errors_only')
        assert [span['serviceCode'] for span in result] == ['songs']

    def test_invalid_view(self, spans):
        """Test that an unknown view is rejected."""
        with pytest.raises(ValueError) as exc_info:
            process_trace_result('t', {'spans': spans}, 'compact')
        assert (
            str(exc_info.value)
            == "invalid view 'compact', available views: full, summary, errors_only"
        )


class TestTracesSummary:
    """Tests for trace list summaries."""

    def test_generate_traces_summary(self, traces):
        """Test aggregate counts and timings."""
        summary = generate_traces_summary(traces)

        assert summary.total_traces == 4
        assert summary.success_count == 2
        assert summary.error_count == 2
        assert summary.avg_duration_ms == pytest.approx((120 + 900 + 300 + 50) / 4)
        assert summary.min_duration_ms == 50
        assert summary.max_duration_ms == 900
        assert summary.services == ['s2', 'seg']
        assert summary.endpoints == ['/a', '/api', '/b', '/c']
        assert summary.time_range.start_time_ms == 1700000000000
        assert summary.time_range.end_time_ms == 1700000002300
        assert summary.time_range.duration_ms == 2300
        assert [t.trace_id for t in summary.error_traces] == ['t2', 't3']
        assert summary.slow_traces == []

    def test_slow_traces_need_threshold(self, traces):
        """Test that slow traces are collected above a positive threshold."""
        summary = generate_traces_summary(traces, slow_trace_threshold=200)
        assert [t.trace_id for t in summary.slow_traces] == ['t2', 't3']
        assert summary.slow_traces[0].is_error is True

    def test_unparsable_start_is_skipped(self):
        """Test that entries with an unknown start only count towards the total."""
        summary = generate_traces_summary(
            [_trace('ok', 100, '1700000000000'), _trace('bad', 999, 'not-a-time', True)]
        )
        assert summary.total_traces == 2
        assert summary.error_count == 0
        assert summary.success_count == 1
        assert summary.max_duration_ms == 100

    def test_summary_is_idempotent(self, traces):
        """Test that recomputing the summary gives the same result."""
        assert generate_traces_summary(traces) == generate_traces_summary(traces)

    def test_empty_list(self):
        """Test that an empty list gives an empty summary."""
        assert generate_traces_summary([]) == TracesSummary()

    def test_filter_error_traces(self, traces):
        """Test that exactly the error traces are returned, slowest first."""
        errors = filter_error_traces(traces)
        assert all(isinstance(t, BasicTraceSummary) for t in errors)
        assert [t.trace_id for t in errors] == ['t2', 't3']
        assert [t.duration_ms for t in errors] == [900, 300]
        assert errors[0].endpoint_name == '/b, /a'
        assert errors[0].service_name == 's2'
        assert errors[0].span_count == 0

    @pytest.mark.parametrize(
        'value,expected',
        [
            ('1700000000000', 1700000000000),
            (1700000000000, 1700000000000),
            ('1970-01-01 00:00:01', 1000),
            ('garbage', None),
            (None, None),
        ],
    )
    def test_parse_start_time_ms(self, value, expected):
        """Test the accepted start formats."""
        assert parse_start_time_ms(value) == expected


class TestProcessTracesResult:
    """Tests for rendering a trace list in a view."""

    @pytest.mark.parametrize('brief', [None, {}, {'traces': []}])
    def test_empty_list_is_not_found(self, brief):
        """Test that an empty list is reported as not found."""
        with pytest.raises(NotFoundError) as exc_info:
            process_traces_result(brief, 'summary')
        assert str(exc_info.value) == 'no traces found matching the query criteria'

    def test_views(self, traces):
        """Test each view."""
        brief = {'traces': traces}
        assert process_traces_result(brief, 'full') is brief
        assert isinstance(process_traces_result(brief, 'summary'), TracesSummary)
        assert len(process_traces_result(brief, 'errors_only')) == 2

    def test_invalid_view(self, traces):
        """Test that an unknown view is rejected."""
        with pytest.raises(ValueError):
            process_traces_result({'traces': traces}, 'everything')
