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

"""Data models for SkyWalking trace tools."""

from pydantic import BaseModel, Field
from typing import List


class TraceSummary(BaseModel):
    """High-level overview of a single trace."""

    trace_id: str = Field(..., description='The trace ID')
    total_spans: int = Field(0, description='Number of spans in the trace')
    services: List[str] = Field(default_factory=list, description='Services involved, sorted')
    total_duration_ms: int = Field(0, description='Duration of the root span')
    error_count: int = Field(0, description='Number of spans flagged as errors')
    has_errors: bool = Field(False, description='Whether any span is an error')
    root_endpoint: str = Field('', description='Endpoint of the root span')
    start_time_ms: int = Field(0, description='Start time of the root span')
    end_time_ms: int = Field(0, description='End time of the root span')


class BasicTraceSummary(BaseModel):
    """Essential information about one trace of a trace list."""

    trace_id: str = Field(..., description='First trace ID of the entry')
    service_name: str = Field('', description='Segment ID the entry was reported from')
    endpoint_name: str = Field('', description='Endpoint names, comma separated')
    start_time_ms: int = Field(0, description='Start time in epoch milliseconds')
    duration_ms: int = Field(0, description='Trace duration in milliseconds')
    is_error: bool = Field(False, description='Whether the trace failed')
    span_count: int = Field(0, description='Always 0, trace lists do not carry spans')


class TimeRange(BaseModel):
    """Time window covered by a list of traces."""

    start_time_ms: int = 0
    end_time_ms: int = 0
    duration_ms: int = 0


class TracesSummary(BaseModel):
    """Aggregated overview of a trace list."""

    total_traces: int = 0
    success_count: int = 0
    error_count: int = 0
    services: List[str] = Field(default_factory=list)
    endpoints: List[str] = Field(default_factory=list)
    avg_duration_ms: float = 0.0
    min_duration_ms: int = 0
    max_duration_ms: int = 0
    time_range: TimeRange = Field(default_factory=TimeRange)
    error_traces: List[BasicTraceSummary] = Field(
        default_factory=list, description='Error traces, slowest first'
    )
    slow_traces: List[BasicTraceSummary] = Field(
        default_factory=list,
        description='Traces slower than the requested threshold, slowest first',
    )
