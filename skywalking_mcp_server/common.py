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

"""Common helpers for time ranges, paging and request payloads."""

import re
from datetime import datetime, timedelta
from skywalking_mcp_server.consts import (
    ABSOLUTE_TIME_FORMATS,
    DEFAULT_DURATION_MINUTES,
    DEFAULT_PAGE_NUM,
    DEFAULT_PAGE_SIZE,
    GRAPHQL_PATH,
    NOW_KEYWORD,
)
from skywalking_mcp_server.models import Duration, Pagination, Step
from typing import Any, Dict, Optional, Tuple


_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_PART = r'(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)'
_DURATION_RE = re.compile(rf'^([+-]?)((?:{_DURATION_PART})+)$')
_DURATION_PART_RE = re.compile(_DURATION_PART)
_LEADING_INT_RE = re.compile(r'\s*([+-]?\d+)')
# Largest duration Go's time.ParseDuration accepts, in seconds
_MAX_DURATION_SECONDS = 9223372036.854775807

_STEP_FORMATS = {
    Step.DAY: '%Y-%m-%d',
    Step.HOUR: '%Y-%m-%d %H',
    Step.MINUTE: '%Y-%m-%d %H%M',
    Step.SECOND: '%Y-%m-%d %H%M%S',
}
_DEFAULT_STEP_FORMAT = '%Y-%m-%d %H:%M:%S'


def finalize_url(url: str) -> str:
    """Ensure the OAP URL points at the GraphQL endpoint."""
    if not url.endswith(GRAPHQL_PATH):
        url = url.rstrip('/') + GRAPHQL_PATH
    return url


def parse_signed_duration(value: str) -> Optional[timedelta]:
    """Parse a signed duration such as ``-1h``, ``2h30m`` or ``1.5h``.

    The grammar is a sign followed by one or more ``<decimal><unit>`` groups, where
    unit is one of ns, us, ms, s, m or h. Returns None when the value does not match,
    which lets callers fall back to other formats. Day units are not part of this
    grammar; ``7d`` is handled by the legacy parser instead.
    """
    if value in ('0', '+0', '-0'):
        return timedelta(0)
    match = _DURATION_RE.match(value or '')
    if not match:
        return None
    seconds = sum(
        float(number) * _DURATION_UNITS[unit]
        for number, unit in _DURATION_PART_RE.findall(match.group(2))
    )
    if seconds > _MAX_DURATION_SECONDS:
        return None
    if match.group(1) == '-':
        seconds = -seconds
    return timedelta(seconds=seconds)


def format_time_by_step(moment: datetime, step: Step) -> str:
    """Format a timestamp with the layout OAP expects for the given step."""
    return moment.strftime(_STEP_FORMATS.get(step, _DEFAULT_STEP_FORMAT))


def determine_adaptive_step(start: datetime, end: datetime) -> Step:
    """Pick the bucket granularity that fits the length of a window."""
    span = end - start
    if span >= timedelta(days=7):
        return Step.DAY
    elif span >= timedelta(hours=24):
        return Step.HOUR
    elif span >= timedelta(hours=1):
        return Step.MINUTE
    return Step.SECOND


def _parse_legacy_duration(value: str, now: datetime) -> Tuple[datetime, datetime, Step]:
    # "Nd" and "Nh" tokens always look back from now
    if len(value) > 1 and value[-1] in 'dD':
        days = _leading_int(value[:-1])
        if days is not None and days > 0:
            try:
                return now - timedelta(days=days), now, Step.DAY
            except OverflowError:
                pass
        return now - timedelta(days=7), now, Step.DAY
    if len(value) > 1 and value[-1] in 'hH':
        hours = _leading_int(value[:-1])
        if hours is not None and hours > 0:
            try:
                return now - timedelta(hours=hours), now, Step.HOUR
            except OverflowError:
                pass
        return now - timedelta(hours=1), now, Step.HOUR
    return now - timedelta(days=7), now, Step.DAY


def _leading_int(text: str) -> Optional[int]:
    match = _LEADING_INT_RE.match(text)
    return int(match.group(1)) if match else None


def parse_duration(value: str, cold: bool = False, now: Optional[datetime] = None) -> Duration:
    """Convert a duration string into a query window.

    Signed durations are relative to now: a negative value covers the past
    (``-1h`` is one hour ago until now) and a positive one the future (``2h`` is now
    until two hours from now). The step is chosen from the length of the window.

    Anything else goes through the legacy parser, which understands ``7d`` and
    ``12h`` and silently falls back to the last 7 days at DAY granularity.

    Args:
        value: Duration string such as ``-30m``, ``2h30m`` or ``7d``.
        cold: Whether the query targets cold-stage storage.
        now: Reference time, defaults to the current local time.

    Returns:
        Duration with formatted start/end and the chosen step.
    """
    now = now or datetime.now()
    delta = parse_signed_duration(value)
    if delta is not None:
        if delta < timedelta(0):
            start, end = now + delta, now
        else:
            start, end = now, now + delta
        step = determine_adaptive_step(start, end)
    else:
        start, end, step = _parse_legacy_duration(value or '', now)

    return Duration(
        start=format_time_by_step(start, step),
        end=format_time_by_step(end, step),
        step=step,
        cold_stage=True if cold else None,
    )


def parse_absolute_time(value: str) -> Optional[datetime]:
    """Try each supported absolute layout in turn."""
    for time_format in ABSOLUTE_TIME_FORMATS:
        try:
            return datetime.strptime(value, time_format)
        except ValueError:
            continue
    return None


def parse_time_string(value: Optional[str], default: datetime, now: datetime) -> datetime:
    """Resolve a start or end parameter.

    Accepts an empty value (the default), ``now``, a relative offset like ``-30m``
    or an absolute timestamp. Unrecognised values fall back to the default.
    """
    if not value:
        return default
    if value.lower() == NOW_KEYWORD:
        return now
    delta = parse_signed_duration(value)
    if delta is not None:
        try:
            return now + delta
        except OverflowError:
            return default
    parsed = parse_absolute_time(value)
    if parsed is not None:
        return parsed
    return default


def build_duration(
    start: Optional[str],
    end: Optional[str],
    step: Optional[str],
    cold: bool = False,
    default_minutes: int = DEFAULT_DURATION_MINUTES,
    now: Optional[datetime] = None,
    allow_month: bool = False,
) -> Duration:
    """Build a query window from explicit start/end strings.

    When neither start nor end is given the window is the last ``default_minutes``
    minutes. A missing or unknown step is chosen from the window length.
    """
    now = now or datetime.now()
    if start or end:
        start_time = parse_time_string(start, now - timedelta(minutes=30), now)
        end_time = parse_time_string(end, now, now)
        step_value = Step.parse(step, allow_month=allow_month)
        if step_value is None:
            step_value = determine_adaptive_step(start_time, end_time)
        return Duration(
            start=format_time_by_step(start_time, step_value),
            end=format_time_by_step(end_time, step_value),
            step=step_value,
            cold_stage=True if cold else None,
        )

    if default_minutes <= 0:
        default_minutes = DEFAULT_DURATION_MINUTES
    return parse_duration(f'-{default_minutes}m', cold, now=now)


def resolve_duration(
    duration: Optional[str],
    start: Optional[str],
    end: Optional[str],
    step: Optional[str],
    cold: bool = False,
    default_minutes: int = DEFAULT_DURATION_MINUTES,
    allow_month: bool = False,
) -> Duration:
    """Prefer a duration string, otherwise build the window from start/end."""
    if duration:
        return parse_duration(duration, cold)
    return build_duration(start, end, step, cold, default_minutes, allow_month=allow_month)


def build_pagination(page_num: Optional[int], page_size: Optional[int]) -> Pagination:
    """Create paging input, replacing non-positive values with defaults."""
    if not page_num or page_num <= 0:
        page_num = DEFAULT_PAGE_NUM
    if not page_size or page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    return Pagination(page_num=page_num, page_size=page_size)


def remove_null_values(d: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dictionary with all None and empty string values removed."""
    return {k: v for k, v in d.items() if v is not None and v != ''}
