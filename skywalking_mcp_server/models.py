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

"""Shared data models for the SkyWalking MCP server."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from skywalking_mcp_server.consts import (
    DEFAULT_ENDPOINT_PATH,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    DEFAULT_SW_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_TRANSPORT,
)
from typing import Any, Dict, Optional


class Step(str, Enum):
    """Time bucket granularity understood by OAP."""

    SECOND = 'SECOND'
    MINUTE = 'MINUTE'
    HOUR = 'HOUR'
    DAY = 'DAY'
    MONTH = 'MONTH'

    @classmethod
    def parse(cls, value: Optional[str], allow_month: bool = False) -> Optional['Step']:
        """Return the matching step, or None when the value is empty or unknown."""
        if not value:
            return None
        try:
            step = cls(value.upper())
        except ValueError:
            return None
        if step is cls.MONTH and not allow_month:
            return None
        return step


class Scope(str, Enum):
    """Entity scopes of the SkyWalking query protocol."""

    ALL = 'All'
    SERVICE = 'Service'
    SERVICE_INSTANCE = 'ServiceInstance'
    ENDPOINT = 'Endpoint'
    PROCESS = 'Process'
    SERVICE_RELATION = 'ServiceRelation'
    SERVICE_INSTANCE_RELATION = 'ServiceInstanceRelation'
    ENDPOINT_RELATION = 'EndpointRelation'
    PROCESS_RELATION = 'ProcessRelation'

    @classmethod
    def is_valid(cls, value: Optional[str]) -> bool:
        """Check whether a raw string names a known scope."""
        return value in {scope.value for scope in cls}


class KeyValue(BaseModel):
    """A key/value pair used for span tags and log tags."""

    key: str = Field(..., description='Tag key, e.g. http.method')
    value: str = Field(..., description='Tag value, e.g. POST')


class Duration(BaseModel):
    """Time window of a query, formatted for the OAP GraphQL API."""

    model_config = ConfigDict(populate_by_name=True)

    start: str = Field(..., description='Start of the window, formatted by step')
    end: str = Field(..., description='End of the window, formatted by step')
    step: Step = Field(..., description='Bucket granularity')
    cold_stage: Optional[bool] = Field(
        default=None, alias='coldStage', description='Query cold-stage storage'
    )

    def to_variables(self) -> Dict[str, Any]:
        """Render the duration as a GraphQL input object."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class Pagination(BaseModel):
    """Paging input of the OAP GraphQL API."""

    model_config = ConfigDict(populate_by_name=True)

    page_num: int = Field(..., alias='pageNum')
    page_size: int = Field(..., alias='pageSize')

    def to_variables(self) -> Dict[str, Any]:
        """Render the pagination as a GraphQL input object."""
        return self.model_dump(by_alias=True)


class SkyWalkingConfig(BaseModel):
    """Configuration for the SkyWalking MCP server.

    Attributes:
        url: Base URL of the SkyWalking OAP server. ``/graphql`` is appended when missing.
        transport: MCP transport, one of stdio, sse or streamable-http.
        host: Host to bind to for HTTP transports.
        port: Port to bind to for HTTP transports.
        endpoint_path: Path of the streamable HTTP endpoint.
        log_level: Level of the stderr log sink.
        log_file: Optional file that receives DEBUG level logs.
        timeout: Timeout in seconds for each GraphQL request.
    """

    url: str = Field(default=DEFAULT_SW_URL)
    transport: str = Field(default=DEFAULT_TRANSPORT)
    host: str = Field(default=DEFAULT_HOST)
    port: int = Field(default=DEFAULT_PORT)
    endpoint_path: str = Field(default=DEFAULT_ENDPOINT_PATH)
    log_level: str = Field(default=DEFAULT_LOG_LEVEL)
    log_file: Optional[str] = None
    timeout: float = Field(default=DEFAULT_TIMEOUT)
