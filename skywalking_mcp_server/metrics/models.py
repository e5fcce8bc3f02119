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

"""Data models for SkyWalking metrics tools."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class MetricsValue(BaseModel):
    """A single aggregated metric value."""

    value: int = 0


class SelectedRecord(BaseModel):
    """One entry of a top-N ranking."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description='Entity name')
    id: Optional[str] = Field(None, description='Entity ID')
    value: Optional[str] = Field(None, description='Metric value, as reported by OAP')
    ref_id: Optional[str] = Field(None, alias='refId', description='Trace or log reference, if any')
