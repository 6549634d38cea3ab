# Copyright 2026 icecake0141
# SPDX-License-Identifier: Apache-2.0
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
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.
"""API schemas for the fleet backend."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from fleet_backend.app.domain.models import (
    CommandTargetOS,
    ConnectionType,
    CredentialType,
    GroupMembership,
    HostFilterKind,
    OSType,
    ProviderType,
)


class ConnectionRequest(BaseModel):
    """Payload to create a connection."""

    name: str = Field(min_length=1, max_length=200)
    hostname: str = Field(min_length=1, max_length=255)
    port: int = Field(default=22, ge=1, le=65535)
    connection_type: ConnectionType = ConnectionType.SSH
    username: Optional[str] = None
    os_type: Optional[OSType] = None
    credential_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    group_id: Optional[str] = None
    description: Optional[str] = None


class ConnectionResponse(BaseModel):
    """Connection response payload."""

    id: str
    name: str
    hostname: str
    port: int
    connection_type: str
    username: Optional[str] = None
    os_type: Optional[str] = None
    credential_id: Optional[str] = None
    tags: List[str]
    group_id: Optional[str] = None
    description: Optional[str] = None
    provider_id: Optional[str] = None
    provider_host_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CredentialRequest(BaseModel):
    """Payload to create a credential."""

    name: str = Field(min_length=1, max_length=200)
    type: CredentialType = CredentialType.PASSWORD
    username: str = Field(min_length=1, max_length=200)
    secret: Optional[str] = None
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    domain: Optional[str] = None
    auto_assign_patterns: List[str] = Field(default_factory=list)
    auto_assign_os_types: List[OSType] = Field(default_factory=list)


class CredentialResponse(BaseModel):
    """Credential without secret material."""

    id: str
    name: str
    type: str
    username: str
    domain: Optional[str] = None
    has_secret: bool
    has_private_key: bool
    auto_assign_patterns: List[str]
    auto_assign_os_types: List[str]


class GroupRulePayload(BaseModel):
    """One dynamic group rule."""

    hostname_pattern: Optional[str] = None
    os_types: List[OSType] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    provider_id: Optional[str] = None
    connection_type: Optional[ConnectionType] = None


class GroupRequest(BaseModel):
    """Payload to create a group."""

    name: str = Field(min_length=1, max_length=200)
    membership_type: GroupMembership = GroupMembership.STATIC
    rules: List[GroupRulePayload] = Field(default_factory=list)
    description: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    credential_id: Optional[str] = None


class GroupResponse(BaseModel):
    """Group response payload."""

    id: str
    name: str
    membership_type: str
    rules: List[GroupRulePayload]
    description: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    credential_id: Optional[str] = None


class ConnectionTestResponse(BaseModel):
    """Result of a connectivity check."""

    ok: bool
    error: Optional[str] = None


class ProviderRequest(BaseModel):
    """Payload to create a discovery provider."""

    name: str = Field(min_length=1, max_length=200)
    type: ProviderType
    config: Dict[str, object] = Field(default_factory=dict)
    enabled: bool = True


class ProviderResponse(BaseModel):
    """Provider with sensitive config values removed."""

    id: str
    name: str
    type: str
    config: Dict[str, object]
    enabled: bool
    created_at: Optional[str] = None
    last_discovery_at: Optional[str] = None


class DiscoveredHostResponse(BaseModel):
    """Discovered host payload."""

    id: str
    provider_id: str
    provider_host_id: str
    name: str
    hostname: Optional[str] = None
    private_ip: Optional[str] = None
    public_ip: Optional[str] = None
    os_type: str
    os_name: Optional[str] = None
    state: str
    metadata: Dict[str, str]
    tags: Dict[str, str]
    discovered_at: Optional[str] = None
    last_seen_at: Optional[str] = None
    imported: bool
    connection_id: Optional[str] = None


class DiscoveryResponse(BaseModel):
    """Result of a full discovery refresh."""

    provider_id: str
    provider_name: str
    success: bool
    error: Optional[str] = None
    discovered_at: Optional[str] = None
    hosts: List[DiscoveredHostResponse]


class HostStateChangeResponse(BaseModel):
    """Host whose power state changed."""

    host: DiscoveredHostResponse
    previous_state: str
    current_state: str


class SyncSummaryResponse(BaseModel):
    """Counts for one reconciliation."""

    total: int
    new: int
    removed: int
    existing: int
    changed: int
    imported: int


class ProviderSyncResponse(BaseModel):
    """Reconciliation outcome."""

    provider_id: str
    provider_name: str
    success: bool
    synced_at: Optional[str] = None
    error: Optional[str] = None
    new_hosts: List[DiscoveredHostResponse]
    removed_hosts: List[DiscoveredHostResponse]
    existing_hosts: List[DiscoveredHostResponse]
    changed_hosts: List[HostStateChangeResponse]
    summary: SyncSummaryResponse


class ImportHostsRequest(BaseModel):
    """Payload to import discovered hosts as connections."""

    host_ids: List[str] = Field(min_length=1)
    credential_id: Optional[str] = None
    ip_preference: Literal["hostname", "private", "public"] = "hostname"
    group_id: Optional[str] = None


class ImportHostsResponse(BaseModel):
    """Import outcome."""

    imported: int
    connection_ids: List[str]
    errors: List[str]


class HostFilterPayload(BaseModel):
    """Host selection for previews and executions."""

    kind: HostFilterKind = HostFilterKind.ALL
    group_id: Optional[str] = None
    pattern: Optional[str] = None
    connection_ids: List[str] = Field(default_factory=list)
    os_type: Optional[OSType] = None


class PreviewTargetsRequest(BaseModel):
    """Payload to preview resolved targets."""

    filter: HostFilterPayload = Field(default_factory=HostFilterPayload)
    target_os: CommandTargetOS = CommandTargetOS.ALL


class ExecuteCommandRequest(BaseModel):
    """Payload to start a bulk execution."""

    command: Optional[str] = None
    saved_command_id: Optional[str] = None
    target_os: Optional[CommandTargetOS] = None
    filter: HostFilterPayload = Field(default_factory=HostFilterPayload)
    variables: Dict[str, str] = Field(default_factory=dict)


class ExecuteCommandResponse(BaseModel):
    """Accepted execution."""

    execution_id: str
    target_count: int


class CommandResultResponse(BaseModel):
    """Per-host result."""

    connection_id: str
    connection_name: str
    hostname: str
    status: str
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class CommandExecutionResponse(BaseModel):
    """Execution record."""

    id: str
    command_name: str
    command: str
    target_os: str
    host_filter: str
    saved_command_id: Optional[str] = None
    connection_ids: List[str]
    status: str
    results: List[CommandResultResponse]
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class CancelExecutionResponse(BaseModel):
    """Cancellation acknowledgement."""

    execution_id: str
    cancelled: bool


class CommandVariablePayload(BaseModel):
    """Declared template variable."""

    name: str = Field(min_length=1, max_length=100)
    default: Optional[str] = None
    description: Optional[str] = None


class SavedCommandRequest(BaseModel):
    """Payload to create a saved command."""

    name: str = Field(min_length=1, max_length=200)
    command: str = Field(min_length=1)
    target_os: CommandTargetOS = CommandTargetOS.ALL
    description: Optional[str] = None
    category: Optional[str] = None
    variables: List[CommandVariablePayload] = Field(default_factory=list)


class SavedCommandUpdateRequest(BaseModel):
    """Partial update of a saved command."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    command: Optional[str] = Field(default=None, min_length=1)
    target_os: Optional[CommandTargetOS] = None
    description: Optional[str] = None
    category: Optional[str] = None
    variables: Optional[List[CommandVariablePayload]] = None


class SavedCommandResponse(BaseModel):
    """Saved command payload."""

    id: str
    name: str
    command: str
    target_os: str
    description: Optional[str] = None
    category: Optional[str] = None
    variables: List[CommandVariablePayload]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExecutionEventResponse(BaseModel):
    """Buffered execution event."""

    type: str
    execution_id: str
    timestamp: str
    connection_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
