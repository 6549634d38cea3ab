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
"""Domain models for fleet discovery and bulk command execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OSType(str, Enum):
    """Operating system family of a host."""

    LINUX = "linux"
    WINDOWS = "windows"
    UNIX = "unix"
    ESXI = "esxi"
    UNKNOWN = "unknown"


class HostState(str, Enum):
    """Power state reported by a provider."""

    RUNNING = "running"
    STOPPED = "stopped"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"


class CredentialType(str, Enum):
    """How a credential authenticates."""

    PASSWORD = "password"
    PRIVATE_KEY = "private_key"
    AGENT = "agent"


class ConnectionType(str, Enum):
    """Protocol used to reach a connection."""

    SSH = "ssh"
    RDP = "rdp"
    SERIAL = "serial"
    SFTP = "sftp"


class GroupMembership(str, Enum):
    """Static groups list members, dynamic groups evaluate rules."""

    STATIC = "static"
    DYNAMIC = "dynamic"


class ProviderType(str, Enum):
    """Supported discovery provider families."""

    AWS = "aws"
    PROXMOX = "proxmox"
    STATIC = "static"


class CommandTargetOS(str, Enum):
    """OS constraint of a bulk command."""

    LINUX = "linux"
    WINDOWS = "windows"
    ALL = "all"


class HostFilterKind(str, Enum):
    """Host selection strategies."""

    ALL = "all"
    GROUP = "group"
    PATTERN = "pattern"
    SELECTION = "selection"
    OS = "os"


class ExecutionStatus(str, Enum):
    """Lifecycle states for a command execution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionTrigger(str, Enum):
    """Triggers that move an execution between states."""

    START = "start"
    COMPLETE = "complete"
    FAIL = "fail"
    CANCEL = "cancel"


class HostResultStatus(str, Enum):
    """Per-host result states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in {
            HostResultStatus.SUCCESS,
            HostResultStatus.ERROR,
            HostResultStatus.SKIPPED,
        }


@dataclass(frozen=True)
class ExecutionTransition:
    """Single transition entry."""

    current: ExecutionStatus
    trigger: ExecutionTrigger
    next_status: ExecutionStatus


@dataclass
class Credential:
    """Secret material used to log in to hosts."""

    id: str
    name: str
    type: CredentialType
    username: str
    secret: Optional[str] = None
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    domain: Optional[str] = None
    auto_assign_patterns: list[str] = field(default_factory=list)
    auto_assign_os_types: list[OSType] = field(default_factory=list)


@dataclass
class GroupRule:
    """One criterion set of a dynamic group; every present field must match."""

    hostname_pattern: Optional[str] = None
    os_types: list[OSType] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    provider_id: Optional[str] = None
    connection_type: Optional[ConnectionType] = None


@dataclass
class ConnectionGroup:
    """Named set of connections."""

    id: str
    name: str
    membership_type: GroupMembership = GroupMembership.STATIC
    rules: list[GroupRule] = field(default_factory=list)
    description: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    credential_id: Optional[str] = None

    @property
    def is_dynamic(self) -> bool:
        return self.membership_type == GroupMembership.DYNAMIC and bool(self.rules)


@dataclass
class ServerConnection:
    """User-managed, addressable execution target."""

    id: str
    name: str
    hostname: str
    port: int = 22
    connection_type: ConnectionType = ConnectionType.SSH
    username: Optional[str] = None
    os_type: Optional[OSType] = None
    credential_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    group_id: Optional[str] = None
    description: Optional[str] = None
    provider_id: Optional[str] = None
    provider_host_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_windows(self) -> bool:
        return self.os_type == OSType.WINDOWS


@dataclass
class Provider:
    """External inventory source."""

    id: str
    name: str
    type: ProviderType
    config: dict[str, object] = field(default_factory=dict)
    enabled: bool = True
    created_at: Optional[str] = None
    last_discovery_at: Optional[str] = None


@dataclass
class DiscoveredHost:
    """Normalized host record reported by a provider."""

    id: str
    provider_id: str
    provider_host_id: str
    name: str
    hostname: Optional[str] = None
    private_ip: Optional[str] = None
    public_ip: Optional[str] = None
    os_type: OSType = OSType.UNKNOWN
    os_name: Optional[str] = None
    state: HostState = HostState.UNKNOWN
    metadata: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    discovered_at: Optional[str] = None
    last_seen_at: Optional[str] = None
    imported: bool = False
    connection_id: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity within the source system."""
        return (self.provider_id, self.provider_host_id)


@dataclass
class DiscoveryResult:
    """Outcome of one adapter fetch."""

    provider_id: str
    provider_name: str
    success: bool
    hosts: list[DiscoveredHost] = field(default_factory=list)
    error: Optional[str] = None
    discovered_at: Optional[str] = None


@dataclass(frozen=True)
class HostStateChange:
    """A host whose state differs from the stored record."""

    host: DiscoveredHost
    previous_state: HostState
    current_state: HostState


@dataclass(frozen=True)
class SyncSummary:
    """Counts of one reconciliation run."""

    total: int = 0
    new: int = 0
    removed: int = 0
    existing: int = 0
    changed: int = 0
    imported: int = 0


@dataclass
class ProviderSyncResult:
    """Delta between a fresh discovery and the stored inventory."""

    provider_id: str
    provider_name: str
    success: bool
    synced_at: Optional[str] = None
    error: Optional[str] = None
    new_hosts: list[DiscoveredHost] = field(default_factory=list)
    removed_hosts: list[DiscoveredHost] = field(default_factory=list)
    existing_hosts: list[DiscoveredHost] = field(default_factory=list)
    changed_hosts: list[HostStateChange] = field(default_factory=list)
    summary: SyncSummary = field(default_factory=SyncSummary)


@dataclass(frozen=True)
class HostFilter:
    """Declarative host selection, consumed by the target resolver."""

    kind: HostFilterKind = HostFilterKind.ALL
    group_id: Optional[str] = None
    pattern: Optional[str] = None
    connection_ids: tuple[str, ...] = ()
    os_type: Optional[OSType] = None

    def __post_init__(self) -> None:
        if self.kind == HostFilterKind.GROUP and not self.group_id:
            raise ValueError("Group filter requires a group id")
        if self.kind == HostFilterKind.PATTERN and not (self.pattern or "").strip():
            raise ValueError("Pattern filter requires a non-empty pattern")
        if self.kind == HostFilterKind.OS and self.os_type is None:
            raise ValueError("OS filter requires an OS type")

    @classmethod
    def all_hosts(cls) -> "HostFilter":
        return cls(kind=HostFilterKind.ALL)

    @classmethod
    def for_group(cls, group_id: str) -> "HostFilter":
        return cls(kind=HostFilterKind.GROUP, group_id=group_id)

    @classmethod
    def for_pattern(cls, pattern: str) -> "HostFilter":
        return cls(kind=HostFilterKind.PATTERN, pattern=pattern)

    @classmethod
    def for_selection(cls, connection_ids: list[str]) -> "HostFilter":
        return cls(kind=HostFilterKind.SELECTION, connection_ids=tuple(connection_ids))

    @classmethod
    def for_os(cls, os_type: OSType) -> "HostFilter":
        return cls(kind=HostFilterKind.OS, os_type=os_type)

    def describe(self) -> str:
        """Short human-readable form stored on execution records."""
        if self.kind == HostFilterKind.GROUP:
            return f"group:{self.group_id}"
        if self.kind == HostFilterKind.PATTERN:
            return f"pattern:{self.pattern}"
        if self.kind == HostFilterKind.SELECTION:
            return f"selection:{len(self.connection_ids)}"
        if self.kind == HostFilterKind.OS and self.os_type is not None:
            return f"os:{self.os_type.value}"
        return "all"


@dataclass
class CommandVariable:
    """Placeholder declared by a saved command."""

    name: str
    default: Optional[str] = None
    description: Optional[str] = None


@dataclass
class SavedCommand:
    """Reusable command template."""

    id: str
    name: str
    command: str
    target_os: CommandTargetOS = CommandTargetOS.ALL
    description: Optional[str] = None
    category: Optional[str] = None
    variables: list[CommandVariable] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class CommandResult:
    """Outcome of one command on one host."""

    connection_id: str
    connection_name: str
    hostname: str
    status: HostResultStatus = HostResultStatus.PENDING
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


@dataclass
class CommandExecution:
    """One logical command dispatched across many connections."""

    id: str
    command: str
    target_os: CommandTargetOS
    connection_ids: list[str]
    results: list[CommandResult] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.PENDING
    command_name: str = "Ad-hoc command"
    saved_command_id: Optional[str] = None
    host_filter: str = "all"
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def result_for(self, connection_id: str) -> CommandResult | None:
        for result in self.results:
            if result.connection_id == connection_id:
                return result
        return None
