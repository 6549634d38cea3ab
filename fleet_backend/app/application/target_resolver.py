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
"""Turns a host filter into a concrete list of execution targets."""

from __future__ import annotations

from typing import Callable, Optional

from fleet_backend.app.domain.errors import NotFoundError
from fleet_backend.app.domain.matching import connection_matches_rules, matches_wildcard
from fleet_backend.app.domain.models import (
    CommandTargetOS,
    ConnectionGroup,
    HostFilter,
    HostFilterKind,
    OSType,
    ServerConnection,
)

GroupLookup = Callable[[str], Optional[ConnectionGroup]]


def group_members(
    group: ConnectionGroup, connections: list[ServerConnection]
) -> list[ServerConnection]:
    """Static groups use assignment, dynamic groups evaluate their rules."""
    if group.is_dynamic:
        return [c for c in connections if connection_matches_rules(c, group.rules)]
    return [c for c in connections if c.group_id == group.id]


def allowed_by_target_os(connection: ServerConnection, target_os: CommandTargetOS) -> bool:
    if target_os == CommandTargetOS.LINUX:
        return connection.os_type != OSType.WINDOWS
    if target_os == CommandTargetOS.WINDOWS:
        return connection.os_type == OSType.WINDOWS
    return True


class TargetResolver:
    """Pure resolution over the current connection inventory."""

    def __init__(self, group_lookup: GroupLookup | None = None):
        self.group_lookup = group_lookup

    def _base_filter(
        self, host_filter: HostFilter, connections: list[ServerConnection]
    ) -> list[ServerConnection]:
        kind = host_filter.kind
        if kind == HostFilterKind.ALL:
            return list(connections)
        if kind == HostFilterKind.GROUP:
            group_id = host_filter.group_id or ""
            group = self.group_lookup(group_id) if self.group_lookup else None
            if group is None:
                if self.group_lookup is not None:
                    raise NotFoundError("Group", group_id)
                return [c for c in connections if c.group_id == group_id]
            return group_members(group, connections)
        if kind == HostFilterKind.PATTERN:
            pattern = host_filter.pattern or ""
            return [
                c for c in connections if matches_wildcard(pattern, c.hostname, c.name)
            ]
        if kind == HostFilterKind.SELECTION:
            wanted = set(host_filter.connection_ids)
            return [c for c in connections if c.id in wanted]
        if kind == HostFilterKind.OS:
            return [c for c in connections if c.os_type == host_filter.os_type]
        raise ValueError(f"Unsupported host filter: {kind}")

    def resolve(
        self,
        host_filter: HostFilter,
        connections: list[ServerConnection],
        target_os: CommandTargetOS,
    ) -> list[ServerConnection]:
        """Apply the base filter, then the target OS constraint.

        An empty list is a valid answer; callers report it as
        "no matching connections".
        """
        selected = self._base_filter(host_filter, connections)
        return [c for c in selected if allowed_by_target_os(c, target_os)]
