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
"""Inventory use-cases: connections, credentials and groups."""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import uuid4

from fleet_backend.app.application.credential_resolver import CredentialResolver
from fleet_backend.app.application.events import utc_now
from fleet_backend.app.application.target_resolver import group_members
from fleet_backend.app.domain.errors import NotFoundError
from fleet_backend.app.domain.models import (
    ConnectionGroup,
    Credential,
    ServerConnection,
)


class ConnectionValidator(Protocol):
    """Connection validator contract."""

    def validate(
        self, connection: ServerConnection, credential: Optional[Credential]
    ) -> tuple[bool, str | None]:
        """Return connection status and optional error."""


class EntityRepository(Protocol):
    def save(self, entity) -> None: ...

    def get(self, entity_id: str): ...

    def list(self) -> list: ...

    def delete(self, entity_id: str) -> bool: ...


class InventoryService:
    """CRUD over the inventory plus a login check."""

    def __init__(
        self,
        connections: EntityRepository,
        credentials: EntityRepository,
        groups: EntityRepository,
        validator: ConnectionValidator,
    ):
        self.connections = connections
        self.credentials = credentials
        self.groups = groups
        self.validator = validator
        self.credential_resolver = CredentialResolver(
            get_credential=credentials.get, list_credentials=credentials.list
        )

    def create_connection(self, connection: ServerConnection) -> ServerConnection:
        if not connection.name.strip() or not connection.hostname.strip():
            raise ValueError("Connection name and hostname are required")
        if not 0 < connection.port < 65536:
            raise ValueError(f"Invalid port value: {connection.port}")
        if connection.credential_id and self.credentials.get(connection.credential_id) is None:
            raise NotFoundError("Credential", connection.credential_id)
        if connection.group_id and self.groups.get(connection.group_id) is None:
            raise NotFoundError("Group", connection.group_id)
        now = utc_now()
        connection.id = connection.id or str(uuid4())
        connection.created_at = connection.created_at or now
        connection.updated_at = now
        self.connections.save(connection)
        return connection

    def get_connection(self, connection_id: str) -> ServerConnection:
        connection = self.connections.get(connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)
        return connection

    def list_connections(self) -> list[ServerConnection]:
        return self.connections.list()

    def delete_connection(self, connection_id: str) -> None:
        if not self.connections.delete(connection_id):
            raise NotFoundError("Connection", connection_id)

    def create_credential(self, credential: Credential) -> Credential:
        if not credential.name.strip():
            raise ValueError("Credential name is required")
        credential.id = credential.id or str(uuid4())
        self.credentials.save(credential)
        return credential

    def get_credential(self, credential_id: str) -> Credential:
        credential = self.credentials.get(credential_id)
        if credential is None:
            raise NotFoundError("Credential", credential_id)
        return credential

    def list_credentials(self) -> list[Credential]:
        return self.credentials.list()

    def delete_credential(self, credential_id: str) -> None:
        if not self.credentials.delete(credential_id):
            raise NotFoundError("Credential", credential_id)

    def create_group(self, group: ConnectionGroup) -> ConnectionGroup:
        if not group.name.strip():
            raise ValueError("Group name is required")
        if group.parent_id and self.groups.get(group.parent_id) is None:
            raise NotFoundError("Group", group.parent_id)
        group.id = group.id or str(uuid4())
        self.groups.save(group)
        return group

    def get_group(self, group_id: str) -> ConnectionGroup:
        group = self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    def list_groups(self) -> list[ConnectionGroup]:
        return self.groups.list()

    def delete_group(self, group_id: str) -> None:
        """Delete a group; statically assigned members become ungrouped."""
        self.get_group(group_id)
        for connection in self.connections.list():
            if connection.group_id == group_id:
                connection.group_id = None
                self.connections.save(connection)
        self.groups.delete(group_id)

    def list_group_members(self, group_id: str) -> list[ServerConnection]:
        return group_members(self.get_group(group_id), self.connections.list())

    def test_connection(self, connection_id: str) -> tuple[bool, str | None]:
        connection = self.get_connection(connection_id)
        if connection.is_windows:
            return False, "Connection test is not supported for Windows hosts"
        credential = self.credential_resolver.resolve(connection)
        return self.validator.validate(connection, credential)
