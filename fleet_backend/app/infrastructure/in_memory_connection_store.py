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
"""Thread-safe in-memory inventory repositories."""

from __future__ import annotations

from threading import Lock

from fleet_backend.app.domain.models import ConnectionGroup, Credential, ServerConnection


class InMemoryConnectionStore:
    """Stores server connections by id, in insertion order."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._connections: dict[str, ServerConnection] = {}

    def save(self, connection: ServerConnection) -> None:
        with self._lock:
            self._connections[connection.id] = connection

    def get(self, connection_id: str) -> ServerConnection | None:
        with self._lock:
            return self._connections.get(connection_id)

    def list(self) -> list[ServerConnection]:
        with self._lock:
            return list(self._connections.values())

    def delete(self, connection_id: str) -> bool:
        with self._lock:
            return self._connections.pop(connection_id, None) is not None


class InMemoryCredentialStore:
    """Stores credentials; iteration order is the auto-assign priority."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._credentials: dict[str, Credential] = {}

    def save(self, credential: Credential) -> None:
        with self._lock:
            self._credentials[credential.id] = credential

    def get(self, credential_id: str) -> Credential | None:
        with self._lock:
            return self._credentials.get(credential_id)

    def list(self) -> list[Credential]:
        with self._lock:
            return list(self._credentials.values())

    def delete(self, credential_id: str) -> bool:
        with self._lock:
            return self._credentials.pop(credential_id, None) is not None


class InMemoryGroupStore:
    """Stores connection groups by id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._groups: dict[str, ConnectionGroup] = {}

    def save(self, group: ConnectionGroup) -> None:
        with self._lock:
            self._groups[group.id] = group

    def get(self, group_id: str) -> ConnectionGroup | None:
        with self._lock:
            return self._groups.get(group_id)

    def list(self) -> list[ConnectionGroup]:
        with self._lock:
            return list(self._groups.values())

    def delete(self, group_id: str) -> bool:
        with self._lock:
            return self._groups.pop(group_id, None) is not None
