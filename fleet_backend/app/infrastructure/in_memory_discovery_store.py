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
"""Thread-safe in-memory provider and discovered host repositories."""

from __future__ import annotations

from dataclasses import replace
from threading import Lock

from fleet_backend.app.domain.models import DiscoveredHost, Provider


class InMemoryProviderStore:
    """Stores discovery providers by id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._providers: dict[str, Provider] = {}

    def save(self, provider: Provider) -> None:
        with self._lock:
            self._providers[provider.id] = provider

    def get(self, provider_id: str) -> Provider | None:
        with self._lock:
            return self._providers.get(provider_id)

    def list(self) -> list[Provider]:
        with self._lock:
            return list(self._providers.values())

    def delete(self, provider_id: str) -> bool:
        with self._lock:
            return self._providers.pop(provider_id, None) is not None


class InMemoryDiscoveredHostStore:
    """Stores discovered hosts keyed by (provider_id, provider_host_id)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._hosts: dict[tuple[str, str], DiscoveredHost] = {}

    def list_for_provider(self, provider_id: str) -> list[DiscoveredHost]:
        with self._lock:
            return [
                host for host in self._hosts.values() if host.provider_id == provider_id
            ]

    def list(self) -> list[DiscoveredHost]:
        with self._lock:
            return list(self._hosts.values())

    def get(self, host_id: str) -> DiscoveredHost | None:
        with self._lock:
            for host in self._hosts.values():
                if host.id == host_id:
                    return host
        return None

    def upsert(self, host: DiscoveredHost) -> DiscoveredHost:
        """Insert, or replace every provider-reported field of the stored row.

        The stored id, first discovery time and import linkage survive.
        """
        with self._lock:
            previous = self._hosts.get(host.key)
            if previous is None:
                stored = replace(
                    host, discovered_at=host.discovered_at or host.last_seen_at
                )
            else:
                stored = replace(
                    host,
                    id=previous.id,
                    discovered_at=previous.discovered_at,
                    imported=previous.imported or host.imported,
                    connection_id=previous.connection_id or host.connection_id,
                )
            self._hosts[host.key] = stored
            return stored

    def mark_imported(self, host_id: str, connection_id: str) -> DiscoveredHost | None:
        with self._lock:
            for key, host in self._hosts.items():
                if host.id == host_id:
                    updated = replace(host, imported=True, connection_id=connection_id)
                    self._hosts[key] = updated
                    return updated
        return None

    def delete(self, host_id: str) -> bool:
        with self._lock:
            for key, host in list(self._hosts.items()):
                if host.id == host_id:
                    del self._hosts[key]
                    return True
        return False

    def delete_for_provider(self, provider_id: str) -> int:
        with self._lock:
            keys = [key for key in self._hosts if key[0] == provider_id]
            for key in keys:
                del self._hosts[key]
            return len(keys)
