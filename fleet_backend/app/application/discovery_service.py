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
"""Provider management, discovery and import use-cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol
from uuid import uuid4

from fleet_backend.app.application.credential_resolver import find_auto_assigned
from fleet_backend.app.application.discovery_reconciler import DiscoveryReconciler
from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.errors import NotFoundError
from fleet_backend.app.domain.models import (
    ConnectionType,
    Credential,
    DiscoveredHost,
    DiscoveryResult,
    OSType,
    Provider,
    ProviderSyncResult,
    ProviderType,
    ServerConnection,
)

logger = logging.getLogger(__name__)

IP_PREFERENCES = {"hostname", "private", "public"}


class ProviderAdapter(Protocol):
    """Adapter contract for one provider family."""

    def test_connection(self, provider: Provider) -> tuple[bool, str | None]:
        """Return reachability and optional error."""

    def discover(self, provider: Provider) -> DiscoveryResult:
        """Fetch every host; failures come back as success=False."""


class ProviderRepository(Protocol):
    def save(self, provider: Provider) -> None: ...

    def get(self, provider_id: str) -> Provider | None: ...

    def list(self) -> list[Provider]: ...

    def delete(self, provider_id: str) -> bool: ...


class DiscoveredHostStore(Protocol):
    def list_for_provider(self, provider_id: str) -> list[DiscoveredHost]: ...

    def get(self, host_id: str) -> DiscoveredHost | None: ...

    def upsert(self, host: DiscoveredHost) -> DiscoveredHost: ...

    def mark_imported(self, host_id: str, connection_id: str) -> DiscoveredHost | None: ...

    def delete(self, host_id: str) -> bool: ...

    def delete_for_provider(self, provider_id: str) -> int: ...


class ConnectionWriter(Protocol):
    def save(self, connection: ServerConnection) -> None: ...


@dataclass
class HostImportResult:
    """Connections created by an import and per-host failures."""

    imported: list[ServerConnection] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def choose_address(host: DiscoveredHost, ip_preference: str = "hostname") -> str | None:
    """Pick the connection hostname for an imported host."""
    if ip_preference == "private" and host.private_ip:
        return host.private_ip
    if ip_preference == "public" and host.public_ip:
        return host.public_ip
    return host.hostname or host.private_ip or host.public_ip


class DiscoveryService:
    """Use-case orchestration for providers and their discovered hosts."""

    def __init__(
        self,
        providers: ProviderRepository,
        hosts: DiscoveredHostStore,
        connections: ConnectionWriter,
        adapters: dict[ProviderType, ProviderAdapter],
        reconciler: DiscoveryReconciler,
        list_credentials: Callable[[], list[Credential]] | None = None,
    ):
        self.providers = providers
        self.hosts = hosts
        self.connections = connections
        self.adapters = adapters
        self.reconciler = reconciler
        self.list_credentials = list_credentials or (lambda: [])

    def create_provider(
        self,
        name: str,
        provider_type: ProviderType,
        config: Optional[dict[str, object]] = None,
        enabled: bool = True,
    ) -> Provider:
        if not name.strip():
            raise ValueError("Provider name must not be empty")
        if provider_type not in self.adapters:
            raise ValueError(f"Unsupported provider type: {provider_type.value}")
        provider = Provider(
            id=str(uuid4()),
            name=name.strip(),
            type=provider_type,
            config=dict(config or {}),
            enabled=enabled,
            created_at=utc_now(),
        )
        self.providers.save(provider)
        return provider

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise NotFoundError("Provider", provider_id)
        return provider

    def list_providers(self) -> list[Provider]:
        return self.providers.list()

    def delete_provider(self, provider_id: str) -> int:
        """Delete a provider and its discovered hosts; returns hosts removed."""
        self.get_provider(provider_id)
        removed = self.hosts.delete_for_provider(provider_id)
        self.providers.delete(provider_id)
        logger.info("Deleted provider %s with %d discovered hosts", provider_id, removed)
        return removed

    def _adapter(self, provider: Provider) -> ProviderAdapter:
        adapter = self.adapters.get(provider.type)
        if adapter is None:
            raise ValueError(f"Unsupported provider type: {provider.type.value}")
        return adapter

    def test_provider(self, provider_id: str) -> tuple[bool, str | None]:
        provider = self.get_provider(provider_id)
        return self._adapter(provider).test_connection(provider)

    def list_hosts(self, provider_id: str) -> list[DiscoveredHost]:
        self.get_provider(provider_id)
        return self.hosts.list_for_provider(provider_id)

    def discover_hosts(self, provider_id: str) -> DiscoveryResult:
        """Full refresh without classification."""
        provider = self.get_provider(provider_id)
        result = self._adapter(provider).discover(provider)
        if not result.success:
            logger.warning(
                "Discovery failed for provider %s: %s", provider_id, result.error
            )
            return result
        result.hosts = self.reconciler.refresh(provider.id, result.hosts)
        provider.last_discovery_at = result.discovered_at or utc_now()
        self.providers.save(provider)
        return result

    def sync_provider(self, provider_id: str) -> ProviderSyncResult:
        """Fetch, then reconcile; a failed fetch never reaches the reconciler."""
        provider = self.get_provider(provider_id)
        result = self._adapter(provider).discover(provider)
        if not result.success:
            logger.warning(
                "Sync skipped for provider %s, discovery failed: %s",
                provider_id,
                result.error,
            )
            return ProviderSyncResult(
                provider_id=provider.id,
                provider_name=provider.name,
                success=False,
                synced_at=utc_now(),
                error=result.error,
            )
        sync_result = self.reconciler.sync(provider.id, provider.name, result.hosts)
        provider.last_discovery_at = sync_result.synced_at
        self.providers.save(provider)
        return sync_result

    def delete_discovered_host(self, host_id: str) -> None:
        if not self.hosts.delete(host_id):
            raise NotFoundError("Discovered host", host_id)

    def import_hosts(
        self,
        provider_id: str,
        host_ids: list[str],
        credential_id: str | None = None,
        ip_preference: str = "hostname",
        group_id: str | None = None,
    ) -> HostImportResult:
        """Create connections from discovered hosts, one failure never stops the rest."""
        provider = self.get_provider(provider_id)
        if not host_ids:
            raise ValueError("host_ids must not be empty")
        if ip_preference not in IP_PREFERENCES:
            raise ValueError(f"Invalid ip_preference: {ip_preference}")

        result = HostImportResult()
        credentials = self.list_credentials()
        for host_id in host_ids:
            host = self.hosts.get(host_id)
            if host is None or host.provider_id != provider.id:
                result.errors.append(f"Host {host_id} not found")
                continue
            address = choose_address(host, ip_preference)
            if not address:
                result.errors.append(f"Host {host.name} has no valid hostname or IP")
                continue

            is_windows = host.os_type == OSType.WINDOWS
            assigned = credential_id
            if assigned is None:
                matched = find_auto_assigned(
                    credentials, address, host.os_type, host.name
                )
                assigned = matched.id if matched else None
            now = utc_now()
            connection = ServerConnection(
                id=str(uuid4()),
                name=host.name,
                hostname=address,
                port=3389 if is_windows else 22,
                connection_type=ConnectionType.RDP if is_windows else ConnectionType.SSH,
                os_type=host.os_type,
                credential_id=assigned,
                tags=[f"{key}:{value}" for key, value in host.tags.items()],
                group_id=group_id,
                description=f"Imported from {provider.name}",
                provider_id=provider.id,
                provider_host_id=host.provider_host_id,
                created_at=now,
                updated_at=now,
            )
            self.connections.save(connection)
            self.hosts.mark_imported(host.id, connection.id)
            result.imported.append(connection)

        logger.info(
            "Imported %d hosts from provider %s (%d errors)",
            len(result.imported),
            provider_id,
            len(result.errors),
        )
        return result
