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
"""Diffs a fresh provider listing against the stored inventory."""

from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock
from typing import Protocol

from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    DiscoveredHost,
    HostStateChange,
    ProviderSyncResult,
    SyncSummary,
)

logger = logging.getLogger(__name__)


class DiscoveredHostRepository(Protocol):
    """Repository contract for discovered hosts."""

    def list_for_provider(self, provider_id: str) -> list[DiscoveredHost]:
        """Every stored host of one provider."""

    def upsert(self, host: DiscoveredHost) -> DiscoveredHost:
        """Insert or refresh a host keyed by provider and provider host id."""


class ProviderLocks:
    """One lock per provider id, so unrelated providers never contend."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    def lock_for(self, provider_id: str) -> Lock:
        with self._guard:
            return self._locks.setdefault(provider_id, Lock())


class DiscoveryReconciler:
    """Classifies hosts as new, existing, changed or removed and upserts them."""

    def __init__(self, repository: DiscoveredHostRepository, locks: ProviderLocks | None = None):
        self.repository = repository
        self.locks = locks or ProviderLocks()

    def refresh(
        self, provider_id: str, fresh_hosts: list[DiscoveredHost]
    ) -> list[DiscoveredHost]:
        """Upsert without classification, under the same lock as ``sync``."""
        with self.locks.lock_for(provider_id):
            return [self.repository.upsert(host) for host in fresh_hosts]

    def sync(
        self, provider_id: str, provider_name: str, fresh_hosts: list[DiscoveredHost]
    ) -> ProviderSyncResult:
        """Reconcile one provider; runs for the same provider are serialized.

        Removed hosts stay in the repository and are only reported.
        """
        with self.locks.lock_for(provider_id):
            synced_at = utc_now()
            previous_map = {
                host.provider_host_id: host
                for host in self.repository.list_for_provider(provider_id)
            }
            # Duplicate ids in one listing collapse to the last record.
            fresh_map = {host.provider_host_id: host for host in fresh_hosts}

            new_hosts: list[DiscoveredHost] = []
            existing_hosts: list[DiscoveredHost] = []
            changed_hosts: list[HostStateChange] = []
            for provider_host_id, host in fresh_map.items():
                previous = previous_map.get(provider_host_id)
                stored = self.repository.upsert(
                    replace(host, provider_id=provider_id, last_seen_at=synced_at)
                )
                if previous is None:
                    new_hosts.append(stored)
                    continue
                existing_hosts.append(stored)
                if previous.state != stored.state:
                    changed_hosts.append(
                        HostStateChange(
                            host=stored,
                            previous_state=previous.state,
                            current_state=stored.state,
                        )
                    )

            removed_hosts = [
                host
                for provider_host_id, host in previous_map.items()
                if provider_host_id not in fresh_map
            ]
            summary = SyncSummary(
                total=len(fresh_map),
                new=len(new_hosts),
                removed=len(removed_hosts),
                existing=len(existing_hosts),
                changed=len(changed_hosts),
                imported=sum(
                    1 for host in new_hosts + existing_hosts if host.imported
                ),
            )

        logger.info(
            "Provider %s synced: total=%d new=%d removed=%d changed=%d",
            provider_id,
            summary.total,
            summary.new,
            summary.removed,
            summary.changed,
        )
        return ProviderSyncResult(
            provider_id=provider_id,
            provider_name=provider_name,
            success=True,
            synced_at=synced_at,
            new_hosts=new_hosts,
            removed_hosts=removed_hosts,
            existing_hosts=existing_hosts,
            changed_hosts=changed_hosts,
            summary=summary,
        )
