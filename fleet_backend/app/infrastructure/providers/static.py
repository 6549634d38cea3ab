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
"""Adapter for hosts declared directly in the provider config."""

from __future__ import annotations

from typing import Any

from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    DiscoveredHost,
    DiscoveryResult,
    HostState,
    OSType,
    Provider,
)
from fleet_backend.app.infrastructure.providers.base import (
    detect_os_type,
    failed_result,
    new_host_id,
)


class StaticProviderAdapter:
    """Reports ``config["hosts"]`` as-is; no network involved."""

    def test_connection(self, provider: Provider) -> tuple[bool, str | None]:
        if not isinstance(provider.config.get("hosts", []), list):
            return False, "Static provider config 'hosts' must be a list"
        return True, None

    def _to_host(self, provider: Provider, entry: dict[str, Any]) -> DiscoveredHost:
        provider_host_id = str(entry.get("provider_host_id") or entry.get("id") or "")
        if not provider_host_id:
            raise ValueError("Static host entry requires provider_host_id")
        tags = {str(key): str(value) for key, value in (entry.get("tags") or {}).items()}
        os_name = entry.get("os_name")
        os_type = (
            OSType(entry["os_type"])
            if entry.get("os_type")
            else detect_os_type(os_name, None, tags)
        )
        now = utc_now()
        return DiscoveredHost(
            id=new_host_id(),
            provider_id=provider.id,
            provider_host_id=provider_host_id,
            name=str(entry.get("name") or provider_host_id),
            hostname=entry.get("hostname"),
            private_ip=entry.get("private_ip"),
            public_ip=entry.get("public_ip"),
            os_type=os_type,
            os_name=os_name,
            state=HostState(entry.get("state") or HostState.RUNNING.value),
            metadata={str(k): str(v) for k, v in (entry.get("metadata") or {}).items()},
            tags=tags,
            discovered_at=now,
            last_seen_at=now,
        )

    def discover(self, provider: Provider) -> DiscoveryResult:
        entries = provider.config.get("hosts", [])
        try:
            if not isinstance(entries, list):
                raise ValueError("Static provider config 'hosts' must be a list")
            hosts = [self._to_host(provider, entry) for entry in entries]
        except (ValueError, TypeError, AttributeError) as exc:
            return failed_result(provider, str(exc))
        return DiscoveryResult(
            provider_id=provider.id,
            provider_name=provider.name,
            success=True,
            hosts=hosts,
            discovered_at=utc_now(),
        )
