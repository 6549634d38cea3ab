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
"""Proxmox VE discovery adapter (QEMU VMs and LXC containers)."""

from __future__ import annotations

import logging
import re
from typing import Any

import requests

from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    DiscoveredHost,
    DiscoveryResult,
    HostState,
    OSType,
    Provider,
)
from fleet_backend.app.infrastructure.providers.base import (
    config_str,
    detect_os_type,
    failed_result,
    new_host_id,
    require_config,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8006
REQUEST_TIMEOUT_SECONDS = 30

_IP_PATTERN = re.compile(r"ip=([^/,]+)")


def parse_ip(network_config: str | None) -> str | None:
    """Extract the address from ``ip=10.0.0.5/24,gw=...`` style values."""
    if not network_config:
        return None
    match = _IP_PATTERN.search(network_config)
    if match is None or match.group(1) in {"dhcp", "manual"}:
        return None
    return match.group(1)


def parse_tags(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    return {
        f"tag{index}": tag.strip()
        for index, tag in enumerate(raw.split(";"))
        if tag.strip()
    }


def _state(status: str | None) -> HostState:
    if status == "running":
        return HostState.RUNNING
    if status == "paused":
        return HostState.SUSPENDED
    return HostState.STOPPED


class ProxmoxClient:
    """Thin ticket-authenticated wrapper over the /api2/json REST API."""

    def __init__(self, provider: Provider, session: requests.Session | None = None):
        host = require_config(provider, "host")
        port = config_str(provider, "port") or str(DEFAULT_PORT)
        self.base_url = f"https://{host}:{port}/api2/json"
        self.provider = provider
        self.session = session or requests.Session()
        self.session.verify = not bool(provider.config.get("ignore_cert_errors"))

    def login(self) -> str:
        username = require_config(self.provider, "username")
        realm = config_str(self.provider, "realm") or "pam"
        response = self.session.post(
            f"{self.base_url}/access/ticket",
            data={
                "username": f"{username}@{realm}",
                "password": config_str(self.provider, "password") or "",
            },
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        if response.status_code != 200:
            raise ValueError(f"Login failed: {response.status_code}")
        ticket = response.json()["data"]["ticket"]
        self.session.cookies.set("PVEAuthCookie", ticket)
        return ticket

    def get(self, path: str) -> Any:
        response = self.session.get(
            f"{self.base_url}{path}", timeout=REQUEST_TIMEOUT_SECONDS
        )
        if response.status_code != 200:
            raise ValueError(f"API call failed: {response.status_code}")
        return response.json()["data"]

    def get_optional(self, path: str) -> dict[str, Any]:
        """Config lookups are best effort; a missing config yields an empty mapping."""
        try:
            return self.get(path) or {}
        except (requests.RequestException, ValueError, KeyError) as exc:
            logger.debug("Proxmox lookup %s failed: %s", path, exc)
            return {}


class ProxmoxProviderAdapter:
    """Lists QEMU VMs and LXC containers on every node."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or requests.Session

    def _client(self, provider: Provider) -> ProxmoxClient:
        return ProxmoxClient(provider, session=self.session_factory())

    def test_connection(self, provider: Provider) -> tuple[bool, str | None]:
        try:
            self._client(provider).login()
        except (requests.RequestException, ValueError, KeyError) as exc:
            return False, str(exc)
        return True, None

    def _vm_host(
        self, provider: Provider, client: ProxmoxClient, node: str, vm: dict[str, Any]
    ) -> DiscoveredHost:
        vmid = vm["vmid"]
        config = client.get_optional(f"/nodes/{node}/qemu/{vmid}/config")
        address = parse_ip(config.get("ipconfig0"))
        now = utc_now()
        return DiscoveredHost(
            id=new_host_id(),
            provider_id=provider.id,
            provider_host_id=f"{node}/{vmid}",
            name=vm.get("name") or f"VM {vmid}",
            hostname=address,
            private_ip=address,
            os_type=detect_os_type(config.get("ostype"), vm.get("name")),
            os_name=config.get("ostype"),
            state=_state(vm.get("status")),
            metadata={
                "vmid": str(vmid),
                "node": node,
                "type": "qemu",
                "cores": str(config.get("cores") or 1),
                "memory": str(config.get("memory") or 0),
            },
            tags=parse_tags(vm.get("tags")),
            discovered_at=now,
            last_seen_at=now,
        )

    def _container_host(
        self, provider: Provider, client: ProxmoxClient, node: str, ct: dict[str, Any]
    ) -> DiscoveredHost:
        vmid = ct["vmid"]
        config = client.get_optional(f"/nodes/{node}/lxc/{vmid}/config")
        now = utc_now()
        return DiscoveredHost(
            id=new_host_id(),
            provider_id=provider.id,
            provider_host_id=f"{node}/{vmid}",
            name=ct.get("name") or f"CT {vmid}",
            hostname=config.get("hostname"),
            private_ip=parse_ip(config.get("net0")),
            os_type=OSType.LINUX,
            os_name=config.get("ostype") or "Linux Container",
            # Containers have no paused state.
            state=HostState.RUNNING if ct.get("status") == "running" else HostState.STOPPED,
            metadata={
                "vmid": str(vmid),
                "node": node,
                "type": "lxc",
                "cores": str(config.get("cores") or 1),
                "memory": str(config.get("memory") or 0),
            },
            tags=parse_tags(ct.get("tags")),
            discovered_at=now,
            last_seen_at=now,
        )

    def discover(self, provider: Provider) -> DiscoveryResult:
        hosts: list[DiscoveredHost] = []
        try:
            client = self._client(provider)
            client.login()
            for node_info in client.get("/nodes"):
                node = node_info["node"]
                for vm in client.get(f"/nodes/{node}/qemu"):
                    hosts.append(self._vm_host(provider, client, node, vm))
                for ct in client.get(f"/nodes/{node}/lxc"):
                    hosts.append(self._container_host(provider, client, node, ct))
        except (requests.RequestException, ValueError, KeyError) as exc:
            logger.warning(
                "Proxmox discovery failed for provider %s: %s", provider.id, exc
            )
            return failed_result(provider, str(exc))
        return DiscoveryResult(
            provider_id=provider.id,
            provider_name=provider.name,
            success=True,
            hosts=hosts,
            discovered_at=utc_now(),
        )
