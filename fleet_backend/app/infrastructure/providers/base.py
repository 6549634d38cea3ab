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
"""Shared helpers for discovery provider adapters."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import DiscoveryResult, OSType, Provider

_WINDOWS_HINTS = ("windows", "win32", "win64")
_ESXI_HINTS = ("esxi", "vmkernel")
_LINUX_HINTS = (
    "ubuntu",
    "debian",
    "centos",
    "rhel",
    "fedora",
    "linux",
    "amazon linux",
    "suse",
)
_UNIX_HINTS = ("freebsd", "openbsd", "solaris", "aix", "unix")


def detect_os_type(
    os_name: Optional[str] = None,
    guest_id: Optional[str] = None,
    tags: Optional[dict[str, str]] = None,
) -> OSType:
    """Classify a host from free-form OS hints; the first family that matches wins."""
    hints = " ".join(
        [
            (os_name or "").lower(),
            (guest_id or "").lower(),
            " ".join((tags or {}).values()).lower(),
        ]
    )
    for family, keywords in (
        (OSType.WINDOWS, _WINDOWS_HINTS),
        (OSType.ESXI, _ESXI_HINTS),
        (OSType.LINUX, _LINUX_HINTS),
        (OSType.UNIX, _UNIX_HINTS),
    ):
        if any(keyword in hints for keyword in keywords):
            return family
    return OSType.UNKNOWN


def new_host_id() -> str:
    return str(uuid4())


def failed_result(provider: Provider, error: str) -> DiscoveryResult:
    return DiscoveryResult(
        provider_id=provider.id,
        provider_name=provider.name,
        success=False,
        error=error,
        discovered_at=utc_now(),
    )


def config_str(provider: Provider, key: str, default: str | None = None) -> str | None:
    value = provider.config.get(key, default)
    if value is None:
        return None
    return str(value).strip() or default


def require_config(provider: Provider, key: str) -> str:
    value = config_str(provider, key)
    if not value:
        raise ValueError(f"Provider {provider.name} is missing config value: {key}")
    return value
