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
"""Maps provider types to adapter implementations."""

from __future__ import annotations

from fleet_backend.app.application.discovery_service import ProviderAdapter
from fleet_backend.app.domain.models import ProviderType
from fleet_backend.app.infrastructure.providers.aws import AwsProviderAdapter
from fleet_backend.app.infrastructure.providers.proxmox import ProxmoxProviderAdapter
from fleet_backend.app.infrastructure.providers.static import StaticProviderAdapter


def default_adapters() -> dict[ProviderType, ProviderAdapter]:
    return {
        ProviderType.AWS: AwsProviderAdapter(),
        ProviderType.PROXMOX: ProxmoxProviderAdapter(),
        ProviderType.STATIC: StaticProviderAdapter(),
    }
