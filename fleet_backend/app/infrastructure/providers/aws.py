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
"""AWS EC2 discovery adapter."""

from __future__ import annotations

import logging
from typing import Any, Callable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    DiscoveredHost,
    DiscoveryResult,
    HostState,
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

_STATE_MAP = {
    "running": HostState.RUNNING,
    "stopped": HostState.STOPPED,
    "pending": HostState.SUSPENDED,
    "stopping": HostState.SUSPENDED,
    "shutting-down": HostState.SUSPENDED,
}

ClientFactory = Callable[[Provider, str], Any]


def map_state(state_name: str | None) -> HostState:
    return _STATE_MAP.get(state_name or "", HostState.UNKNOWN)


def tags_to_dict(tags: list[dict[str, str]] | None) -> dict[str, str]:
    return {tag["Key"]: tag.get("Value", "") for tag in tags or [] if tag.get("Key")}


def _ec2(provider: Provider, region: str):
    access_key = config_str(provider, "access_key_id")
    secret_key = config_str(provider, "secret_access_key")
    if access_key and secret_key:
        return boto3.client(
            "ec2",
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    return boto3.client("ec2", region_name=region)


class AwsProviderAdapter:
    """Lists EC2 instances across the configured regions."""

    def __init__(self, client_factory: ClientFactory | None = None):
        self.client_factory = client_factory or _ec2

    def _regions(self, provider: Provider) -> list[str]:
        regions = [require_config(provider, "region")]
        for region in provider.config.get("regions") or []:
            if region and region not in regions:
                regions.append(str(region))
        return regions

    def test_connection(self, provider: Provider) -> tuple[bool, str | None]:
        try:
            client = self.client_factory(provider, self._regions(provider)[0])
            client.describe_instances(MaxResults=5)
        except (ClientError, BotoCoreError, ValueError) as exc:
            return False, str(exc)
        return True, None

    def _to_host(
        self, provider: Provider, instance: dict[str, Any], region: str
    ) -> DiscoveredHost:
        instance_id = instance["InstanceId"]
        tags = tags_to_dict(instance.get("Tags"))
        platform = instance.get("PlatformDetails")
        now = utc_now()
        return DiscoveredHost(
            id=new_host_id(),
            provider_id=provider.id,
            provider_host_id=instance_id,
            name=tags.get("Name") or instance_id,
            hostname=instance.get("PublicDnsName") or instance.get("PrivateDnsName") or None,
            private_ip=instance.get("PrivateIpAddress"),
            public_ip=instance.get("PublicIpAddress"),
            os_type=detect_os_type(platform, instance.get("ImageId"), tags),
            os_name=platform,
            state=map_state((instance.get("State") or {}).get("Name")),
            metadata={
                "instance_id": instance_id,
                "instance_type": instance.get("InstanceType", ""),
                "region": region,
                "availability_zone": (instance.get("Placement") or {}).get(
                    "AvailabilityZone", ""
                ),
                "vpc_id": instance.get("VpcId", ""),
                "subnet_id": instance.get("SubnetId", ""),
                "key_name": instance.get("KeyName", ""),
                "image_id": instance.get("ImageId", ""),
            },
            tags=tags,
            discovered_at=now,
            last_seen_at=now,
        )

    def discover(self, provider: Provider) -> DiscoveryResult:
        hosts: list[DiscoveredHost] = []
        try:
            for region in self._regions(provider):
                client = self.client_factory(provider, region)
                paginator = client.get_paginator("describe_instances")
                for page in paginator.paginate(PaginationConfig={"PageSize": 100}):
                    for reservation in page.get("Reservations", []):
                        for instance in reservation.get("Instances", []):
                            hosts.append(self._to_host(provider, instance, region))
        except (ClientError, BotoCoreError, ValueError, KeyError) as exc:
            logger.warning("AWS discovery failed for provider %s: %s", provider.id, exc)
            return failed_result(provider, str(exc))
        return DiscoveryResult(
            provider_id=provider.id,
            provider_name=provider.name,
            success=True,
            hosts=hosts,
            discovered_at=utc_now(),
        )
