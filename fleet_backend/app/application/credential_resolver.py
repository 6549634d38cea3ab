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
"""Chooses the credential used to reach a host."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from fleet_backend.app.domain.matching import matches_wildcard
from fleet_backend.app.domain.models import Credential, OSType


def credential_matches(
    credential: Credential,
    hostname: Optional[str],
    os_type: Optional[OSType],
    name: Optional[str] = None,
) -> bool:
    """Check a credential's auto-assign rules against host attributes."""
    if credential.auto_assign_os_types and os_type in credential.auto_assign_os_types:
        return True
    target = hostname or name
    return any(
        matches_wildcard(pattern, target)
        for pattern in credential.auto_assign_patterns
        if pattern.strip()
    )


def find_auto_assigned(
    credentials: Iterable[Credential],
    hostname: Optional[str],
    os_type: Optional[OSType],
    name: Optional[str] = None,
) -> Credential | None:
    """First credential in iteration order whose rule matches wins."""
    for credential in credentials:
        if credential_matches(credential, hostname, os_type, name):
            return credential
    return None


class CredentialResolver:
    """Explicit assignment, then auto-assign rules, then nothing."""

    def __init__(
        self,
        get_credential: Callable[[str], Optional[Credential]],
        list_credentials: Callable[[], list[Credential]],
    ):
        self.get_credential = get_credential
        self.list_credentials = list_credentials

    def resolve(self, connection) -> Credential | None:
        if connection.credential_id:
            credential = self.get_credential(connection.credential_id)
            if credential is not None:
                return credential
        return find_auto_assigned(
            self.list_credentials(),
            connection.hostname,
            connection.os_type,
            connection.name,
        )
