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
"""Unit tests for credential resolution priority."""

from fleet_backend.app.application.credential_resolver import (
    CredentialResolver,
    credential_matches,
)
from fleet_backend.app.domain.models import (
    Credential,
    CredentialType,
    OSType,
    ServerConnection,
)

EXPLICIT = Credential(
    id="explicit", name="explicit", type=CredentialType.PASSWORD, username="admin"
)
WINDOWS = Credential(
    id="windows",
    name="windows",
    type=CredentialType.PASSWORD,
    username="Administrator",
    auto_assign_os_types=[OSType.WINDOWS],
)
WEB = Credential(
    id="web",
    name="web",
    type=CredentialType.PRIVATE_KEY,
    username="deploy",
    auto_assign_patterns=["web-*"],
)
WEB_LATER = Credential(
    id="web-later",
    name="web later",
    type=CredentialType.AGENT,
    username="ops",
    auto_assign_patterns=["*.example.com"],
)


def make_resolver(credentials):
    by_id = {c.id: c for c in credentials}
    return CredentialResolver(
        get_credential=by_id.get, list_credentials=lambda: list(credentials)
    )


def test_explicit_credential_wins():
    resolver = make_resolver([EXPLICIT, WEB])
    connection = ServerConnection(
        id="c1", name="web-01", hostname="web-01", credential_id="explicit"
    )
    assert resolver.resolve(connection) is EXPLICIT


def test_missing_explicit_credential_falls_back_to_auto_assign():
    resolver = make_resolver([WEB])
    connection = ServerConnection(
        id="c1", name="web-01", hostname="web-01", credential_id="deleted"
    )
    assert resolver.resolve(connection) is WEB


def test_first_matching_credential_in_order_wins():
    resolver = make_resolver([WEB, WEB_LATER])
    connection = ServerConnection(id="c1", name="x", hostname="web-01.example.com")
    assert resolver.resolve(connection) is WEB


def test_os_rule_matches_before_patterns_of_later_credentials():
    resolver = make_resolver([WINDOWS, WEB])
    connection = ServerConnection(
        id="c1", name="web-02", hostname="web-02", os_type=OSType.WINDOWS
    )
    assert resolver.resolve(connection) is WINDOWS


def test_no_match_returns_none():
    resolver = make_resolver([WINDOWS, WEB])
    connection = ServerConnection(id="c1", name="db", hostname="db-01")
    assert resolver.resolve(connection) is None


def test_pattern_matching_is_case_insensitive():
    assert credential_matches(WEB, "WEB-PROD", None)
    assert not credential_matches(WEB, "api-web", None)
