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
"""Unit tests for inventory use-cases and connection validators."""

import pytest
from netmiko.exceptions import NetmikoAuthenticationException

from fleet_backend.app.application.inventory_service import InventoryService
from fleet_backend.app.domain.errors import NotFoundError
from fleet_backend.app.domain.models import (
    ConnectionGroup,
    Credential,
    CredentialType,
    GroupMembership,
    GroupRule,
    OSType,
    ServerConnection,
)
from fleet_backend.app.infrastructure import connection_validators
from fleet_backend.app.infrastructure.connection_validators import (
    NetmikoConnectionValidator,
)
from fleet_backend.app.infrastructure.in_memory_connection_store import (
    InMemoryConnectionStore,
    InMemoryCredentialStore,
    InMemoryGroupStore,
)


class RecordingValidator:
    def __init__(self, outcome=(True, None)):
        self.outcome = outcome
        self.calls = []

    def validate(self, connection, credential):
        self.calls.append((connection.id, credential))
        return self.outcome


def build_service(validator=None):
    return InventoryService(
        connections=InMemoryConnectionStore(),
        credentials=InMemoryCredentialStore(),
        groups=InMemoryGroupStore(),
        validator=validator or RecordingValidator(),
    )


def test_create_connection_assigns_id_and_timestamps():
    service = build_service()

    created = service.create_connection(
        ServerConnection(id="", name="web-1", hostname="10.0.0.1")
    )

    assert created.id
    assert created.created_at is not None
    assert service.get_connection(created.id) is created


@pytest.mark.parametrize(
    "connection",
    [
        ServerConnection(id="", name="", hostname="10.0.0.1"),
        ServerConnection(id="", name="web", hostname=" "),
        ServerConnection(id="", name="web", hostname="h", port=0),
        ServerConnection(id="", name="web", hostname="h", port=70000),
    ],
)
def test_create_connection_rejects_invalid_input(connection):
    service = build_service()

    with pytest.raises(ValueError):
        service.create_connection(connection)


def test_create_connection_requires_known_references():
    service = build_service()

    with pytest.raises(NotFoundError):
        service.create_connection(
            ServerConnection(id="", name="web", hostname="h", credential_id="nope")
        )
    with pytest.raises(NotFoundError):
        service.create_connection(
            ServerConnection(id="", name="web", hostname="h", group_id="nope")
        )


def test_delete_group_ungroups_members():
    service = build_service()
    group = service.create_group(ConnectionGroup(id="", name="web"))
    member = service.create_connection(
        ServerConnection(id="", name="web-1", hostname="h", group_id=group.id)
    )

    service.delete_group(group.id)

    assert service.get_connection(member.id).group_id is None
    with pytest.raises(NotFoundError):
        service.get_group(group.id)


def test_dynamic_group_members_follow_rules():
    service = build_service()
    service.create_connection(ServerConnection(id="a", name="web-1", hostname="web-1"))
    service.create_connection(ServerConnection(id="b", name="db-1", hostname="db-1"))
    group = service.create_group(
        ConnectionGroup(
            id="",
            name="web",
            membership_type=GroupMembership.DYNAMIC,
            rules=[GroupRule(hostname_pattern="web-*")],
        )
    )

    assert [c.id for c in service.list_group_members(group.id)] == ["a"]

    service.create_connection(ServerConnection(id="c", name="web-2", hostname="web-2"))
    assert sorted(c.id for c in service.list_group_members(group.id)) == ["a", "c"]


def test_test_connection_uses_resolved_credential():
    validator = RecordingValidator()
    service = build_service(validator)
    credential = service.create_credential(
        Credential(
            id="",
            name="ops",
            type=CredentialType.PASSWORD,
            username="ops",
            secret="pw",
            auto_assign_patterns=["web-*"],
        )
    )
    connection = service.create_connection(
        ServerConnection(id="", name="web-1", hostname="web-1")
    )

    assert service.test_connection(connection.id) == (True, None)
    assert validator.calls == [(connection.id, credential)]


def test_test_connection_refuses_windows_hosts():
    validator = RecordingValidator()
    service = build_service(validator)
    connection = service.create_connection(
        ServerConnection(id="", name="dc", hostname="dc", os_type=OSType.WINDOWS)
    )

    ok, error = service.test_connection(connection.id)

    assert ok is False
    assert "Windows" in error
    assert validator.calls == []


def test_unknown_ids_raise_not_found():
    service = build_service()

    for call in (
        service.get_connection,
        service.delete_connection,
        service.get_credential,
        service.delete_credential,
        service.get_group,
        service.test_connection,
    ):
        with pytest.raises(NotFoundError):
            call("missing")


def test_netmiko_validator_reads_prompt_and_disconnects(monkeypatch):
    captured = {}

    class FakeSession:
        disconnected = False

        def find_prompt(self):
            return "ops@web-1:~$"

        def disconnect(self):
            FakeSession.disconnected = True

    def fake_connect(**params):
        captured.update(params)
        return FakeSession()

    monkeypatch.setattr(connection_validators, "ConnectHandler", fake_connect)
    credential = Credential(
        id="c", name="ops", type=CredentialType.PASSWORD, username="ops", secret="pw"
    )

    ok, error = NetmikoConnectionValidator(timeout=3).validate(
        ServerConnection(id="x", name="web-1", hostname="10.0.0.5", port=2222),
        credential,
    )

    assert (ok, error) == (True, None)
    assert FakeSession.disconnected is True
    assert captured["device_type"] == "linux"
    assert captured["host"] == "10.0.0.5"
    assert captured["port"] == 2222
    assert captured["username"] == "ops"
    assert captured["password"] == "pw"
    assert captured["timeout"] == 3


def test_netmiko_validator_reports_auth_failure(monkeypatch):
    def fake_connect(**params):
        raise NetmikoAuthenticationException("bad password")

    monkeypatch.setattr(connection_validators, "ConnectHandler", fake_connect)

    ok, error = NetmikoConnectionValidator().validate(
        ServerConnection(id="x", name="web-1", hostname="10.0.0.5"), None
    )

    assert ok is False
    assert error.startswith("Authentication failed:")
