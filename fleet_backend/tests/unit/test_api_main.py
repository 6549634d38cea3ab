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
"""API-level tests for the fleet backend."""

from fastapi.testclient import TestClient

import fleet_backend.app.api.main as api_main

from fleet_backend.app.api.main import app


def create_connection(client, name, **fields):
    response = client.post(
        "/api/connections", json={"name": name, "hostname": f"{name}.lab", **fields}
    )
    assert response.status_code == 200
    return response.json()["id"]


def selection(*connection_ids):
    return {"kind": "selection", "connection_ids": list(connection_ids)}


def test_health_endpoint():
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_connection_crud_and_not_found():
    client = TestClient(app)
    connection_id = create_connection(client, "api-crud-1", tags=["web"])

    fetched = client.get(f"/api/connections/{connection_id}")
    assert fetched.status_code == 200
    assert fetched.json()["tags"] == ["web"]
    assert fetched.json()["connection_type"] == "ssh"

    assert client.delete(f"/api/connections/{connection_id}").status_code == 200
    missing = client.get(f"/api/connections/{connection_id}")
    assert missing.status_code == 404
    assert "Connection not found" in missing.json()["detail"]


def test_connection_with_unknown_credential_is_rejected():
    client = TestClient(app)
    response = client.post(
        "/api/connections",
        json={"name": "bad-ref", "hostname": "h", "credential_id": "missing"},
    )

    assert response.status_code == 404


def test_credentials_never_echo_secrets():
    client = TestClient(app)
    response = client.post(
        "/api/credentials",
        json={"name": "ops", "username": "ops", "secret": "hunter2"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["has_secret"] is True
    assert "secret" not in body
    assert "hunter2" not in client.get("/api/credentials").text


def test_execution_runs_with_simulated_transport():
    client = TestClient(app)
    first = create_connection(client, "api-exec-1")
    second = create_connection(client, "api-exec-2")

    response = client.post(
        "/api/executions",
        json={"command": "uptime", "filter": selection(first, second)},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["target_count"] == 2
    execution_id = payload["execution_id"]
    assert api_main.run_coordinator.join(execution_id, timeout=10)

    execution = client.get(f"/api/executions/{execution_id}").json()
    assert execution["status"] == "completed"
    assert {r["status"] for r in execution["results"]} == {"success"}
    assert execution["host_filter"] == "selection:2"

    events = client.get(f"/api/executions/{execution_id}/events").json()
    assert events[-1]["type"] == "execution_complete"
    tail = client.get(
        f"/api/executions/{execution_id}/events", params={"start_index": len(events) - 1}
    ).json()
    assert [e["type"] for e in tail] == ["execution_complete"]

    listed = client.get("/api/executions").json()
    assert execution_id in [e["id"] for e in listed]

    cancel = client.post(f"/api/executions/{execution_id}/cancel")
    assert cancel.status_code == 200
    assert cancel.json()["cancelled"] is False


def test_websocket_streams_until_complete():
    client = TestClient(app)
    connection_id = create_connection(client, "api-ws-1")
    execution_id = client.post(
        "/api/executions",
        json={"command": "hostname", "filter": selection(connection_id)},
    ).json()["execution_id"]
    api_main.run_coordinator.join(execution_id, timeout=10)

    received = []
    with client.websocket_connect(f"/ws/executions/{execution_id}") as websocket:
        while True:
            event = websocket.receive_json()
            received.append(event["type"])
            if event["type"] == "execution_complete":
                break

    assert received[0] == "execution_status"
    assert "host_status" in received


def test_execution_without_targets_is_rejected():
    client = TestClient(app)
    response = client.post(
        "/api/executions",
        json={"command": "uptime", "filter": {"kind": "pattern", "pattern": "no-such-*"}},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "No matching connections"


def test_invalid_filter_is_rejected():
    client = TestClient(app)
    response = client.post(
        "/api/executions/preview", json={"filter": {"kind": "group"}}
    )

    assert response.status_code == 400


def test_unknown_execution_returns_404():
    client = TestClient(app)

    assert client.get("/api/executions/missing").status_code == 404
    assert client.post("/api/executions/missing/cancel").status_code == 404


def test_preview_respects_target_os():
    client = TestClient(app)
    linux_id = create_connection(client, "api-preview-linux", os_type="linux")
    windows_id = create_connection(
        client, "api-preview-win", os_type="windows", port=5985
    )

    response = client.post(
        "/api/executions/preview",
        json={"filter": selection(linux_id, windows_id), "target_os": "windows"},
    )

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [windows_id]


def test_saved_command_execution_applies_variables():
    client = TestClient(app)
    connection_id = create_connection(client, "api-saved-1")
    saved = client.post(
        "/api/commands",
        json={
            "name": "api tail",
            "command": "tail -n {{lines}} /var/log/messages",
            "variables": [{"name": "lines", "default": "20"}],
        },
    ).json()

    updated = client.put(f"/api/commands/{saved['id']}", json={"category": "logs"})
    assert updated.status_code == 200
    assert updated.json()["category"] == "logs"

    execution_id = client.post(
        "/api/executions",
        json={
            "saved_command_id": saved["id"],
            "variables": {"lines": "5"},
            "filter": selection(connection_id),
        },
    ).json()["execution_id"]
    api_main.run_coordinator.join(execution_id, timeout=10)

    execution = client.get(f"/api/executions/{execution_id}").json()
    assert execution["command"] == "tail -n 5 /var/log/messages"
    assert execution["command_name"] == "api tail"
    assert client.delete(f"/api/commands/{saved['id']}").status_code == 200
    assert client.get(f"/api/commands/{saved['id']}").status_code == 404


def test_static_provider_sync_and_import():
    client = TestClient(app)
    provider = client.post(
        "/api/providers",
        json={
            "name": "api-static",
            "type": "static",
            "config": {
                "api_token": "do-not-show",
                "hosts": [
                    {"id": "s1", "name": "api-static-1", "private_ip": "10.9.0.1"},
                    {"id": "s2", "name": "api-static-2", "os_type": "windows",
                     "hostname": "api-static-2.lab"},
                ],
            },
        },
    )
    assert provider.status_code == 200
    provider_id = provider.json()["id"]
    assert "api_token" not in provider.json()["config"]

    sync = client.post(f"/api/providers/{provider_id}/sync").json()
    assert sync["success"] is True
    assert sync["summary"]["new"] == 2

    again = client.post(f"/api/providers/{provider_id}/sync").json()
    assert again["summary"]["new"] == 0
    assert again["summary"]["existing"] == 2

    hosts = client.get(f"/api/providers/{provider_id}/hosts").json()
    imported = client.post(
        f"/api/providers/{provider_id}/hosts/import",
        json={"host_ids": [h["id"] for h in hosts], "ip_preference": "private"},
    ).json()
    assert imported["imported"] == 2
    assert imported["errors"] == []
    ports = sorted(
        client.get(f"/api/connections/{cid}").json()["port"]
        for cid in imported["connection_ids"]
    )
    assert ports == [22, 3389]

    deleted = client.delete(f"/api/providers/{provider_id}").json()
    assert deleted["removed_hosts"] == 2
    assert client.get(f"/api/providers/{provider_id}").status_code == 404


def test_group_members_endpoint():
    client = TestClient(app)
    group = client.post(
        "/api/groups",
        json={
            "name": "api dynamic",
            "membership_type": "dynamic",
            "rules": [{"hostname_pattern": "api-group-*"}],
        },
    ).json()
    member_id = create_connection(client, "api-group-1")

    members = client.get(f"/api/groups/{group['id']}/members").json()

    assert [m["id"] for m in members] == [member_id]
    assert client.get("/api/groups/missing/members").status_code == 404


def test_shutdown_cancels_running_executions_and_joins_threads():
    control = api_main.dispatcher.prepare("shutdown-run")
    finished = []

    def run():
        control.cancel_event.wait(timeout=5)
        finished.append(control.cancelled)
        api_main.control_registry.discard("shutdown-run")

    api_main.run_coordinator.start("shutdown-run", run)

    cancelled = api_main.shutdown_runs(timeout=5)

    assert "shutdown-run" in cancelled
    assert finished == [True]
    assert "shutdown-run" not in api_main.control_registry.active_ids()
