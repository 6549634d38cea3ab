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
"""FastAPI entrypoint for the fleet backend."""

import asyncio
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException
from fastapi import WebSocket, WebSocketDisconnect

from fleet_backend.app.api.schemas import (
    CancelExecutionResponse,
    CommandExecutionResponse,
    CommandResultResponse,
    CommandVariablePayload,
    ConnectionRequest,
    ConnectionResponse,
    ConnectionTestResponse,
    CredentialRequest,
    CredentialResponse,
    DiscoveredHostResponse,
    DiscoveryResponse,
    ExecuteCommandRequest,
    ExecuteCommandResponse,
    ExecutionEventResponse,
    GroupRequest,
    GroupResponse,
    GroupRulePayload,
    HostFilterPayload,
    HostStateChangeResponse,
    ImportHostsRequest,
    ImportHostsResponse,
    PreviewTargetsRequest,
    ProviderRequest,
    ProviderResponse,
    ProviderSyncResponse,
    SavedCommandRequest,
    SavedCommandResponse,
    SavedCommandUpdateRequest,
    SyncSummaryResponse,
)
from fleet_backend.app.application.command_dispatcher import (
    CommandDispatcher,
    CommandTransport,
    DispatchConfig,
)
from fleet_backend.app.application.command_service import CommandService
from fleet_backend.app.application.credential_resolver import CredentialResolver
from fleet_backend.app.application.discovery_reconciler import DiscoveryReconciler
from fleet_backend.app.application.discovery_service import DiscoveryService
from fleet_backend.app.application.inventory_service import (
    ConnectionValidator,
    InventoryService,
)
from fleet_backend.app.application.target_resolver import TargetResolver
from fleet_backend.app.domain.errors import RunInProgressError
from fleet_backend.app.domain.models import (
    CommandExecution,
    CommandVariable,
    ConnectionGroup,
    Credential,
    DiscoveredHost,
    GroupRule,
    HostFilter,
    Provider,
    SavedCommand,
    ServerConnection,
)
from fleet_backend.app.infrastructure.connection_validators import (
    NetmikoConnectionValidator,
    SimulatedConnectionValidator,
)
from fleet_backend.app.infrastructure.control_registry import ControlRegistry
from fleet_backend.app.infrastructure.in_memory_connection_store import (
    InMemoryConnectionStore,
    InMemoryCredentialStore,
    InMemoryGroupStore,
)
from fleet_backend.app.infrastructure.in_memory_discovery_store import (
    InMemoryDiscoveredHostStore,
    InMemoryProviderStore,
)
from fleet_backend.app.infrastructure.in_memory_event_store import InMemoryEventStore
from fleet_backend.app.infrastructure.in_memory_execution_store import (
    InMemoryExecutionStore,
    InMemorySavedCommandStore,
)
from fleet_backend.app.infrastructure.powershell_transport import (
    PowerShellCommandTransport,
)
from fleet_backend.app.infrastructure.providers.registry import default_adapters
from fleet_backend.app.infrastructure.run_coordinator import RunCoordinator
from fleet_backend.app.infrastructure.settings import Settings
from fleet_backend.app.infrastructure.simulated_transport import (
    SimulatedCommandTransport,
)
from fleet_backend.app.infrastructure.ssh_transport import SSHCommandTransport

settings = Settings.from_env()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SHUTDOWN_JOIN_SECONDS = 10.0


def shutdown_runs(timeout: float | None = SHUTDOWN_JOIN_SECONDS) -> list[str]:
    """Cancel in-flight executions and wait for their threads to finish."""
    cancelled = [
        execution_id
        for execution_id in control_registry.active_ids()
        if dispatcher.cancel(execution_id)
    ]
    if cancelled:
        logger.info("Shutdown cancelled %d running executions", len(cancelled))
    run_coordinator.join_all(timeout)
    return cancelled


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await asyncio.to_thread(shutdown_runs)


app = FastAPI(
    title="Fleet Connection Manager",
    version="0.1.0",
    lifespan=lifespan,
)

connection_store = InMemoryConnectionStore()
credential_store = InMemoryCredentialStore()
group_store = InMemoryGroupStore()
provider_store = InMemoryProviderStore()
discovered_host_store = InMemoryDiscoveredHostStore()
execution_store = InMemoryExecutionStore()
saved_command_store = InMemorySavedCommandStore()
event_store = InMemoryEventStore()
control_registry = ControlRegistry()
run_coordinator = RunCoordinator()

if settings.transport_mode == "live":
    unix_transport: CommandTransport = SSHCommandTransport(
        connect_timeout=settings.ssh_connect_timeout_seconds
    )
    windows_transport: CommandTransport = PowerShellCommandTransport(
        executable=settings.powershell_executable
    )
    validator: ConnectionValidator = NetmikoConnectionValidator()
else:
    unix_transport = SimulatedCommandTransport(delay_ms=settings.simulated_delay_ms)
    windows_transport = unix_transport
    validator = SimulatedConnectionValidator()

dispatcher = CommandDispatcher(
    unix_transport=unix_transport,
    windows_transport=windows_transport,
    credential_resolver=CredentialResolver(
        get_credential=credential_store.get, list_credentials=credential_store.list
    ),
    config=DispatchConfig(
        batch_size=settings.batch_size, host_timeout=settings.host_timeout_seconds
    ),
    registry=control_registry,
)
inventory_service = InventoryService(
    connections=connection_store,
    credentials=credential_store,
    groups=group_store,
    validator=validator,
)
discovery_service = DiscoveryService(
    providers=provider_store,
    hosts=discovered_host_store,
    connections=connection_store,
    adapters=default_adapters(),
    reconciler=DiscoveryReconciler(discovered_host_store),
    list_credentials=credential_store.list,
)
command_service = CommandService(
    executions=execution_store,
    saved_commands=saved_command_store,
    connections=connection_store,
    dispatcher=dispatcher,
    target_resolver=TargetResolver(group_lookup=group_store.get),
    runner=run_coordinator,
    publisher=event_store,
)

_SENSITIVE_CONFIG_KEYS = ("password", "secret", "token")


def _public_config(config: dict[str, object]) -> dict[str, object]:
    return {
        key: value
        for key, value in config.items()
        if not any(marker in key.lower() for marker in _SENSITIVE_CONFIG_KEYS)
    }


def _http_error(exc: Exception) -> HTTPException:
    """Map service exceptions to HTTP errors."""
    if isinstance(exc, LookupError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, RunInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def to_connection_response(connection: ServerConnection) -> ConnectionResponse:
    return ConnectionResponse(
        id=connection.id,
        name=connection.name,
        hostname=connection.hostname,
        port=connection.port,
        connection_type=connection.connection_type.value,
        username=connection.username,
        os_type=connection.os_type.value if connection.os_type else None,
        credential_id=connection.credential_id,
        tags=list(connection.tags),
        group_id=connection.group_id,
        description=connection.description,
        provider_id=connection.provider_id,
        provider_host_id=connection.provider_host_id,
        created_at=connection.created_at,
        updated_at=connection.updated_at,
    )


def to_credential_response(credential: Credential) -> CredentialResponse:
    return CredentialResponse(
        id=credential.id,
        name=credential.name,
        type=credential.type.value,
        username=credential.username,
        domain=credential.domain,
        has_secret=bool(credential.secret),
        has_private_key=bool(credential.private_key),
        auto_assign_patterns=list(credential.auto_assign_patterns),
        auto_assign_os_types=[os_type.value for os_type in credential.auto_assign_os_types],
    )


def _rule_payload(rule: GroupRule) -> GroupRulePayload:
    return GroupRulePayload(
        hostname_pattern=rule.hostname_pattern,
        os_types=list(rule.os_types),
        tags=list(rule.tags),
        provider_id=rule.provider_id,
        connection_type=rule.connection_type,
    )


def to_group_response(group: ConnectionGroup) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        membership_type=group.membership_type.value,
        rules=[_rule_payload(rule) for rule in group.rules],
        description=group.description,
        color=group.color,
        parent_id=group.parent_id,
        credential_id=group.credential_id,
    )


def to_provider_response(provider: Provider) -> ProviderResponse:
    return ProviderResponse(
        id=provider.id,
        name=provider.name,
        type=provider.type.value,
        config=_public_config(provider.config),
        enabled=provider.enabled,
        created_at=provider.created_at,
        last_discovery_at=provider.last_discovery_at,
    )


def to_host_response(host: DiscoveredHost) -> DiscoveredHostResponse:
    return DiscoveredHostResponse(
        id=host.id,
        provider_id=host.provider_id,
        provider_host_id=host.provider_host_id,
        name=host.name,
        hostname=host.hostname,
        private_ip=host.private_ip,
        public_ip=host.public_ip,
        os_type=host.os_type.value,
        os_name=host.os_name,
        state=host.state.value,
        metadata=dict(host.metadata),
        tags=dict(host.tags),
        discovered_at=host.discovered_at,
        last_seen_at=host.last_seen_at,
        imported=host.imported,
        connection_id=host.connection_id,
    )


def to_execution_response(execution: CommandExecution) -> CommandExecutionResponse:
    return CommandExecutionResponse(
        id=execution.id,
        command_name=execution.command_name,
        command=execution.command,
        target_os=execution.target_os.value,
        host_filter=execution.host_filter,
        saved_command_id=execution.saved_command_id,
        connection_ids=list(execution.connection_ids),
        status=execution.status.value,
        results=[
            CommandResultResponse(
                connection_id=r.connection_id,
                connection_name=r.connection_name,
                hostname=r.hostname,
                status=r.status.value,
                exit_code=r.exit_code,
                stdout=r.stdout,
                stderr=r.stderr,
                error=r.error,
                started_at=r.started_at,
                completed_at=r.completed_at,
            )
            for r in list(execution.results)
        ],
        created_at=execution.created_at,
        started_at=execution.started_at,
        completed_at=execution.completed_at,
    )


def to_saved_command_response(saved: SavedCommand) -> SavedCommandResponse:
    return SavedCommandResponse(
        id=saved.id,
        name=saved.name,
        command=saved.command,
        target_os=saved.target_os.value,
        description=saved.description,
        category=saved.category,
        variables=[
            CommandVariablePayload(
                name=v.name, default=v.default, description=v.description
            )
            for v in saved.variables
        ],
        created_at=saved.created_at,
        updated_at=saved.updated_at,
    )


def _to_host_filter(payload: HostFilterPayload) -> HostFilter:
    return HostFilter(
        kind=payload.kind,
        group_id=payload.group_id,
        pattern=payload.pattern,
        connection_ids=tuple(payload.connection_ids),
        os_type=payload.os_type,
    )


def _to_variables(payloads: list[CommandVariablePayload]) -> list[CommandVariable]:
    return [
        CommandVariable(name=p.name, default=p.default, description=p.description)
        for p in payloads
    ]


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health endpoint."""
    return {"status": "ok", "transport_mode": settings.transport_mode}


@app.post("/api/connections", response_model=ConnectionResponse)
def create_connection(payload: ConnectionRequest) -> ConnectionResponse:
    """Create a connection."""
    try:
        connection = inventory_service.create_connection(
            ServerConnection(id="", **payload.model_dump())
        )
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return to_connection_response(connection)


@app.get("/api/connections", response_model=list[ConnectionResponse])
def list_connections() -> list[ConnectionResponse]:
    return [to_connection_response(c) for c in inventory_service.list_connections()]


@app.get("/api/connections/{connection_id}", response_model=ConnectionResponse)
def get_connection(connection_id: str) -> ConnectionResponse:
    try:
        connection = inventory_service.get_connection(connection_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return to_connection_response(connection)


@app.delete("/api/connections/{connection_id}")
def delete_connection(connection_id: str) -> dict[str, str]:
    try:
        inventory_service.delete_connection(connection_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.post(
    "/api/connections/{connection_id}/test", response_model=ConnectionTestResponse
)
def test_connection(connection_id: str) -> ConnectionTestResponse:
    """Lightweight login check."""
    try:
        ok, error = inventory_service.test_connection(connection_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return ConnectionTestResponse(ok=ok, error=error)


@app.post("/api/credentials", response_model=CredentialResponse)
def create_credential(payload: CredentialRequest) -> CredentialResponse:
    try:
        credential = inventory_service.create_credential(
            Credential(id="", **payload.model_dump())
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return to_credential_response(credential)


@app.get("/api/credentials", response_model=list[CredentialResponse])
def list_credentials() -> list[CredentialResponse]:
    return [to_credential_response(c) for c in inventory_service.list_credentials()]


@app.delete("/api/credentials/{credential_id}")
def delete_credential(credential_id: str) -> dict[str, str]:
    try:
        inventory_service.delete_credential(credential_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.post("/api/groups", response_model=GroupResponse)
def create_group(payload: GroupRequest) -> GroupResponse:
    group = ConnectionGroup(
        id="",
        name=payload.name,
        membership_type=payload.membership_type,
        rules=[GroupRule(**rule.model_dump()) for rule in payload.rules],
        description=payload.description,
        color=payload.color,
        parent_id=payload.parent_id,
        credential_id=payload.credential_id,
    )
    try:
        group = inventory_service.create_group(group)
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return to_group_response(group)


@app.get("/api/groups", response_model=list[GroupResponse])
def list_groups() -> list[GroupResponse]:
    return [to_group_response(g) for g in inventory_service.list_groups()]


@app.delete("/api/groups/{group_id}")
def delete_group(group_id: str) -> dict[str, str]:
    try:
        inventory_service.delete_group(group_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.get("/api/groups/{group_id}/members", response_model=list[ConnectionResponse])
def list_group_members(group_id: str) -> list[ConnectionResponse]:
    """Resolved members of a static or dynamic group."""
    try:
        members = inventory_service.list_group_members(group_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return [to_connection_response(c) for c in members]


@app.post("/api/providers", response_model=ProviderResponse)
def create_provider(payload: ProviderRequest) -> ProviderResponse:
    try:
        provider = discovery_service.create_provider(
            name=payload.name,
            provider_type=payload.type,
            config=payload.config,
            enabled=payload.enabled,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return to_provider_response(provider)


@app.get("/api/providers", response_model=list[ProviderResponse])
def list_providers() -> list[ProviderResponse]:
    return [to_provider_response(p) for p in discovery_service.list_providers()]


@app.get("/api/providers/{provider_id}", response_model=ProviderResponse)
def get_provider(provider_id: str) -> ProviderResponse:
    try:
        provider = discovery_service.get_provider(provider_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return to_provider_response(provider)


@app.delete("/api/providers/{provider_id}")
def delete_provider(provider_id: str) -> dict[str, object]:
    """Delete a provider together with its discovered hosts."""
    try:
        removed = discovery_service.delete_provider(provider_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted", "removed_hosts": removed}


@app.post("/api/providers/{provider_id}/test", response_model=ConnectionTestResponse)
def test_provider(provider_id: str) -> ConnectionTestResponse:
    try:
        ok, error = discovery_service.test_provider(provider_id)
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return ConnectionTestResponse(ok=ok, error=error)


@app.post("/api/providers/{provider_id}/discover", response_model=DiscoveryResponse)
def discover_hosts(provider_id: str) -> DiscoveryResponse:
    """Full refresh without reconciliation."""
    try:
        result = discovery_service.discover_hosts(provider_id)
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return DiscoveryResponse(
        provider_id=result.provider_id,
        provider_name=result.provider_name,
        success=result.success,
        error=result.error,
        discovered_at=result.discovered_at,
        hosts=[to_host_response(h) for h in result.hosts],
    )


@app.post("/api/providers/{provider_id}/sync", response_model=ProviderSyncResponse)
def sync_provider(provider_id: str) -> ProviderSyncResponse:
    """Reconciling refresh."""
    try:
        result = discovery_service.sync_provider(provider_id)
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    summary = result.summary
    return ProviderSyncResponse(
        provider_id=result.provider_id,
        provider_name=result.provider_name,
        success=result.success,
        synced_at=result.synced_at,
        error=result.error,
        new_hosts=[to_host_response(h) for h in result.new_hosts],
        removed_hosts=[to_host_response(h) for h in result.removed_hosts],
        existing_hosts=[to_host_response(h) for h in result.existing_hosts],
        changed_hosts=[
            HostStateChangeResponse(
                host=to_host_response(change.host),
                previous_state=change.previous_state.value,
                current_state=change.current_state.value,
            )
            for change in result.changed_hosts
        ],
        summary=SyncSummaryResponse(
            total=summary.total,
            new=summary.new,
            removed=summary.removed,
            existing=summary.existing,
            changed=summary.changed,
            imported=summary.imported,
        ),
    )


@app.get(
    "/api/providers/{provider_id}/hosts", response_model=list[DiscoveredHostResponse]
)
def list_discovered_hosts(provider_id: str) -> list[DiscoveredHostResponse]:
    try:
        hosts = discovery_service.list_hosts(provider_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return [to_host_response(h) for h in hosts]


@app.post(
    "/api/providers/{provider_id}/hosts/import", response_model=ImportHostsResponse
)
def import_hosts(provider_id: str, payload: ImportHostsRequest) -> ImportHostsResponse:
    """Create connections from discovered hosts."""
    try:
        result = discovery_service.import_hosts(
            provider_id=provider_id,
            host_ids=payload.host_ids,
            credential_id=payload.credential_id,
            ip_preference=payload.ip_preference,
            group_id=payload.group_id,
        )
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return ImportHostsResponse(
        imported=len(result.imported),
        connection_ids=[c.id for c in result.imported],
        errors=result.errors,
    )


@app.delete("/api/discovered-hosts/{host_id}")
def delete_discovered_host(host_id: str) -> dict[str, str]:
    try:
        discovery_service.delete_discovered_host(host_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.post("/api/commands", response_model=SavedCommandResponse)
def create_saved_command(payload: SavedCommandRequest) -> SavedCommandResponse:
    try:
        saved = command_service.create_saved_command(
            name=payload.name,
            command=payload.command,
            target_os=payload.target_os,
            description=payload.description,
            category=payload.category,
            variables=_to_variables(payload.variables),
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return to_saved_command_response(saved)


@app.get("/api/commands", response_model=list[SavedCommandResponse])
def list_saved_commands() -> list[SavedCommandResponse]:
    return [to_saved_command_response(s) for s in command_service.list_saved_commands()]


@app.get("/api/commands/{command_id}", response_model=SavedCommandResponse)
def get_saved_command(command_id: str) -> SavedCommandResponse:
    try:
        saved = command_service.get_saved_command(command_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return to_saved_command_response(saved)


@app.put("/api/commands/{command_id}", response_model=SavedCommandResponse)
def update_saved_command(
    command_id: str, payload: SavedCommandUpdateRequest
) -> SavedCommandResponse:
    changes = payload.model_dump(exclude={"variables"})
    if payload.variables is not None:
        changes["variables"] = _to_variables(payload.variables)
    try:
        saved = command_service.update_saved_command(command_id, **changes)
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return to_saved_command_response(saved)


@app.delete("/api/commands/{command_id}")
def delete_saved_command(command_id: str) -> dict[str, str]:
    try:
        command_service.delete_saved_command(command_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.post("/api/executions/preview", response_model=list[ConnectionResponse])
def preview_targets(payload: PreviewTargetsRequest) -> list[ConnectionResponse]:
    """Resolve targets without running anything."""
    try:
        targets = command_service.preview_targets(
            _to_host_filter(payload.filter), payload.target_os
        )
    except (LookupError, ValueError) as exc:
        raise _http_error(exc) from exc
    return [to_connection_response(c) for c in targets]


@app.post("/api/executions", response_model=ExecuteCommandResponse)
def execute_command(payload: ExecuteCommandRequest) -> ExecuteCommandResponse:
    """Resolve targets and start a background execution."""
    try:
        handle = command_service.execute(
            command=payload.command,
            target_os=payload.target_os,
            host_filter=_to_host_filter(payload.filter),
            variables=payload.variables,
            saved_command_id=payload.saved_command_id,
        )
    except (LookupError, ValueError, RunInProgressError) as exc:
        raise _http_error(exc) from exc
    return ExecuteCommandResponse(
        execution_id=handle.execution_id, target_count=handle.target_count
    )


@app.get("/api/executions", response_model=list[CommandExecutionResponse])
def list_executions(limit: int = 50) -> list[CommandExecutionResponse]:
    return [to_execution_response(e) for e in command_service.list_executions(limit)]


@app.get("/api/executions/{execution_id}", response_model=CommandExecutionResponse)
def get_execution(execution_id: str) -> CommandExecutionResponse:
    try:
        execution = command_service.get_execution(execution_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return to_execution_response(execution)


@app.post(
    "/api/executions/{execution_id}/cancel", response_model=CancelExecutionResponse
)
def cancel_execution(execution_id: str) -> CancelExecutionResponse:
    try:
        cancelled = command_service.cancel(execution_id)
    except LookupError as exc:
        raise _http_error(exc) from exc
    return CancelExecutionResponse(execution_id=execution_id, cancelled=cancelled)


@app.get(
    "/api/executions/{execution_id}/events",
    response_model=list[ExecutionEventResponse],
)
def list_execution_events(
    execution_id: str, start_index: int = 0
) -> list[ExecutionEventResponse]:
    """List buffered events for an execution."""
    events = event_store.list_events(execution_id=execution_id, start_index=start_index)
    return [
        ExecutionEventResponse(
            type=e.type,
            execution_id=e.execution_id,
            timestamp=e.timestamp,
            connection_id=e.connection_id,
            status=e.status,
            message=e.message,
        )
        for e in events
    ]


@app.websocket("/ws/executions/{execution_id}")
async def ws_execution_events(websocket: WebSocket, execution_id: str) -> None:
    """Stream buffered events until the execution completes."""
    await websocket.accept()
    cursor = 0
    try:
        while True:
            events = event_store.list_events(
                execution_id=execution_id, start_index=cursor
            )
            for event in events:
                await websocket.send_json(
                    {
                        "type": event.type,
                        "execution_id": event.execution_id,
                        "timestamp": event.timestamp,
                        "connection_id": event.connection_id,
                        "status": event.status,
                        "message": event.message,
                    }
                )
                cursor += 1
                if event.type == "execution_complete":
                    await websocket.close()
                    return
            await asyncio.sleep(0.2)
    except WebSocketDisconnect:
        return


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
