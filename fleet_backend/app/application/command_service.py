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
"""Application layer use-cases for bulk command executions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from fleet_backend.app.application.command_dispatcher import (
    CommandDispatcher,
    substitute_variables,
)
from fleet_backend.app.application.events import (
    EventPublisher,
    ExecutionEvent,
    ProgressListener,
    utc_now,
)
from fleet_backend.app.application.target_resolver import TargetResolver
from fleet_backend.app.domain.errors import (
    NotFoundError,
    RunInProgressError,
    TargetResolutionError,
)
from fleet_backend.app.domain.models import (
    CommandExecution,
    CommandResult,
    CommandTargetOS,
    CommandVariable,
    ExecutionStatus,
    ExecutionTrigger,
    HostFilter,
    SavedCommand,
    ServerConnection,
)
from fleet_backend.app.domain.state_machine import ExecutionStateMachine

logger = logging.getLogger(__name__)

TERMINAL_EXECUTION_STATUSES = {
    ExecutionStatus.COMPLETED,
    ExecutionStatus.FAILED,
    ExecutionStatus.CANCELLED,
}


class ExecutionRepository(Protocol):
    """Repository contract for execution persistence."""

    def save(self, execution: CommandExecution) -> None:
        """Store or update an execution."""

    def get(self, execution_id: str) -> CommandExecution | None:
        """Fetch an execution by ID."""

    def list(self, limit: int | None = None) -> list[CommandExecution]:
        """Newest executions first."""

    def update_result(self, execution_id: str, result: CommandResult) -> bool:
        """Write one host slot unless it is already terminal."""


class SavedCommandRepository(Protocol):
    """Repository contract for saved command templates."""

    def save(self, command: SavedCommand) -> None:
        """Store or update a saved command."""

    def get(self, command_id: str) -> SavedCommand | None:
        """Fetch a saved command by ID."""

    def list(self) -> list[SavedCommand]:
        """All saved commands."""

    def delete(self, command_id: str) -> bool:
        """Remove a saved command."""


class ConnectionSource(Protocol):
    """Read access to the connection inventory."""

    def list(self) -> list[ServerConnection]:
        """All connections."""


class BackgroundRunner(Protocol):
    """Starts one background run per execution."""

    def start(self, execution_id: str, target) -> bool:
        """Return False when a run is already alive for the id."""


@dataclass(frozen=True)
class ExecutionHandle:
    """Returned synchronously once targets are resolved."""

    execution_id: str
    target_count: int


class ExecutionRecorder(ProgressListener):
    """Persists and broadcasts the progress of one execution."""

    def __init__(
        self,
        execution_id: str,
        repository: ExecutionRepository,
        state_machine: ExecutionStateMachine,
        publisher: EventPublisher | None = None,
    ):
        self.execution_id = execution_id
        self.repository = repository
        self.state_machine = state_machine
        self.publisher = publisher

    def emit(
        self,
        event_type: str,
        connection_id: str | None = None,
        status: str | None = None,
        message: str | None = None,
    ) -> None:
        if self.publisher is None:
            return
        self.publisher.publish(
            ExecutionEvent(
                type=event_type,
                execution_id=self.execution_id,
                timestamp=utc_now(),
                connection_id=connection_id,
                status=status,
                message=message,
            )
        )

    def _store(self, connection_id: str, result: CommandResult) -> None:
        if not self.repository.update_result(self.execution_id, result):
            logger.debug(
                "Discarded late result for %s in execution %s",
                connection_id,
                self.execution_id,
            )
            return
        self.emit(
            "host_status",
            connection_id=connection_id,
            status=result.status.value,
            message=result.error,
        )

    def on_started(self, connection_id: str, result: CommandResult) -> None:
        self._store(connection_id, result)

    def on_progress(self, connection_id: str, result: CommandResult) -> None:
        self._store(connection_id, result)

    def on_complete(self, execution_id: str, status: ExecutionStatus) -> None:
        execution = self.repository.get(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)
        self.finish(execution, status)

    def finish(self, execution: CommandExecution, status: ExecutionStatus) -> None:
        transition = self.state_machine.finish(execution.status, status)
        execution.status = transition.next_status
        execution.completed_at = utc_now()
        self.repository.save(execution)
        self.emit("execution_complete", status=execution.status.value)


class CommandService:
    """Use-case orchestration for executions and saved commands."""

    def __init__(
        self,
        executions: ExecutionRepository,
        saved_commands: SavedCommandRepository,
        connections: ConnectionSource,
        dispatcher: CommandDispatcher,
        target_resolver: TargetResolver,
        runner: BackgroundRunner,
        publisher: EventPublisher | None = None,
        state_machine: ExecutionStateMachine | None = None,
    ):
        self.executions = executions
        self.saved_commands = saved_commands
        self.connections = connections
        self.dispatcher = dispatcher
        self.target_resolver = target_resolver
        self.runner = runner
        self.state_machine = state_machine or ExecutionStateMachine()
        self.publisher = publisher

    def preview_targets(
        self,
        host_filter: HostFilter | None = None,
        target_os: CommandTargetOS = CommandTargetOS.ALL,
    ) -> list[ServerConnection]:
        """Resolve targets without dispatching anything."""
        return self.target_resolver.resolve(
            host_filter or HostFilter.all_hosts(), self.connections.list(), target_os
        )

    def execute(
        self,
        command: str | None = None,
        target_os: CommandTargetOS | None = None,
        host_filter: HostFilter | None = None,
        variables: dict[str, str] | None = None,
        saved_command_id: str | None = None,
    ) -> ExecutionHandle:
        """Resolve targets synchronously, then dispatch in the background."""
        merged: dict[str, str] = {}
        saved: SavedCommand | None = None
        if saved_command_id:
            saved = self.get_saved_command(saved_command_id)
            template = saved.command
            target_os = target_os or saved.target_os
            merged = {
                variable.name: variable.default
                for variable in saved.variables
                if variable.default is not None
            }
        else:
            template = command or ""
        if not template.strip():
            raise ValueError("Command must not be empty")
        merged.update(variables or {})
        target_os = target_os or CommandTargetOS.ALL
        host_filter = host_filter or HostFilter.all_hosts()

        targets = self.preview_targets(host_filter, target_os)
        if not targets:
            raise TargetResolutionError("No matching connections")

        execution = CommandExecution(
            id=str(uuid4()),
            command=substitute_variables(template, merged),
            target_os=target_os,
            connection_ids=[target.id for target in targets],
            results=[
                CommandResult(
                    connection_id=target.id,
                    connection_name=target.name,
                    hostname=target.hostname,
                )
                for target in targets
            ],
            command_name=saved.name if saved else "Ad-hoc command",
            saved_command_id=saved.id if saved else None,
            host_filter=host_filter.describe(),
            created_at=utc_now(),
        )
        self.executions.save(execution)
        self.dispatcher.prepare(execution.id)
        started = self.runner.start(
            execution.id, lambda: self._run(execution.id, targets)
        )
        if not started:
            raise RunInProgressError(f"Execution already running: {execution.id}")
        logger.info(
            "Execution %s started on %d targets (%s)",
            execution.id,
            len(targets),
            execution.host_filter,
        )
        return ExecutionHandle(execution_id=execution.id, target_count=len(targets))

    def _recorder(self, execution_id: str) -> ExecutionRecorder:
        return ExecutionRecorder(
            execution_id, self.executions, self.state_machine, self.publisher
        )

    def _run(self, execution_id: str, targets: list[ServerConnection]) -> None:
        execution = self.get_execution(execution_id)
        recorder = self._recorder(execution_id)
        transition = self.state_machine.transition(
            execution.status, ExecutionTrigger.START
        )
        execution.status = transition.next_status
        execution.started_at = utc_now()
        self.executions.save(execution)
        recorder.emit("execution_status", status=execution.status.value)
        try:
            self.dispatcher.dispatch(execution, targets, recorder)
        except Exception:
            logger.exception("Dispatch crashed for execution %s", execution_id)
            if execution.status == ExecutionStatus.RUNNING:
                recorder.finish(execution, ExecutionStatus.FAILED)

    def cancel(self, execution_id: str) -> bool:
        """Request cancellation; False when the execution already finished."""
        execution = self.get_execution(execution_id)
        if execution.status in TERMINAL_EXECUTION_STATUSES:
            return False
        requested = self.dispatcher.cancel(execution_id)
        if requested:
            self._recorder(execution_id).emit(
                "execution_status", status="cancelling", message="Cancel requested"
            )
        return requested

    def get_execution(self, execution_id: str) -> CommandExecution:
        execution = self.executions.get(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)
        return execution

    def list_executions(self, limit: int = 50) -> list[CommandExecution]:
        return self.executions.list(limit=limit)

    def create_saved_command(
        self,
        name: str,
        command: str,
        target_os: CommandTargetOS = CommandTargetOS.ALL,
        description: str | None = None,
        category: str | None = None,
        variables: list[CommandVariable] | None = None,
    ) -> SavedCommand:
        if not name.strip():
            raise ValueError("Saved command name must not be empty")
        if not command.strip():
            raise ValueError("Command must not be empty")
        now = utc_now()
        saved = SavedCommand(
            id=str(uuid4()),
            name=name.strip(),
            command=command,
            target_os=target_os,
            description=description,
            category=category,
            variables=list(variables or []),
            created_at=now,
            updated_at=now,
        )
        self.saved_commands.save(saved)
        return saved

    def update_saved_command(self, command_id: str, **changes) -> SavedCommand:
        saved = self.get_saved_command(command_id)
        for key in ("name", "command", "target_os", "description", "category", "variables"):
            if changes.get(key) is not None:
                setattr(saved, key, changes[key])
        if not saved.command.strip():
            raise ValueError("Command must not be empty")
        saved.updated_at = utc_now()
        self.saved_commands.save(saved)
        return saved

    def get_saved_command(self, command_id: str) -> SavedCommand:
        saved = self.saved_commands.get(command_id)
        if saved is None:
            raise NotFoundError("Saved command", command_id)
        return saved

    def list_saved_commands(self) -> list[SavedCommand]:
        return self.saved_commands.list()

    def delete_saved_command(self, command_id: str) -> None:
        if not self.saved_commands.delete(command_id):
            raise NotFoundError("Saved command", command_id)
