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
"""In-memory repositories for command executions and saved commands."""

from __future__ import annotations

from threading import Lock

from fleet_backend.app.domain.models import CommandExecution, CommandResult, SavedCommand
from fleet_backend.app.domain.state_machine import HostResultStateMachine


class InMemoryExecutionStore:
    """Thread-safe execution repository with per-slot result updates."""

    def __init__(self, slot_machine: HostResultStateMachine | None = None) -> None:
        self._lock = Lock()
        self._executions: dict[str, CommandExecution] = {}
        self._slot_machine = slot_machine or HostResultStateMachine()

    def save(self, execution: CommandExecution) -> None:
        with self._lock:
            self._executions[execution.id] = execution

    def get(self, execution_id: str) -> CommandExecution | None:
        with self._lock:
            return self._executions.get(execution_id)

    def list(self, limit: int | None = None) -> list[CommandExecution]:
        """Newest first."""
        with self._lock:
            executions = sorted(
                self._executions.values(),
                key=lambda execution: execution.created_at or "",
                reverse=True,
            )
        return executions[:limit] if limit is not None else executions

    def update_result(self, execution_id: str, result: CommandResult) -> bool:
        """Write one host slot; False when the slot is already terminal."""
        with self._lock:
            execution = self._executions.get(execution_id)
            if execution is None:
                return False
            for index, current in enumerate(execution.results):
                if current.connection_id != result.connection_id:
                    continue
                if not self._slot_machine.can_transition(current.status, result.status):
                    return False
                if result.started_at is None and current.started_at is not None:
                    result.started_at = current.started_at
                execution.results[index] = result
                return True
            return False


class InMemorySavedCommandStore:
    """Stores saved command templates by id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._commands: dict[str, SavedCommand] = {}

    def save(self, command: SavedCommand) -> None:
        with self._lock:
            self._commands[command.id] = command

    def get(self, command_id: str) -> SavedCommand | None:
        with self._lock:
            return self._commands.get(command_id)

    def list(self) -> list[SavedCommand]:
        with self._lock:
            return sorted(self._commands.values(), key=lambda command: command.name)

    def delete(self, command_id: str) -> bool:
        with self._lock:
            return self._commands.pop(command_id, None) is not None
