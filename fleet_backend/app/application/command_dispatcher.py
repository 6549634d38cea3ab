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
"""Concurrency-bounded fan-out of one command across many hosts."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional, Protocol

from fleet_backend.app.application.credential_resolver import CredentialResolver
from fleet_backend.app.application.events import ProgressListener, utc_now
from fleet_backend.app.application.execution_control import ExecutionControl
from fleet_backend.app.domain.models import (
    CommandExecution,
    CommandResult,
    CommandTargetOS,
    Credential,
    ExecutionStatus,
    HostResultStatus,
    ServerConnection,
)
from fleet_backend.app.domain.state_machine import aggregate_status

logger = logging.getLogger(__name__)

CANCELLED_REASON = "Execution cancelled"
DEFAULT_BATCH_SIZE = 10
DEFAULT_HOST_TIMEOUT = 5 * 60.0


class CommandTransport(Protocol):
    """Runs one command on one host and never raises for host failures."""

    def run(
        self,
        connection: ServerConnection,
        credential: Optional[Credential],
        command: str,
        timeout: float,
    ) -> CommandResult:
        """Execute the command and return a terminal result."""


class ControlStore(Protocol):
    """Cancellation controls for executions that are still running."""

    def register(self, execution_id: str) -> ExecutionControl: ...

    def get(self, execution_id: str) -> ExecutionControl | None: ...

    def discard(self, execution_id: str) -> None: ...


@dataclass(frozen=True)
class DispatchConfig:
    """Runtime behavior for the dispatcher."""

    batch_size: int = DEFAULT_BATCH_SIZE
    host_timeout: float = DEFAULT_HOST_TIMEOUT


@dataclass
class DispatchSummary:
    """Terminal results for every target of one dispatch."""

    execution_id: str
    status: ExecutionStatus
    results: dict[str, CommandResult] = field(default_factory=dict)


def substitute_variables(command: str, variables: dict[str, str] | None) -> str:
    """Replace every ``{{name}}`` with its value in a single pass.

    Names are matched as literal text and substituted values are never
    rescanned, so neither can act as pattern syntax.
    """
    if not variables:
        return command
    placeholders = {"{{" + name + "}}": value for name, value in variables.items()}
    alternation = "|".join(
        re.escape(token) for token in sorted(placeholders, key=len, reverse=True)
    )
    return re.sub(alternation, lambda match: placeholders[match.group(0)], command)


def skipped_result(connection: ServerConnection, reason: str) -> CommandResult:
    return CommandResult(
        connection_id=connection.id,
        connection_name=connection.name,
        hostname=connection.hostname,
        status=HostResultStatus.SKIPPED,
        error=reason,
        completed_at=utc_now(),
    )


def error_result(
    connection: ServerConnection, message: str, started_at: str | None = None
) -> CommandResult:
    return CommandResult(
        connection_id=connection.id,
        connection_name=connection.name,
        hostname=connection.hostname,
        status=HostResultStatus.ERROR,
        error=message,
        started_at=started_at or utc_now(),
        completed_at=utc_now(),
    )


def os_mismatch_reason(
    target_os: CommandTargetOS, connection: ServerConnection
) -> str | None:
    if target_os == CommandTargetOS.LINUX and connection.is_windows:
        return "Skipped: Windows host for Linux command"
    if target_os == CommandTargetOS.WINDOWS and not connection.is_windows:
        return "Skipped: non-Windows host for Windows command"
    return None


class CommandDispatcher:
    """Sequential batches, concurrent hosts within a batch."""

    def __init__(
        self,
        unix_transport: CommandTransport,
        windows_transport: CommandTransport,
        registry: ControlStore,
        credential_resolver: CredentialResolver | None = None,
        config: DispatchConfig | None = None,
    ):
        self.unix_transport = unix_transport
        self.windows_transport = windows_transport
        self.registry = registry
        self.credential_resolver = credential_resolver
        self.config = config or DispatchConfig()

    def prepare(self, execution_id: str) -> ExecutionControl:
        """Register the control ahead of a background dispatch."""
        return self.registry.register(execution_id)

    def cancel(self, execution_id: str) -> bool:
        """Request cooperative cancellation; False if nothing is running."""
        control = self.registry.get(execution_id)
        if control is None:
            return False
        control.cancel()
        logger.info("Cancellation requested for execution %s", execution_id)
        return True

    def is_active(self, execution_id: str) -> bool:
        return self.registry.get(execution_id) is not None

    def _select_transport(self, connection: ServerConnection) -> CommandTransport:
        if connection.is_windows:
            return self.windows_transport
        return self.unix_transport

    def _run_host(
        self,
        execution: CommandExecution,
        connection: ServerConnection,
        control: ExecutionControl,
        listener: ProgressListener | None,
    ) -> CommandResult:
        # Cancellation wins over the OS mismatch skip.
        if control.cancelled:
            return skipped_result(connection, CANCELLED_REASON)
        reason = os_mismatch_reason(execution.target_os, connection)
        if reason:
            return skipped_result(connection, reason)

        started_at = utc_now()
        if listener is not None:
            listener.on_started(
                connection.id,
                CommandResult(
                    connection_id=connection.id,
                    connection_name=connection.name,
                    hostname=connection.hostname,
                    status=HostResultStatus.RUNNING,
                    started_at=started_at,
                ),
            )
        credential = (
            self.credential_resolver.resolve(connection)
            if self.credential_resolver
            else None
        )
        transport = self._select_transport(connection)
        return transport.run(
            connection, credential, execution.command, self.config.host_timeout
        )

    def _record(
        self,
        summary: DispatchSummary,
        listener: ProgressListener | None,
        connection: ServerConnection,
        result: CommandResult,
    ) -> None:
        summary.results[connection.id] = result
        if result.status == HostResultStatus.ERROR:
            logger.warning(
                "Execution %s: host %s failed: %s",
                summary.execution_id,
                connection.id,
                result.error or f"exit code {result.exit_code}",
            )
        if listener is not None:
            listener.on_progress(connection.id, result)

    def _run_batch(
        self,
        execution: CommandExecution,
        batch: list[ServerConnection],
        control: ExecutionControl,
        summary: DispatchSummary,
        listener: ProgressListener | None,
    ) -> None:
        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = {
                executor.submit(
                    self._run_host, execution, connection, control, listener
                ): connection
                for connection in batch
            }
            for future in as_completed(futures):
                connection = futures[future]
                try:
                    result = future.result()
                except Exception as exc:
                    logger.exception(
                        "Transport raised for host %s in execution %s",
                        connection.id,
                        execution.id,
                    )
                    result = error_result(connection, str(exc) or type(exc).__name__)
                self._record(summary, listener, connection, result)

    def dispatch(
        self,
        execution: CommandExecution,
        connections: list[ServerConnection],
        listener: ProgressListener | None = None,
    ) -> DispatchSummary:
        """Run the execution's command on every connection and aggregate."""
        control = self.registry.register(execution.id)
        summary = DispatchSummary(
            execution_id=execution.id, status=ExecutionStatus.RUNNING
        )
        batch_size = max(1, self.config.batch_size)
        batches = [
            connections[start : start + batch_size]
            for start in range(0, len(connections), batch_size)
        ]
        logger.info(
            "Dispatching execution %s to %d hosts in %d batches",
            execution.id,
            len(connections),
            len(batches),
        )
        try:
            for batch in batches:
                if control.cancelled:
                    for connection in batch:
                        self._record(
                            summary,
                            listener,
                            connection,
                            skipped_result(connection, CANCELLED_REASON),
                        )
                    continue
                self._run_batch(execution, batch, control, summary, listener)
            summary.status = aggregate_status(
                [result.status for result in summary.results.values()],
                cancelled=control.cancelled,
            )
        finally:
            self.registry.discard(execution.id)

        logger.info(
            "Execution %s finished with status %s", execution.id, summary.status.value
        )
        if listener is not None:
            listener.on_complete(execution.id, summary.status)
        return summary
