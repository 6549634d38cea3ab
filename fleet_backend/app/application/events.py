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
"""Execution event and progress contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from fleet_backend.app.domain.models import CommandResult, ExecutionStatus


def utc_now() -> str:
    """UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ExecutionEvent:
    """Single event emitted while an execution runs."""

    type: str
    execution_id: str
    timestamp: str
    connection_id: str | None = None
    status: str | None = None
    message: str | None = None


class EventPublisher(Protocol):
    """Publisher for execution events."""

    def publish(self, event: ExecutionEvent) -> None:
        """Publish one event."""


class ProgressListener(Protocol):
    """Receives dispatcher notifications synchronously.

    ``on_progress`` fires exactly once per target with its terminal result and
    ``on_complete`` fires exactly once per dispatch, after every host.
    """

    def on_started(self, connection_id: str, result: CommandResult) -> None:
        """A host attempt is about to begin."""

    def on_progress(self, connection_id: str, result: CommandResult) -> None:
        """A host reached a terminal result."""

    def on_complete(self, execution_id: str, status: ExecutionStatus) -> None:
        """All hosts are terminal."""
