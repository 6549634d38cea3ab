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
"""Simulation transport for API-level scaffolding."""

from __future__ import annotations

import time
from typing import Optional

from fleet_backend.app.application.command_dispatcher import CommandTransport
from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    CommandResult,
    Credential,
    HostResultStatus,
    ServerConnection,
)


class SimulatedCommandTransport(CommandTransport):
    """Returns a successful result for every host."""

    def __init__(self, delay_ms: int = 0):
        self.delay_ms = delay_ms

    def run(
        self,
        connection: ServerConnection,
        credential: Optional[Credential],
        command: str,
        timeout: float,
    ) -> CommandResult:
        del credential
        started_at = utc_now()
        if self.delay_ms > 0:
            time.sleep(min(self.delay_ms / 1000.0, timeout))
        return CommandResult(
            connection_id=connection.id,
            connection_name=connection.name,
            hostname=connection.hostname,
            status=HostResultStatus.SUCCESS,
            exit_code=0,
            stdout=f"simulated run on {connection.hostname}: {command}",
            started_at=started_at,
            completed_at=utc_now(),
        )
