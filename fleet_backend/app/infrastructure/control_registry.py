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
"""Registry of cancellation controls for in-flight executions."""

from __future__ import annotations

from threading import Lock

from fleet_backend.app.application.execution_control import ExecutionControl


class ControlRegistry:
    """Stores execution control objects by execution_id while they run."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._controls: dict[str, ExecutionControl] = {}

    def register(self, execution_id: str) -> ExecutionControl:
        with self._lock:
            if execution_id not in self._controls:
                self._controls[execution_id] = ExecutionControl(execution_id)
            return self._controls[execution_id]

    def get(self, execution_id: str) -> ExecutionControl | None:
        with self._lock:
            return self._controls.get(execution_id)

    def discard(self, execution_id: str) -> None:
        with self._lock:
            self._controls.pop(execution_id, None)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._controls)
